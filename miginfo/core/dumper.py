"""Dumps migration records as an ascii-art table for the console and the logs."""

from collections.abc import Sequence

from miginfo.models.migration import MigrationRecord
from miginfo.utils.dates import format_date_as_iso_string
from miginfo.utils.strings import trim_or_pad

VERSION_TITLE = "Version"
DESCRIPTION_TITLE = "Description"
TYPE_TITLE = "Type"
STATE_TITLE = "State"

INSTALLED_ON_WIDTH = 19


def _version_text(record: MigrationRecord) -> str:
    return "" if record.version is None else str(record.version)


def dump_to_ascii_table(records: Sequence[MigrationRecord]) -> str:
    """Render migration records as one multi-line ascii table.

    Rows keep the input order. An empty sequence yields a single
    "No migrations found" row. Every line, including the rulers,
    is newline-terminated.
    """
    version_width = len(VERSION_TITLE)
    description_width = len(DESCRIPTION_TITLE)
    type_width = len(TYPE_TITLE)
    state_width = len(STATE_TITLE)

    for record in records:
        version_width = max(version_width, len(_version_text(record)))
        description_width = max(description_width, len(record.description))
        # Sized from the description, not the type name (kept for output compatibility)
        type_width = max(type_width, len(record.description))
        state_width = max(state_width, len(record.state.display_name))

    ruler = (
        "+-" + trim_or_pad("", version_width, "-")
        + "-+-" + trim_or_pad("", description_width, "-")
        + "-+-" + trim_or_pad("", type_width, "-")
        + "-+--------------------"
        + "-+-" + trim_or_pad("", state_width, "-")
        + "-+\n"
    )

    lines = [ruler]
    lines.append(
        "| " + trim_or_pad(VERSION_TITLE, version_width)
        + " | " + trim_or_pad(DESCRIPTION_TITLE, description_width)
        + " | " + trim_or_pad(TYPE_TITLE, type_width)
        + " | Installed on       "
        + " | " + trim_or_pad(STATE_TITLE, state_width)
        + " |\n"
    )
    lines.append(ruler)

    if not records:
        lines.append(trim_or_pad("| No migrations found", len(ruler) - 2) + "|\n")
    else:
        for record in records:
            lines.append(
                "| " + trim_or_pad(_version_text(record), version_width)
                + " | " + trim_or_pad(record.description, description_width)
                + " | " + trim_or_pad(record.type.name, type_width)
                + " | " + trim_or_pad(
                    format_date_as_iso_string(record.installed_on), INSTALLED_ON_WIDTH
                )
                + " | " + trim_or_pad(record.state.display_name, state_width)
                + " |\n"
            )

    lines.append(ruler)
    return "".join(lines)
