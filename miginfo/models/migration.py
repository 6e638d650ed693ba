"""Migration metadata: versions, types, states and the record shown in the info table."""

import enum
import re
from dataclasses import dataclass
from datetime import datetime
from functools import total_ordering

from miginfo.exceptions import InvalidVersionError

_VERSION_PART = re.compile(r"^\d+$")


@total_ordering
class MigrationVersion:
    """Dotted numeric version such as ``1``, ``1.2`` or ``2_1`` (same as ``2.1``)."""

    __slots__ = ("_text", "_parts")

    def __init__(self, text: str):
        normalized = str(text).strip().replace("_", ".")
        parts = normalized.split(".")
        if not normalized or not all(_VERSION_PART.match(p) for p in parts):
            raise InvalidVersionError(f"Invalid version: {text!r}")
        self._text = normalized
        self._parts = tuple(int(p) for p in parts)

    @classmethod
    def from_string(cls, text: str | None) -> "MigrationVersion | None":
        """Parse a version, returning None for None or an empty string."""
        if text is None or not str(text).strip():
            return None
        return cls(text)

    @property
    def parts(self) -> tuple[int, ...]:
        return self._parts

    def _key(self) -> tuple[int, ...]:
        # Trailing zeros are insignificant: 1.0 == 1
        parts = list(self._parts)
        while len(parts) > 1 and parts[-1] == 0:
            parts.pop()
        return tuple(parts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MigrationVersion):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "MigrationVersion") -> bool:
        if not isinstance(other, MigrationVersion):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"<MigrationVersion('{self._text}')>"


class MigrationType(str, enum.Enum):
    """How a migration was produced. Rendered by its name."""

    SCHEMA = "schema"
    BASELINE = "baseline"
    SQL = "sql"
    PYTHON = "python"
    REPAIR = "repair"


class MigrationState(enum.Enum):
    """Status of a migration, combining the registry with the schema history."""

    # display name, resolved, applied, failed
    PENDING = ("Pending", True, False, False)
    ABOVE_TARGET = ("Above Target", True, False, False)
    BELOW_BASELINE = ("Below Baseline", True, False, False)
    BASELINE = ("Baseline", True, True, False)
    IGNORED = ("Ignored", True, False, False)
    MISSING_SUCCESS = ("Missing", False, True, False)
    MISSING_FAILED = ("Failed (Missing)", False, True, True)
    SUCCESS = ("Success", True, True, False)
    FAILED = ("Failed", True, True, True)
    OUT_OF_ORDER = ("Out of Order", True, True, False)
    FUTURE_SUCCESS = ("Future", False, True, False)
    FUTURE_FAILED = ("Failed (Future)", False, True, True)
    OUTDATED = ("Outdated", True, True, False)
    SUPERSEDED = ("Superseded", True, True, False)

    def __init__(self, display_name: str, resolved: bool, applied: bool, failed: bool):
        self.display_name = display_name
        self.resolved = resolved
        self.applied = applied
        self.failed = failed


@dataclass(frozen=True)
class MigrationRecord:
    """One row of the migration info table."""

    version: MigrationVersion | None
    description: str
    type: MigrationType
    installed_on: datetime | None
    state: MigrationState
    script: str = ""

    @property
    def is_repeatable(self) -> bool:
        return self.version is None
