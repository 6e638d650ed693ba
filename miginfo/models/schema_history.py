"""Schema history model: one row per applied (or attempted) migration."""

from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from miginfo.db import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SchemaHistoryEntry(Base):
    """Tracks applied database migrations."""

    __tablename__ = "schema_history"

    installed_rank: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    version: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    script: Mapped[str] = mapped_column(String(1000), nullable=False)
    checksum: Mapped[int | None] = mapped_column(Integer, nullable=True)
    installed_on: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    execution_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # ms
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<SchemaHistoryEntry(installed_rank={self.installed_rank}, "
            f"version='{self.version}', success={self.success})>"
        )
