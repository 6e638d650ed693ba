"""miginfo - database migration history and info table."""

__version__ = "0.1.0"
