"""University exam records: grade validation, CSV import and statistics."""

__version__ = "0.1.0"
