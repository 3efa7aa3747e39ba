"""CSV import, JSON serialization and file-backed storage."""
