"""Settings and persisted-file handling."""
