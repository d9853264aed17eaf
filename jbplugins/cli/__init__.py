"""Command-line interface for jb-plugins."""
