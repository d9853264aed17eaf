"""Core selection, discovery and command logic."""
