"""Allow running as ``python -m jbplugins``."""

from jbplugins.cli.main import app

app()
