"""jb-plugins - search the JetBrains Marketplace and build installPlugins commands."""

__version__ = "0.1.0"
