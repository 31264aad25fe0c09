"""Version information for arbor."""

__version__ = "0.1.0"
