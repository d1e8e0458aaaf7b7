"""TaskNest - per-user todo lists with categories."""

__version__ = "0.1.0"
