"""Live monitor for multi-agent team state files."""

__version__ = "0.1.0"
