"""Pandora skill runtime: tiered execution of declarative skills."""

__version__ = "0.1.0"
