# src/__init__.py — v1
"""Ship parties resolution engine."""

from shipparties.version import __version__

__all__ = ["__version__"]
