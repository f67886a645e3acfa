# src/__init__.py — v1
"""codeauditor — AI-assisted code and schema auditing pipeline."""

from codeauditor.version import __version__

__all__ = ["__version__"]
