"""
Footstage: staged loading of international football results.

This package provides CSV staging, a referential in-memory store with
primary/foreign-key checks, and snapshot persistence for match results,
goalscorers, penalty shootouts and former team names.
"""

from importlib.metadata import version

__version__ = version("footstage")

__all__ = ["__version__"]
