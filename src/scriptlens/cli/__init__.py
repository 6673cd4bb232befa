"""Command line interface for ScriptLens."""

from .manage import app

__all__ = ["app"]
