"""Backfill configured default values into existing posts, users and options."""

__version__ = "1.0.0"
