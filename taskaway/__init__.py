"""Recurring task scheduler backend."""

__version__ = "0.1.0"
