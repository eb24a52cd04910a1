"""Vacations: leave accounting service."""

__version__ = "1.0.0"
