"""Snippet-driven Logic App workflow generator."""

__version__ = "1.0.0"
