"""Fetch freelance listings, classify them, and mirror them to a project board."""

__version__ = "0.3.0"
