"""Fuzzy product search and in-store location service for retail kiosks."""

__version__ = "0.1.0"
