"""Seasonal garden visualization service."""

__version__ = "0.1.0"
