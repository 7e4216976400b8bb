"""Synthetic monitoring for web registration forms."""

__version__ = "0.1.0"
