"""Ticker-aware social feed API."""

__version__ = "1.0.0"
