"""Scheduled, cache-backed repository language analysis."""

__version__ = "1.0.0"
