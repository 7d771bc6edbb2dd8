"""Curated feed intake: classify inbound items, resolve commands, moderate submissions."""

__version__ = "0.1.0"
