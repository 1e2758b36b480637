"""Unit 2B voice command engine."""

__version__ = "0.4.0"
