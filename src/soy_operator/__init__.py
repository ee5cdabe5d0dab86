"""Operator job for the SOY lottery contracts."""

__version__ = "1.0.0"
