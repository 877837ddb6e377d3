"""Bento Order API: group meal ordering for meetings."""

__version__ = "0.1.0"
