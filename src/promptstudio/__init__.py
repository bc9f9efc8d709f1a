"""Prompt Studio team identity and authorization core."""

__version__ = "0.1.0"
