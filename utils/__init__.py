"""Formatting and input validation helpers."""
