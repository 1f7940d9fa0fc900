"""Logging, correlation and secret helpers for dbcomparer."""
