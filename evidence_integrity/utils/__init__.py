"""Logging and resilience helpers."""
