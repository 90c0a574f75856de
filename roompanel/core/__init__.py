"""Core infrastructure: configuration, HTTP client and time helpers."""
