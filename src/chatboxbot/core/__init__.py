"""Shared infrastructure: configuration, exceptions and error logging."""
