"""Shared infrastructure: logging, errors, results and timeouts."""
