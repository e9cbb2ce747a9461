"""Privileged administration: user deletion."""
