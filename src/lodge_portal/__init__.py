"""Lodge portal: member authentication, route access and profile data."""

__version__ = "0.1.0"
