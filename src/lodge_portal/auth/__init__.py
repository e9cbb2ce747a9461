"""Sessions, auth state and account flows."""
