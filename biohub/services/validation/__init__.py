"""Validation of DwC archives against style schemas."""
