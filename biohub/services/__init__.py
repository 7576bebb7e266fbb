"""Pipeline services: one module per step."""
