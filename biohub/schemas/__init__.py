"""Pydantic request/response and read schemas."""
