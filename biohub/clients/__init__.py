"""Clients for external collaborators: object storage, search index, virus scanning."""
