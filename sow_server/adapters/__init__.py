"""Adapters for external collaborators (identity, object storage)."""
