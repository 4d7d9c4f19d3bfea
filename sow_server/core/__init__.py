"""Interview, context and document generation logic."""
