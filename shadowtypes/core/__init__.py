"""Core data model, errors, loading and reporting."""
