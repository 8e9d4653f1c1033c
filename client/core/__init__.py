"""Core data model, live state and lifecycle helpers."""
