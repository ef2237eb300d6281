"""Service-layer helpers for API operations."""
