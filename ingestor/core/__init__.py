"""Core ingestion components."""
