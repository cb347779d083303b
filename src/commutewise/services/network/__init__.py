"""Persisted route network view."""
