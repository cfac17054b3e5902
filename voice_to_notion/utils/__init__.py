"""Shared error taxonomy and retry helpers."""
