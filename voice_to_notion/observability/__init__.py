"""Structured logging and run metrics."""
