"""Persistence layer for research sessions."""
