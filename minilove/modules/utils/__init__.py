"""Shared helpers: password hashing and content analysis."""
