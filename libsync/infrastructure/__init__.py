"""Couche infrastructure (persistance SQLite)."""
