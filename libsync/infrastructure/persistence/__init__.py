"""Persistance SQLite (SQLModel) du catalogue et des statuts de synchronisation."""

from libsync.infrastructure.persistence.database import create_db_engine, init_db

__all__ = ["create_db_engine", "init_db"]
