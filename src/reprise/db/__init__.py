"""
Database package for Reprise.

This package contains the key-value table model and connection management.
"""

from reprise.db.connection import DatabaseManager
from reprise.db.models import Base, KVEntry

__all__ = [
    "Base",
    "KVEntry",
    "DatabaseManager",
]
