"""
Persistence layer for client-local data.

Provides SQLite-based key/value storage for dice favorites.
"""

from tabletop.persistence.database import (
    Database,
    SqliteFavoriteStorage,
)


__all__ = [
    "Database",
    "SqliteFavoriteStorage",
]
