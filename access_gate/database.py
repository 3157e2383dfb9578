"""MongoDB connection management for the shared request store."""

from __future__ import annotations

import os
from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

DEFAULT_URI = "mongodb://localhost:27017/"
DEFAULT_DATABASE = "access_gate"

# Server selection timeout. pymongo waits 30s by default.
DEFAULT_TIMEOUT_MS = 5000

_client: Optional[MongoClient] = None
_database: Optional[Database] = None


def mongodb_enabled() -> bool:
    """Return True when ENABLE_MONGODB is set to "true"."""
    return os.getenv("ENABLE_MONGODB", "false").lower() == "true"


def get_mongo_client() -> MongoClient:
    """Get or create the shared MongoDB client from MONGODB_URI."""
    global _client
    if _client is None:
        _client = MongoClient(
            os.getenv("MONGODB_URI", DEFAULT_URI),
            serverSelectionTimeoutMS=int(os.getenv("MONGODB_TIMEOUT_MS", DEFAULT_TIMEOUT_MS)),
            tz_aware=True,
        )
    return _client


def get_database() -> Database:
    """Get the database named by MONGODB_DATABASE."""
    global _database
    if _database is None:
        _database = get_mongo_client()[os.getenv("MONGODB_DATABASE", DEFAULT_DATABASE)]
    return _database


def close_mongo_connection() -> None:
    """Close the client so the next call reconnects."""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
