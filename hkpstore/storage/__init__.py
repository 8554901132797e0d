# hkpstore/storage/__init__.py

from .sqlite_provider import SQLiteStorage

__all__ = [
    "SQLiteStorage",
]
