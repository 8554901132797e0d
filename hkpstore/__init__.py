"""
hkpstore
========
Storage and lookup backend for an OpenPGP public-key directory.

Provides:
- Search term classification (fingerprint, key ids, free text)
- Key lookup and index summaries over SQLite
- Atomic import of parsed keys with their user identities
- Streaming export of every stored key
"""

from .backend import Backend, load_backend
from .errors import (
    KeyStoreError,
    IntegrityError,
    DerivationError,
    SerializationError,
    TransactionError,
    StoreError,
    DuplicateKeyError,
)
from .models import Entity, UserIdentity, SelfSignature, IndexKey, IndexIdentity

__all__ = [
    "Backend",
    "load_backend",
    "KeyStoreError",
    "IntegrityError",
    "DerivationError",
    "SerializationError",
    "TransactionError",
    "StoreError",
    "DuplicateKeyError",
    "Entity",
    "UserIdentity",
    "SelfSignature",
    "IndexKey",
    "IndexIdentity",
]
