"""
hkpstore.errors
---------------
Error taxonomy for the key directory backend.

Lookups that match nothing are not errors; they return an empty list.
Every other failure is raised to the immediate caller, chained to the
underlying library exception, and never retried here.
"""

from __future__ import annotations


class KeyStoreError(Exception):
    pass


class IntegrityError(KeyStoreError):
    """A fingerprint of the wrong length was stored or submitted."""
    pass


class DerivationError(KeyStoreError):
    """Bit length, address hash, or primary self-signature could not be derived."""
    pass


class SerializationError(KeyStoreError):
    """Key material could not be converted to or from its packet form."""
    pass


class TransactionError(KeyStoreError):
    """BEGIN, COMMIT or ROLLBACK failed."""
    pass


class StoreError(KeyStoreError):
    """A query against the relational store failed."""
    pass


class DuplicateKeyError(StoreError):
    """The fingerprint is already stored; imports never overwrite a key."""
    pass
