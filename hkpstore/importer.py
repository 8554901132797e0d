"""
hkpstore.importer
-----------------
Write side of the key directory.

A parsed entity becomes one ``keys`` row plus one ``identities`` row per
user ID, all inside a single transaction. Everything that can fail without
touching the store (primary signature choice, bit length, serialization)
runs before BEGIN; anything failing after BEGIN rolls the whole key back.
"""

from __future__ import annotations
import logging, sqlite3
from datetime import timedelta
from typing import Callable, Optional
from hkpstore.codec import KeyCodec
from hkpstore.errors import (
    DerivationError, DuplicateKeyError, IntegrityError, KeyStoreError,
    SerializationError, StoreError,
)
from hkpstore.models import Entity, SelfSignature
from hkpstore.search import SearchTranslator
from hkpstore.storage import SQLiteStorage
from hkpstore.utils import FINGERPRINT_LEN, fingerprint_hex, keyid32, keyid64, to_unix
from hkpstore.wkd import hash_address

log = logging.getLogger("hkpstore.import")


def primary_self_signature(entity: Entity) -> SelfSignature:
    """
    Pick the self-signature that describes the key as a whole.

    The first identity's signature is the default. The first identity whose
    signature is flagged as primary user ID replaces it; later flagged
    identities are ignored.
    """
    selected: Optional[SelfSignature] = None
    for ident in entity.identities:
        sig = ident.self_signature
        if selected is None:
            selected = sig
            if sig.is_primary_id:
                break
        elif sig.is_primary_id:
            selected = sig
            break
    if selected is None:
        raise DerivationError(f"key {fingerprint_hex(entity.fingerprint)} has no identities")
    return selected


def signature_expiration_time(sig: SelfSignature) -> int:
    """Unix expiration time for ``sig``, or 0 when it never expires."""
    if not sig.key_lifetime:
        return 0
    return to_unix(sig.creation_time + timedelta(seconds=sig.key_lifetime))


class KeyImporter:
    def __init__(
        self,
        storage: SQLiteStorage,
        codec: KeyCodec,
        translator: SearchTranslator = None,
        address_hasher: Callable[[str], str] = hash_address,
    ):
        self.storage = storage
        self.codec = codec
        self.translator = translator or SearchTranslator()
        self.address_hasher = address_hasher

    def import_entity(self, entity: Entity) -> int:
        """Persist ``entity`` atomically and return the new key row id."""
        fpr = bytes(entity.fingerprint)
        if len(fpr) != FINGERPRINT_LEN:
            raise IntegrityError(f"invalid key fingerprint length: {len(fpr)} bytes")
        fpr_hex = fingerprint_hex(fpr)

        sig = primary_self_signature(entity)

        try:
            bit_length = self.codec.bit_length(entity)
        except KeyStoreError:
            raise
        except Exception as e:
            raise DerivationError(f"failed to get key bit length for {fpr_hex}: {e}") from e

        try:
            packets = self.codec.serialize(entity)
        except KeyStoreError:
            raise
        except Exception as e:
            raise SerializationError(f"failed to serialize public key {fpr_hex}: {e}") from e

        try:
            with self.storage.transaction() as db:
                self._check_not_stored(fpr)
                key_id = self._insert_key(db, entity, fpr, sig, bit_length, packets)
                for ident in entity.identities:
                    self._insert_identity(db, key_id, ident)
        except KeyStoreError as e:
            log.error(f"import of {fpr_hex} failed: {e}")
            raise

        log.info(f"imported key {fpr_hex} with {len(entity.identities)} identities")
        return key_id

    def _check_not_stored(self, fpr: bytes) -> None:
        # runs on this thread's connection, inside the open transaction
        pred = self.translator.for_fingerprint(fpr)
        if self.storage.fetch_one(f"SELECT 1 FROM keys WHERE {pred.where}", (pred.param,)):
            raise DuplicateKeyError(f"key {fingerprint_hex(fpr)} is already stored")

    def _insert_key(self, db, entity: Entity, fpr: bytes, sig: SelfSignature,
                    bit_length: int, packets: bytes) -> int:
        try:
            cur = db.execute(
                "INSERT INTO keys(fingerprint, keyid64, keyid32, creation_time, "
                "expiration_time, algo, bit_length, packets) VALUES(?,?,?,?,?,?,?,?)",
                (fpr, keyid64(fpr), keyid32(fpr), to_unix(entity.creation_time),
                 signature_expiration_time(sig), int(entity.algorithm), bit_length, packets),
            )
        except sqlite3.IntegrityError as e:
            raise DuplicateKeyError(f"failed to insert key {fingerprint_hex(fpr)}: {e}") from e
        except sqlite3.Error as e:
            raise StoreError(f"failed to insert key {fingerprint_hex(fpr)}: {e}") from e
        return cur.lastrowid

    def _insert_identity(self, db, key_id: int, ident) -> None:
        try:
            wkd_hash = self.address_hasher(ident.email)
        except DerivationError:
            raise
        except Exception as e:
            raise DerivationError(f"failed to hash email for {ident.name!r}: {e}") from e

        sig = ident.self_signature
        try:
            db.execute(
                "INSERT INTO identities(key_id, name, creation_time, expiration_time, wkd_hash) "
                "VALUES(?,?,?,?,?)",
                (key_id, ident.name, to_unix(sig.creation_time),
                 signature_expiration_time(sig), wkd_hash),
            )
        except sqlite3.Error as e:
            raise StoreError(f"failed to insert identity {ident.name!r}: {e}") from e
