"""
hkpstore.backend
----------------
Composition root: one storage session and one codec shared by the lookup,
import and export components, plus the factory that builds it from config.
"""

from __future__ import annotations
import os
from typing import Iterator, List
from hkpstore.codec import KeyCodec
from hkpstore.exporter import KeyExporter
from hkpstore.importer import KeyImporter
from hkpstore.logger import get_logger
from hkpstore.lookup import KeyLookupService
from hkpstore.models import Entity, IndexKey, KeyRing
from hkpstore.search import SearchTranslator
from hkpstore.storage import SQLiteStorage
from hkpstore.wkd import hash_address


class Backend:
    """Storage backend behind an HKP/WKD frontend."""

    def __init__(self, storage: SQLiteStorage, codec: KeyCodec, address_hasher=hash_address):
        self.storage = storage
        self.codec = codec
        translator = SearchTranslator()
        self.lookup = KeyLookupService(storage, codec, translator)
        self.importer = KeyImporter(storage, codec, translator, address_hasher=address_hasher)
        self.exporter = KeyExporter(storage, codec)

    def get(self, search: str) -> KeyRing:
        return self.lookup.get(search)

    def index(self, search: str) -> List[IndexKey]:
        return self.lookup.index(search)

    def get_by_address_hash(self, wkd_hash: str) -> KeyRing:
        return self.lookup.get_by_address_hash(wkd_hash)

    def import_entity(self, entity: Entity) -> int:
        return self.importer.import_entity(entity)

    def import_key_ring(self, data: bytes) -> List[int]:
        """
        Parse ``data`` and import each key found in it, in order.

        Every key gets its own transaction, so a failure leaves the keys
        before it stored and stops at the failing one.
        """
        return [self.importer.import_entity(e) for e in self.codec.read_key_ring(data)]

    def export(self) -> Iterator[KeyRing]:
        return self.exporter.export()

    def close(self):
        self.storage.close()


def load_backend(config: dict | None = None) -> Backend:
    """
    Factory resolver for the runtime backend.

    Keys: ``db_path`` (env HKPSTORE_DB_PATH), ``log_level``
    (env HKPSTORE_LOG_LEVEL), ``log_file`` (env HKPSTORE_LOG_FILE),
    ``codec`` and ``address_hasher``.
    """
    config = config or {}
    level = config.get("log_level") or os.getenv("HKPSTORE_LOG_LEVEL", "INFO")
    log = get_logger("hkpstore", level=level, to_file=config.get("log_file"))

    db_path = config.get("db_path") or os.getenv("HKPSTORE_DB_PATH", "db/hkpstore.db")

    codec = config.get("codec")
    if codec is None:
        from hkpstore.openpgp import PGPyCodec
        codec = PGPyCodec()

    log.info(f"opening key store at {db_path}")
    return Backend(
        SQLiteStorage(str(db_path)),
        codec,
        address_hasher=config.get("address_hasher") or hash_address,
    )
