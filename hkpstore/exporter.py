"""
hkpstore.exporter
-----------------
Streams every stored key for mirroring or bulk re-publication.
"""

from __future__ import annotations
import logging, sqlite3
from typing import Iterator
from hkpstore.codec import KeyCodec
from hkpstore.errors import SerializationError, StoreError
from hkpstore.models import KeyRing
from hkpstore.storage import SQLiteStorage

log = logging.getLogger("hkpstore.export")


class KeyExporter:
    def __init__(self, storage: SQLiteStorage, codec: KeyCodec):
        self.storage = storage
        self.codec = codec

    def export(self) -> Iterator[KeyRing]:
        """
        Yield one key ring per stored key, in store scan order.

        Each call opens its own cursor, which is closed when the generator
        finishes, raises, or is closed early by the consumer. Rows are
        fetched one at a time so the store is never buffered in memory.
        A row that fails to parse aborts the export.
        """
        cur = self.storage.execute("SELECT id, packets FROM keys")
        count = 0
        try:
            while True:
                try:
                    row = cur.fetchone()
                except sqlite3.Error as e:
                    raise StoreError(f"failed to read key rows: {e}") from e
                if row is None:
                    break

                key_id, packets = row
                try:
                    ring = self.codec.read_key_ring(bytes(packets))
                except Exception as e:
                    log.error(f"export aborted at key row {key_id}: {e}")
                    raise SerializationError(f"failed to parse key row {key_id}: {e}") from e

                yield ring
                count += 1
        finally:
            cur.close()
            log.debug(f"export closed after {count} keys")
