"""
hkpstore.lookup
---------------
Read side of the key directory: full key retrieval (``get``), summary
listings (``index``) and Web Key Directory retrieval by address hash.
"""

from __future__ import annotations
import logging, sqlite3
from typing import List
from hkpstore.codec import KeyCodec
from hkpstore.errors import IntegrityError, SerializationError, StoreError
from hkpstore.models import IndexIdentity, IndexKey, KeyRing
from hkpstore.search import SearchTranslator
from hkpstore.storage import SQLiteStorage
from hkpstore.utils import FINGERPRINT_LEN, from_unix

log = logging.getLogger("hkpstore.lookup")


class KeyLookupService:
    def __init__(self, storage: SQLiteStorage, codec: KeyCodec, translator: SearchTranslator = None):
        self.storage = storage
        self.codec = codec
        self.translator = translator or SearchTranslator()

    def get(self, search: str) -> KeyRing:
        """Return every stored key matching ``search``; empty when none do."""
        pred = self.translator.translate(search)
        log.debug(f"get kind={pred.kind.value}")
        return self._read_packets(
            "SELECT DISTINCT keys.id, keys.packets "
            "FROM keys JOIN identities ON keys.id = identities.key_id "
            f"WHERE {pred.where} ORDER BY keys.id",
            (pred.param,),
        )

    def get_by_address_hash(self, wkd_hash: str) -> KeyRing:
        return self._read_packets(
            "SELECT DISTINCT keys.id, keys.packets "
            "FROM keys JOIN identities ON keys.id = identities.key_id "
            "WHERE identities.wkd_hash = ? ORDER BY keys.id",
            (wkd_hash,),
        )

    def index(self, search: str) -> List[IndexKey]:
        """
        Summarize the keys matching ``search``.

        One query selects the matching keys, then one query per key fetches
        its identities in store order. A stored fingerprint that is not
        exactly 20 bytes is corruption and aborts the whole call.
        """
        pred = self.translator.translate(search)
        log.debug(f"index kind={pred.kind.value}")
        rows = self._fetch_all(
            "SELECT DISTINCT keys.id, keys.fingerprint, keys.creation_time, "
            "keys.expiration_time, keys.algo, keys.bit_length "
            "FROM keys JOIN identities ON keys.id = identities.key_id "
            f"WHERE {pred.where} ORDER BY keys.id",
            (pred.param,),
        )

        keys = []
        for key_id, fingerprint, created, expires, algo, bit_length in rows:
            if fingerprint is None or len(fingerprint) != FINGERPRINT_LEN:
                log.error(f"invalid fingerprint length for key row {key_id}")
                raise IntegrityError(f"invalid key fingerprint length in DB (key row {key_id})")

            idents = [
                IndexIdentity(name=name, creation_time=from_unix(ic), expiration_time=from_unix(ie))
                for name, ic, ie in self._fetch_all(
                    "SELECT name, creation_time, expiration_time FROM identities WHERE key_id = ?",
                    (key_id,),
                )
            ]
            keys.append(IndexKey(
                fingerprint=bytes(fingerprint),
                creation_time=from_unix(created),
                expiration_time=from_unix(expires),
                algorithm=algo,
                bit_length=bit_length,
                identities=idents,
            ))
        return keys

    def _fetch_all(self, sql: str, params: tuple) -> list:
        cur = self.storage.execute(sql, params)
        try:
            return cur.fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"failed to read rows: {e}") from e
        finally:
            cur.close()

    def _read_packets(self, sql: str, params: tuple) -> KeyRing:
        ring: KeyRing = []
        for key_id, packets in self._fetch_all(sql, params):
            try:
                ring.extend(self.codec.read_key_ring(bytes(packets)))
            except Exception as e:
                raise SerializationError(f"failed to parse key row {key_id}: {e}") from e
        return ring
