# hkpstore/codec.py
from __future__ import annotations
from hkpstore.models import Entity, KeyRing


class KeyCodec:
    """
    Packet-format collaborator: turns stored bytes into entities and back.

    Implementations raise ``SerializationError`` for malformed input and
    ``DerivationError`` when the key size cannot be determined.
    """
    # Interface
    def read_key_ring(self, data: bytes) -> KeyRing: ...
    def serialize(self, entity: Entity) -> bytes: ...
    def bit_length(self, entity: Entity) -> int: ...
