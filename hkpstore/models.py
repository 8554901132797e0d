# hkpstore/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional


@dataclass
class SelfSignature:
    """
    Validity metadata carried by a key's signature over one of its own
    user IDs. ``key_lifetime`` is in seconds; None means the subpacket
    was absent.
    """
    creation_time: datetime
    key_lifetime: Optional[int] = None
    is_primary_id: Optional[bool] = None


@dataclass
class UserIdentity:
    name: str
    email: str
    self_signature: SelfSignature


@dataclass
class Entity:
    """
    A parsed public key with its bound identities.

    ``material`` holds the codec's native key object and is opaque to the
    storage layer; only the codec reads it.
    """
    fingerprint: bytes
    creation_time: datetime
    algorithm: int
    identities: List[UserIdentity] = field(default_factory=list)
    material: Any = None


KeyRing = List[Entity]


@dataclass
class IndexIdentity:
    name: str
    creation_time: Optional[datetime]
    expiration_time: Optional[datetime] = None   # None = never


@dataclass
class IndexKey:
    """Summary record returned by index lookups."""
    fingerprint: bytes
    creation_time: Optional[datetime]
    expiration_time: Optional[datetime]
    algorithm: int
    bit_length: int
    identities: List[IndexIdentity] = field(default_factory=list)
