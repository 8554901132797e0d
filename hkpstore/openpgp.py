"""
hkpstore.openpgp
----------------
PGPy-backed packet codec.

Converts between stored packet bytes and ``Entity`` values. The native
``pgpy.PGPKey`` is kept on ``Entity.material`` so that serialization
writes back the exact packets that were parsed.
"""

from __future__ import annotations
import logging
from datetime import timezone
from typing import List

import pgpy

from hkpstore.codec import KeyCodec
from hkpstore.errors import DerivationError, SerializationError
from hkpstore.models import Entity, KeyRing, SelfSignature, UserIdentity

log = logging.getLogger("hkpstore.openpgp")


def _utc(dt):
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def userid_string(uid: pgpy.PGPUID) -> str:
    parts = [uid.name] if uid.name else []
    if uid.comment:
        parts.append(f"({uid.comment})")
    if uid.email:
        parts.append(f"<{uid.email}>")
    return " ".join(parts)


def entity_from_key(key: pgpy.PGPKey) -> Entity:
    identities: List[UserIdentity] = []
    for uid in key.userids:
        sig = uid.selfsig
        if sig is None:
            log.debug(f"skipping user id without self-signature on {key.fingerprint}")
            continue
        lifetime = sig.key_expiration
        identities.append(UserIdentity(
            name=userid_string(uid),
            email=uid.email or "",
            self_signature=SelfSignature(
                creation_time=_utc(sig.created),
                key_lifetime=int(lifetime.total_seconds()) if lifetime is not None else None,
                is_primary_id=uid.is_primary,
            ),
        ))

    return Entity(
        fingerprint=bytes.fromhex(str(key.fingerprint).replace(" ", "")),
        creation_time=_utc(key.created),
        algorithm=int(key.key_algorithm),
        identities=identities,
        material=key,
    )


class PGPyCodec(KeyCodec):
    def read_key_ring(self, data: bytes) -> KeyRing:
        try:
            parsed = pgpy.PGPKey.from_blob(data)
            # from_blob returns (first key, other keys) when the blob holds several
            key, others = parsed if isinstance(parsed, tuple) else (parsed, None)

            ring = [entity_from_key(key)]
            seen = {str(key.fingerprint)}
            for other in (others or {}).values():
                if not other.is_primary or str(other.fingerprint) in seen:
                    continue
                seen.add(str(other.fingerprint))
                ring.append(entity_from_key(other))
        except Exception as e:
            raise SerializationError(f"failed to read key ring: {e}") from e
        return ring

    def serialize(self, entity: Entity) -> bytes:
        key = entity.material
        if key is None:
            raise SerializationError("entity carries no key material")
        if not key.is_public:
            key = key.pubkey
        try:
            return bytes(key)
        except Exception as e:
            raise SerializationError(f"failed to serialize public key: {e}") from e

    def bit_length(self, entity: Entity) -> int:
        key = entity.material
        if key is None:
            raise DerivationError("entity carries no key material")
        try:
            size = key.key_size
        except Exception as e:
            raise DerivationError(f"failed to get key bit length: {e}") from e
        # Curve keys report an OID that carries its own size
        size = getattr(size, "key_size", size)
        if not isinstance(size, int) or size <= 0:
            raise DerivationError(f"unsupported key size {size!r}")
        return size
