"""
hkpstore.wkd
------------
Web Key Directory address hashing.

The hash of an address is the SHA-1 digest of its lower-cased local part,
encoded with z-base-32. Keyservers index identities by this value so that
``/.well-known/openpgpkey/hu/<hash>`` requests can be answered from the
same tables as HKP lookups.
"""

from __future__ import annotations
from cryptography.hazmat.primitives import hashes
from hkpstore.errors import DerivationError

ZBASE32_ALPHABET = "ybndrfg8ejkmcpqxot1uwisza345h769"


def zbase32_encode(data: bytes) -> str:
    bits = int.from_bytes(data, "big")
    nbits = len(data) * 8
    pad = (-nbits) % 5
    bits <<= pad
    nbits += pad
    out = []
    for shift in range(nbits - 5, -1, -5):
        out.append(ZBASE32_ALPHABET[(bits >> shift) & 0x1F])
    return "".join(out)


def hash_address(addr: str) -> str:
    local, sep, _domain = (addr or "").partition("@")
    if not sep or not local:
        raise DerivationError(f"invalid email address: {addr!r}")
    digest = hashes.Hash(hashes.SHA1())
    digest.update(local.lower().encode("utf-8"))
    return zbase32_encode(digest.finalize())
