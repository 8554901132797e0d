"""
hkpstore.utils
--------------
Small conversions shared by the importer and lookup paths: fingerprint
slicing into key ids, and unix-second timestamps with 0 meaning "never".
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional

FINGERPRINT_LEN = 20


def fingerprint_hex(fpr: bytes) -> str:
    return fpr.hex().upper()


def keyid64(fpr: bytes) -> int:
    # SQLite integers are signed 64-bit
    v = int.from_bytes(fpr[-8:], "big")
    return to_signed64(v)


def keyid32(fpr: bytes) -> int:
    return int.from_bytes(fpr[-4:], "big")


def to_signed64(v: int) -> int:
    return v - (1 << 64) if v >= (1 << 63) else v


def to_unix(dt: Optional[datetime]) -> int:
    if dt is None:
        return 0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def from_unix(ts: Optional[int]) -> Optional[datetime]:
    if not ts:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc)
