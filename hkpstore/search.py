"""
hkpstore.search
---------------
Classifies a raw lookup term into exactly one SQL predicate.

Kinds are tried in a fixed priority order and the first one that parses
wins: full fingerprint, 64-bit key id, 32-bit key id, then free text.
The returned fragment is meant to be embedded in a query joining ``keys``
and ``identities`` and always carries a single bound parameter.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple
from hkpstore.utils import FINGERPRINT_LEN, to_signed64


class SearchKind(Enum):
    FINGERPRINT = "fingerprint"
    KEY_ID64 = "keyid64"
    KEY_ID32 = "keyid32"
    FREE_TEXT = "text"


@dataclass(frozen=True)
class SearchPredicate:
    kind: SearchKind
    where: str
    param: Any


def _hex_term(search: str, ndigits: int) -> Optional[bytes]:
    term = search.strip()
    if term[:2] in ("0x", "0X"):
        term = term[2:]
    if len(term) != ndigits:
        return None
    try:
        return bytes.fromhex(term)
    except ValueError:
        return None


def parse_fingerprint(search: str) -> Optional[SearchPredicate]:
    raw = _hex_term(search, FINGERPRINT_LEN * 2)
    if raw is None:
        return None
    return SearchPredicate(SearchKind.FINGERPRINT, "keys.fingerprint = ?", raw)


def parse_keyid64(search: str) -> Optional[SearchPredicate]:
    raw = _hex_term(search, 16)
    if raw is None:
        return None
    return SearchPredicate(SearchKind.KEY_ID64, "keys.keyid64 = ?",
                           to_signed64(int.from_bytes(raw, "big")))


def parse_keyid32(search: str) -> Optional[SearchPredicate]:
    raw = _hex_term(search, 8)
    if raw is None:
        return None
    return SearchPredicate(SearchKind.KEY_ID32, "keys.keyid32 = ?",
                           int.from_bytes(raw, "big"))


# Matches nothing; a blank term would otherwise select the whole store
NO_MATCH = "0 = ?"


def free_text(search: str) -> SearchPredicate:
    term = search.strip().casefold()
    if not term:
        return SearchPredicate(SearchKind.FREE_TEXT, NO_MATCH, 1)
    term = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return SearchPredicate(
        SearchKind.FREE_TEXT,
        "casefold(identities.name) LIKE ? ESCAPE '\\'",
        f"%{term}%",
    )


# Priority order. free_text always succeeds so it must stay last.
CLASSIFIERS: Tuple[Callable[[str], Optional[SearchPredicate]], ...] = (
    parse_fingerprint,
    parse_keyid64,
    parse_keyid32,
    free_text,
)


class SearchTranslator:
    def __init__(self, classifiers=CLASSIFIERS):
        self.classifiers = classifiers

    def translate(self, search: str) -> SearchPredicate:
        for classify in self.classifiers:
            pred = classify(search)
            if pred is not None:
                return pred
        raise ValueError(f"unclassifiable search term: {search!r}")

    def for_fingerprint(self, fpr: bytes) -> SearchPredicate:
        pred = self.translate(fpr.hex())
        if pred.kind is not SearchKind.FINGERPRINT:
            raise ValueError(f"not a fingerprint: {fpr.hex()}")
        return pred
