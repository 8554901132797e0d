from datetime import timedelta

import pytest

pgpy = pytest.importorskip("pgpy")
from pgpy.constants import (  # noqa: E402
    CompressionAlgorithm, HashAlgorithm, KeyFlags, PubKeyAlgorithm, SymmetricKeyAlgorithm,
)

from hkpstore import Backend  # noqa: E402
from hkpstore.openpgp import PGPyCodec, entity_from_key  # noqa: E402
from hkpstore.storage import SQLiteStorage  # noqa: E402
from hkpstore.utils import to_unix  # noqa: E402

PREFS = dict(
    usage={KeyFlags.Sign, KeyFlags.Certify},
    hashes=[HashAlgorithm.SHA256],
    ciphers=[SymmetricKeyAlgorithm.AES256],
    compression=[CompressionAlgorithm.ZLIB],
)


@pytest.fixture(scope="module")
def rsa_key():
    key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, 2048)
    key.add_uid(pgpy.PGPUID.new("Alice", email="alice@example.com"), primary=True, **PREFS)
    key.add_uid(pgpy.PGPUID.new("Alice", comment="work", email="alice@corp.example"), **PREFS)
    return key.pubkey


@pytest.fixture(scope="module")
def expiring_key():
    key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, 2048)
    key.add_uid(pgpy.PGPUID.new("Bob", email="bob@example.com"),
                key_expiration=timedelta(seconds=3600), **PREFS)
    return key.pubkey


def test_entity_from_key(rsa_key):
    entity = entity_from_key(rsa_key)
    assert entity.fingerprint.hex().upper() == str(rsa_key.fingerprint).replace(" ", "")
    assert len(entity.fingerprint) == 20
    assert entity.algorithm == 1
    names = [i.name for i in entity.identities]
    assert "Alice <alice@example.com>" in names
    assert "Alice (work) <alice@corp.example>" in names
    primary = [i for i in entity.identities if i.self_signature.is_primary_id]
    assert [i.email for i in primary] == ["alice@example.com"]


def test_codec_bit_length_and_round_trip(rsa_key):
    codec = PGPyCodec()
    entity = entity_from_key(rsa_key)
    assert codec.bit_length(entity) == 2048

    data = codec.serialize(entity)
    ring = codec.read_key_ring(data)
    assert [e.fingerprint for e in ring] == [entity.fingerprint]
    assert codec.serialize(ring[0]) == data


def test_garbage_is_a_serialization_error():
    from hkpstore.errors import SerializationError

    with pytest.raises(SerializationError):
        PGPyCodec().read_key_ring(b"\x00\x01\x02 definitely not openpgp")


def test_import_and_lookup_real_keys(rsa_key, expiring_key):
    codec = PGPyCodec()
    be = Backend(SQLiteStorage(":memory:"), codec)
    try:
        be.import_key_ring(bytes(rsa_key))
        be.import_key_ring(bytes(expiring_key))

        fpr_hex = str(rsa_key.fingerprint).replace(" ", "")
        ring = be.get(fpr_hex)
        assert len(ring) == 1
        assert codec.serialize(ring[0]) == bytes(rsa_key)

        [alice] = be.index(fpr_hex)
        assert alice.bit_length == 2048
        assert alice.algorithm == 1
        assert alice.expiration_time is None
        assert len(alice.identities) == 2

        [bob] = be.index("bob@example.com")
        sig = entity_from_key(expiring_key).identities[0].self_signature
        assert to_unix(bob.expiration_time) == to_unix(sig.creation_time) + 3600

        assert len(list(be.export())) == 2
    finally:
        be.close()
