import json
from datetime import datetime, timezone

import pytest

from hkpstore.codec import KeyCodec
from hkpstore.errors import SerializationError
from hkpstore.models import Entity, SelfSignature, UserIdentity
from hkpstore.storage import SQLiteStorage

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class JSONCodec(KeyCodec):
    """Stand-in packet codec: entities as canonical JSON."""

    def serialize(self, entity):
        return json.dumps({
            "fpr": entity.fingerprint.hex(),
            "created": int(entity.creation_time.timestamp()),
            "algo": entity.algorithm,
            "bits": entity.material["bits"],
            "uids": [
                {
                    "name": i.name,
                    "email": i.email,
                    "created": int(i.self_signature.creation_time.timestamp()),
                    "lifetime": i.self_signature.key_lifetime,
                    "primary": i.self_signature.is_primary_id,
                }
                for i in entity.identities
            ],
        }, sort_keys=True).encode("utf-8")

    def read_key_ring(self, data):
        try:
            d = json.loads(data.decode("utf-8"))
        except ValueError as e:
            raise SerializationError(str(e)) from e
        return [Entity(
            fingerprint=bytes.fromhex(d["fpr"]),
            creation_time=datetime.fromtimestamp(d["created"], tz=timezone.utc),
            algorithm=d["algo"],
            identities=[
                UserIdentity(
                    name=u["name"],
                    email=u["email"],
                    self_signature=SelfSignature(
                        creation_time=datetime.fromtimestamp(u["created"], tz=timezone.utc),
                        key_lifetime=u["lifetime"],
                        is_primary_id=u["primary"],
                    ),
                )
                for u in d["uids"]
            ],
            material={"bits": d["bits"]},
        )]

    def bit_length(self, entity):
        return entity.material["bits"]


def make_identity(name, email=None, lifetime=None, primary=None, created=T0):
    return UserIdentity(
        name=name,
        email=email if email is not None else name.split("<")[-1].rstrip(">"),
        self_signature=SelfSignature(creation_time=created, key_lifetime=lifetime, is_primary_id=primary),
    )


def make_entity(fpr=b"\xaa" * 20, identities=None, algo=1, bits=2048, created=T0):
    if identities is None:
        identities = [make_identity("Alice <alice@example.com>")]
    return Entity(
        fingerprint=fpr,
        creation_time=created,
        algorithm=algo,
        identities=identities,
        material={"bits": bits},
    )


def fpr_of(n: int) -> bytes:
    return bytes([0x10 + n]) * 12 + n.to_bytes(8, "big")


@pytest.fixture
def storage(tmp_path):
    s = SQLiteStorage(str(tmp_path / "keys.db"))
    yield s
    s.close()


@pytest.fixture
def codec():
    return JSONCodec()


def count_rows(storage, table):
    return storage.fetch_one(f"SELECT COUNT(*) FROM {table}")[0]


