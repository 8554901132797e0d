import pytest

from hkpstore.errors import DerivationError
from hkpstore.wkd import hash_address, zbase32_encode


def test_hash_address_known_vector():
    assert hash_address("Joe.Doe@Example.ORG") == "iy9q119eutrkn8s1mk4r39qejnbu3n5q"


def test_hash_ignores_domain_and_local_case():
    assert hash_address("JOE.DOE@elsewhere.example") == hash_address("joe.doe@Example.ORG")


@pytest.mark.parametrize("addr", ["", "no-at-sign", "@example.org", None])
def test_invalid_addresses(addr):
    with pytest.raises(DerivationError):
        hash_address(addr)


def test_zbase32_encode():
    assert zbase32_encode(b"") == ""
    assert zbase32_encode(b"\x00") == "yy"
    assert len(zbase32_encode(b"\xff" * 20)) == 32
