"""Tests for DAG-CBOR content identifiers and did:plc derivation."""

import hashlib
import re

import dag_cbor
import pytest

from plcid.encoding import base32_encode
from plcid.errors import EncodingError
from plcid.plc.cid import canonical_cbor, cid_digest, cid_for, did_for_genesis

SAMPLE_OP = {
    "type": "plc_operation",
    "rotationKeys": ["did:key:zQ3shexample"],
    "verificationMethods": {"fair_abc123": "did:key:z6Mkexample"},
    "alsoKnownAs": [],
    "services": {},
    "prev": None,
    "sig": "c2ln",
}

# Canonical DAG-CBOR of SAMPLE_OP: keys sorted by length, then bytewise.
SAMPLE_OP_CBOR = bytes.fromhex(
    "a7637369676463326c6e6470726576f664747970656d706c635f6f7065726174696f6e"
    "687365727669636573a06b616c736f4b6e6f776e4173806c726f746174696f6e4b6579"
    "7381746469643a6b65793a7a513373686578616d706c6573766572696669636174696f"
    "6e4d6574686f6473a16b666169725f616263313233736469643a6b65793a7a364d6b65"
    "78616d706c65"
)
SAMPLE_OP_SHA256 = "21f2cdd8a4b86f9b83a74ee56c140475daf803db971bf56631bc5f05d47092ca"
SAMPLE_OP_CID = "bafyreibb6lg5rjfyn6nyhj2o4vwbibdv3l4ahw4xdp2wmmn4l4c5i4eszi"
SAMPLE_OP_DID = "did:plc:ehzm3wfexbxzxa5hj3swyfae"


class TestKnownAnswer:
    """Fixed bytes, CID and DID for a fixed operation."""

    def test_canonical_cbor_bytes(self) -> None:
        assert canonical_cbor(SAMPLE_OP) == SAMPLE_OP_CBOR
        assert hashlib.sha256(SAMPLE_OP_CBOR).hexdigest() == SAMPLE_OP_SHA256

    def test_unsigned_payload_keeps_null_prev(self) -> None:
        unsigned = {k: v for k, v in SAMPLE_OP.items() if k != "sig"}
        # Same map minus the leading "sig" entry, with a six-entry header.
        assert canonical_cbor(unsigned) == b"\xa6" + SAMPLE_OP_CBOR[len(b"\xa7csigdc2ln"):]

    def test_cid(self) -> None:
        assert cid_for(SAMPLE_OP) == SAMPLE_OP_CID
        assert cid_digest(SAMPLE_OP_CID).hex() == SAMPLE_OP_SHA256

    def test_did(self) -> None:
        assert did_for_genesis(SAMPLE_OP) == SAMPLE_OP_DID


def test_cid_has_dag_cbor_sha256_header() -> None:
    cid = cid_for(SAMPLE_OP)
    assert cid.startswith("bafyrei")
    header = b"\x01\x71\x12\x20"
    assert cid == "b" + base32_encode(header + hashlib.sha256(dag_cbor.encode(SAMPLE_OP)).digest())


def test_cid_ignores_map_insertion_order() -> None:
    """Logically identical maps hash the same regardless of key order."""
    reordered = dict(reversed(list(SAMPLE_OP.items())))
    assert cid_for(reordered) == cid_for(SAMPLE_OP)
    assert canonical_cbor(reordered) == canonical_cbor(SAMPLE_OP)


def test_cid_changes_with_content() -> None:
    changed = {**SAMPLE_OP, "alsoKnownAs": ["at://example.test"]}
    assert cid_for(changed) != cid_for(SAMPLE_OP)


def test_cid_digest_extracts_sha256() -> None:
    cid = cid_for(SAMPLE_OP)
    assert cid_digest(cid) == hashlib.sha256(canonical_cbor(SAMPLE_OP)).digest()


def test_cid_digest_rejects_foreign_cid() -> None:
    """A raw-codec CID carries the right hash but the wrong content type."""
    with pytest.raises(EncodingError):
        cid_digest("b" + base32_encode(b"\x01\x55\x12\x20" + bytes(32)))


@pytest.mark.parametrize("value", ["", "not-a-cid", "bafy!!!"])
def test_cid_digest_rejects_malformed(value: str) -> None:
    with pytest.raises(EncodingError):
        cid_digest(value)


def test_canonical_cbor_rejects_unencodable_value() -> None:
    with pytest.raises(EncodingError):
        canonical_cbor({"value": object()})


def test_did_for_genesis_shape() -> None:
    did = did_for_genesis(SAMPLE_OP)
    assert re.fullmatch(r"did:plc:[a-z2-7]{24}", did)
    digest = hashlib.sha256(canonical_cbor(SAMPLE_OP)).digest()
    assert did == "did:plc:" + base32_encode(digest)[:24]
