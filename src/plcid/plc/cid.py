"""Content identifiers for PLC operations.

An operation's CID is computed from its DAG-CBOR encoding (canonical map
ordering, minimal integers) and is what the next operation stores in
``prev``. Changing an operation after its CID is taken breaks every link
after it.
"""

from __future__ import annotations

import hashlib
from typing import Any

import dag_cbor
from multiformats import CID, multihash

from plcid.encoding import base32_encode
from plcid.errors import EncodingError

CID_VERSION = 1
CID_CODEC = "dag-cbor"
CID_HASH = "sha2-256"

DID_PLC_PREFIX = "did:plc:"
DID_PLC_SUFFIX_LENGTH = 24


def canonical_cbor(value: Any) -> bytes:
    try:
        return dag_cbor.encode(value)
    except Exception as e:
        raise EncodingError(f"Value cannot be encoded as DAG-CBOR: {e}") from e


def cid_for(value: Any) -> str:
    """Return the base32 CIDv1 string (``bafyrei...``) of ``value``."""
    digest = multihash.digest(canonical_cbor(value), CID_HASH)
    return str(CID("base32", CID_VERSION, CID_CODEC, digest))


def cid_digest(cid: str) -> bytes:
    """Extract the sha2-256 digest from a CID string produced by :func:`cid_for`."""
    if not cid:
        raise EncodingError("Empty CID")
    try:
        parsed = CID.decode(cid)
    except (KeyError, ValueError) as e:
        raise EncodingError(f"Invalid CID: {e}", details={"cid": cid}) from e
    if (
        parsed.version != CID_VERSION
        or parsed.codec.name != CID_CODEC
        or parsed.hashfun.name != CID_HASH
    ):
        raise EncodingError(
            "CID must be a CIDv1 dag-cbor sha2-256 identifier", details={"cid": cid}
        )
    return parsed.raw_digest


def did_for_genesis(signed_genesis: Any) -> str:
    """Derive ``did:plc:<24 base32 chars>`` from the signed genesis operation's wire form."""
    digest = hashlib.sha256(canonical_cbor(signed_genesis)).digest()
    return DID_PLC_PREFIX + base32_encode(digest)[:DID_PLC_SUFFIX_LENGTH]
