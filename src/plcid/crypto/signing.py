"""Artifact signing with verification keys.

A release artifact is identified by ``sha256:<hex>`` of its bytes and signed
by hashing the bytes with SHA-384 and signing the raw digest; the signature
travels base64url-encoded.
"""

import hashlib

from plcid.crypto.keys import Key
from plcid.encoding import base64url_decode, base64url_encode
from plcid.errors import EncodingError


def content_hash(data: bytes) -> str:
    return "sha256:" + hashlib.sha256(data).hexdigest()


def sign_artifact_data(key: Key, data: bytes) -> str:
    digest = hashlib.sha384(data).digest()
    return base64url_encode(key.sign(digest))


def verify_artifact_signature(key: Key, data: bytes, signature: str) -> bool:
    try:
        raw_signature = base64url_decode(signature)
    except EncodingError:
        return False
    return key.verify(hashlib.sha384(data).digest(), raw_signature)
