"""Byte-string codecs used across the PLC layer.

- base64url (RFC 4648 section 5), unpadded on encode, tolerant on decode
- base32 (RFC 4648, lowercase alphabet), unpadded on encode
- multibase (``z`` base58btc for keys, ``b`` base32 for CIDs)
- multicodec varint prefixes for the key types this package understands
"""

from __future__ import annotations

import base64
import binascii

from multiformats import multibase

from plcid.errors import EncodingError

BASE32_ALPHABET = "abcdefghijklmnopqrstuvwxyz234567"
_BASE32_LOOKUP = {c: i for i, c in enumerate(BASE32_ALPHABET)} | {
    c.upper(): i for i, c in enumerate(BASE32_ALPHABET)
}
_BASE32_IGNORED = frozenset(" \t\r\n")
_BASE32_TRAILING = "= \t\r\n\0\x0b"

MULTIBASE_BASE58BTC = "z"
MULTIBASE_BASE32 = "b"
_MULTIBASE_ENCODINGS = {MULTIBASE_BASE58BTC: "base58btc", MULTIBASE_BASE32: "base32"}

# Multicodec names mapped to their unsigned-varint prefixes.
CODEC_SECP256K1_PUB = "secp256k1-pub"
CODEC_ED25519_PUB = "ed25519-pub"
CODEC_SECP256K1_PRIV = "secp256k1-priv"
CODEC_ED25519_PRIV = "ed25519-priv"

MULTICODEC_PREFIXES: dict[str, bytes] = {
    CODEC_SECP256K1_PUB: b"\xe7\x01",
    CODEC_ED25519_PUB: b"\xed\x01",
    CODEC_SECP256K1_PRIV: b"\x81\x26",
    CODEC_ED25519_PRIV: b"\x80\x26",
}
_PREFIX_TO_CODEC = {prefix: name for name, prefix in MULTICODEC_PREFIXES.items()}


def base64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def base64url_decode(data: str) -> bytes:
    """Decode base64url, accepting input with or without ``=`` padding."""
    stripped = data.strip().rstrip("=")
    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as e:
        raise EncodingError(f"Invalid base64url data: {e}") from e


def base32_encode(data: bytes) -> str:
    """Pack bytes into 5-bit groups, lowercase, no padding."""
    out = []
    buffer = 0
    bits = 0
    for byte in data:
        buffer = (buffer << 8) | byte
        bits += 8
        while bits >= 5:
            bits -= 5
            out.append(BASE32_ALPHABET[(buffer >> bits) & 0x1F])
        buffer &= (1 << bits) - 1
    if bits:
        out.append(BASE32_ALPHABET[(buffer << (5 - bits)) & 0x1F])
    return "".join(out)


def base32_decode(data: str) -> bytes:
    """Decode base32 in either case; trailing padding and whitespace are stripped, trailing bits dropped."""
    out = bytearray()
    buffer = 0
    bits = 0
    for offset, char in enumerate(data.rstrip(_BASE32_TRAILING)):
        value = _BASE32_LOOKUP.get(char)
        if value is None:
            if char in _BASE32_IGNORED:
                continue
            raise EncodingError(
                f"Unexpected character {char!r} at offset {offset} in base32 data",
                details={"offset": offset},
            )
        buffer = (buffer << 5) | value
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)
            buffer &= (1 << bits) - 1
    return bytes(out)


def multibase_encode(data: bytes, base: str = MULTIBASE_BASE58BTC) -> str:
    try:
        encoding = _MULTIBASE_ENCODINGS[base]
    except KeyError as e:
        raise EncodingError(f"Unsupported multibase: {base!r}", details={"base": base}) from e
    return multibase.encode(data, encoding)


def multibase_decode(value: str) -> bytes:
    if not value:
        raise EncodingError("Empty multibase string")
    base = value[0]
    if base not in _MULTIBASE_ENCODINGS:
        raise EncodingError(f"Unsupported multibase: {base!r}", details={"base": base})
    try:
        return multibase.decode(value)
    except (KeyError, ValueError) as e:
        raise EncodingError(
            f"Invalid {_MULTIBASE_ENCODINGS[base]} data: {e}", details={"base": base}
        ) from e


def multikey_encode(codec: str, raw: bytes) -> str:
    """Prefix ``raw`` with the codec's varint and encode as base58btc multibase."""
    try:
        prefix = MULTICODEC_PREFIXES[codec]
    except KeyError as e:
        raise EncodingError(f"Unknown multicodec: {codec}", details={"codec": codec}) from e
    return multibase_encode(prefix + raw)


def multikey_decode(value: str) -> tuple[str, bytes]:
    """Split a multibase key string into ``(codec name, raw key bytes)``."""
    decoded = multibase_decode(value)
    codec = _PREFIX_TO_CODEC.get(decoded[:2])
    if codec is None:
        raise EncodingError(
            "Unknown multicodec prefix",
            details={"prefix": decoded[:2].hex()},
        )
    return codec, decoded[2:]
