"""Key material for PLC identities: secp256k1 rotation keys and Ed25519 verification keys.

Both variants satisfy the :class:`Key` protocol; callers dispatch through it
and never branch on the concrete class. Keys cross persistence boundaries
only as multibase strings (see atproto's cryptography notes for the
multicodec prefixes).
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

from plcid.encoding import (
    CODEC_ED25519_PRIV,
    CODEC_ED25519_PUB,
    CODEC_SECP256K1_PRIV,
    CODEC_SECP256K1_PUB,
    multikey_decode,
    multikey_encode,
)
from plcid.errors import EncodingError, KeyMaterialError, UnsupportedCurveError

CURVE_K256 = "secp256k1"
CURVE_ED25519 = "ed25519"

DID_KEY_PREFIX = "did:key:"
ED25519_SEED_LENGTH = 32

# Group order of secp256k1; signatures must have s <= n/2.
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_SECP256K1_HALF_ORDER = SECP256K1_ORDER // 2


@runtime_checkable
class Key(Protocol):
    """Capability set shared by every key variant."""

    @property
    def curve(self) -> str: ...

    def is_private(self) -> bool: ...

    def sign(self, data: bytes) -> bytes: ...

    def verify(self, data: bytes, signature: bytes) -> bool: ...

    def encode_public(self) -> str: ...

    def encode_private(self) -> str: ...


class ECKey:
    """secp256k1 key, used only as a rotation key.

    Signatures are ECDSA over SHA-256, normalized to low-S and returned in
    compact ``r || s`` form (64 bytes).
    """

    def __init__(
        self,
        public_key: ec.EllipticCurvePublicKey,
        private_key: ec.EllipticCurvePrivateKey | None = None,
    ) -> None:
        self._public_key = public_key
        self._private_key = private_key

    @property
    def curve(self) -> str:
        return CURVE_K256

    def is_private(self) -> bool:
        return self._private_key is not None

    def sign(self, data: bytes) -> bytes:
        if self._private_key is None:
            raise KeyMaterialError("Cannot sign with a public key", details={"curve": CURVE_K256})
        der = self._private_key.sign(data, ec.ECDSA(hashes.SHA256()))
        r, s = decode_dss_signature(der)
        if s > _SECP256K1_HALF_ORDER:
            s = SECP256K1_ORDER - s
        return r.to_bytes(32, "big") + s.to_bytes(32, "big")

    def verify(self, data: bytes, signature: bytes) -> bool:
        """Verify a compact low-S signature; high-S signatures are rejected."""
        if len(signature) != 64:
            return False
        r = int.from_bytes(signature[:32], "big")
        s = int.from_bytes(signature[32:], "big")
        if s > _SECP256K1_HALF_ORDER:
            return False
        try:
            self._public_key.verify(
                encode_dss_signature(r, s), data, ec.ECDSA(hashes.SHA256())
            )
        except InvalidSignature:
            return False
        return True

    def public_bytes(self) -> bytes:
        """Compressed SEC1 point (33 bytes)."""
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.CompressedPoint,
        )

    def encode_public(self) -> str:
        return multikey_encode(CODEC_SECP256K1_PUB, self.public_bytes())

    def encode_private(self) -> str:
        if self._private_key is None:
            raise KeyMaterialError(
                "Cannot encode private key for a public key", details={"curve": CURVE_K256}
            )
        scalar = self._private_key.private_numbers().private_value
        return multikey_encode(CODEC_SECP256K1_PRIV, scalar.to_bytes(32, "big"))

    @classmethod
    def generate(cls, curve: str = CURVE_K256) -> ECKey:
        if curve != CURVE_K256:
            raise UnsupportedCurveError(curve)
        private_key = ec.generate_private_key(ec.SECP256K1())
        return cls(private_key.public_key(), private_key)

    @classmethod
    def from_public(cls, value: str) -> ECKey:
        codec, raw = multikey_decode(value)
        if codec != CODEC_SECP256K1_PUB:
            raise KeyMaterialError(
                "Key is not a secp256k1 public key", details={"codec": codec}
            )
        return cls._from_public_bytes(raw)

    @classmethod
    def from_private(cls, value: str) -> ECKey:
        codec, raw = multikey_decode(value)
        if codec != CODEC_SECP256K1_PRIV:
            raise KeyMaterialError(
                "Key is not a secp256k1 private key", details={"codec": codec}
            )
        return cls._from_private_bytes(raw)

    @classmethod
    def _from_public_bytes(cls, raw: bytes) -> ECKey:
        try:
            public_key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), raw)
        except ValueError as e:
            raise KeyMaterialError(f"Invalid secp256k1 public key: {e}") from e
        return cls(public_key)

    @classmethod
    def _from_private_bytes(cls, raw: bytes) -> ECKey:
        if len(raw) != 32:
            raise KeyMaterialError(
                f"secp256k1 private key must be 32 bytes, got {len(raw)}",
                details={"length": len(raw)},
            )
        try:
            private_key = ec.derive_private_key(int.from_bytes(raw, "big"), ec.SECP256K1())
        except ValueError as e:
            raise KeyMaterialError(f"Invalid secp256k1 private key: {e}") from e
        return cls(private_key.public_key(), private_key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ECKey):
            return NotImplemented
        return self.public_bytes() == other.public_bytes()

    def __hash__(self) -> int:
        return hash((CURVE_K256, self.public_bytes()))

    def __repr__(self) -> str:
        return f"ECKey({self.encode_public()!r}, private={self.is_private()})"


class EdDSAKey:
    """Ed25519 key, used as a verification key and for artifact signing."""

    def __init__(
        self,
        public_key: Ed25519PublicKey,
        private_key: Ed25519PrivateKey | None = None,
    ) -> None:
        self._public_key = public_key
        self._private_key = private_key

    @property
    def curve(self) -> str:
        return CURVE_ED25519

    def is_private(self) -> bool:
        return self._private_key is not None

    def sign(self, data: bytes) -> bytes:
        if self._private_key is None:
            raise KeyMaterialError(
                "Cannot sign with a public key", details={"curve": CURVE_ED25519}
            )
        return self._private_key.sign(data)

    def verify(self, data: bytes, signature: bytes) -> bool:
        try:
            self._public_key.verify(signature, data)
        except InvalidSignature:
            return False
        return True

    def public_bytes(self) -> bytes:
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    def _private_bytes(self) -> bytes:
        if self._private_key is None:
            raise KeyMaterialError(
                "Cannot encode private key for a public key", details={"curve": CURVE_ED25519}
            )
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def encode_public(self) -> str:
        return multikey_encode(CODEC_ED25519_PUB, self.public_bytes())

    def encode_private(self) -> str:
        return multikey_encode(CODEC_ED25519_PRIV, self._private_bytes())

    def encode_private_legacy(self) -> str:
        """Encode private material under the *public* key prefix.

        Older records were written this way. Only used to match those
        records when revoking a key; never write this form.
        """
        return multikey_encode(CODEC_ED25519_PUB, self._private_bytes())

    @classmethod
    def generate(cls, curve: str = CURVE_ED25519) -> EdDSAKey:
        if curve != CURVE_ED25519:
            raise UnsupportedCurveError(curve)
        private_key = Ed25519PrivateKey.generate()
        return cls(private_key.public_key(), private_key)

    @classmethod
    def from_public(cls, value: str) -> EdDSAKey:
        codec, raw = multikey_decode(value)
        if codec != CODEC_ED25519_PUB:
            raise KeyMaterialError("Key is not an Ed25519 public key", details={"codec": codec})
        try:
            public_key = Ed25519PublicKey.from_public_bytes(raw)
        except ValueError as e:
            raise KeyMaterialError(f"Invalid Ed25519 public key: {e}") from e
        return cls(public_key)

    @classmethod
    def from_private(cls, value: str) -> EdDSAKey:
        """Load a multibase Ed25519 private key holding a 32-byte seed.

        Records written by earlier tooling may carry a 64-byte libsodium
        secret (seed followed by public key) under either prefix. Those
        cannot be loaded and raise :class:`KeyMaterialError`; re-import the
        key from its 32-byte seed instead.
        """
        codec, raw = multikey_decode(value)
        # Legacy records carry the public prefix on private material.
        if codec not in (CODEC_ED25519_PRIV, CODEC_ED25519_PUB):
            raise KeyMaterialError(
                "Key is not an Ed25519 private key", details={"codec": codec}
            )
        return cls.from_seed(raw)

    @classmethod
    def from_seed(cls, seed: bytes) -> EdDSAKey:
        """Build a key from a 32-byte seed. 64-byte seed+public secrets are rejected."""
        if len(seed) != ED25519_SEED_LENGTH:
            raise KeyMaterialError(
                f"Ed25519 private key must be a {ED25519_SEED_LENGTH}-byte seed, got {len(seed)} bytes",
                details={"length": len(seed)},
            )
        try:
            private_key = Ed25519PrivateKey.from_private_bytes(seed)
        except ValueError as e:
            raise KeyMaterialError(f"Invalid Ed25519 private key: {e}") from e
        return cls(private_key.public_key(), private_key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EdDSAKey):
            return NotImplemented
        return self.public_bytes() == other.public_bytes()

    def __hash__(self) -> int:
        return hash((CURVE_ED25519, self.public_bytes()))

    def __repr__(self) -> str:
        return f"EdDSAKey({self.encode_public()!r}, private={self.is_private()})"


_GENERATORS: dict[str, Callable[[str], Key]] = {
    CURVE_K256: ECKey.generate,
    CURVE_ED25519: EdDSAKey.generate,
}

_PUBLIC_DECODERS: dict[str, Callable[[str], Key]] = {
    CODEC_SECP256K1_PUB: ECKey.from_public,
    CODEC_ED25519_PUB: EdDSAKey.from_public,
}

_PRIVATE_DECODERS: dict[str, Callable[[str], Key]] = {
    CODEC_SECP256K1_PRIV: ECKey.from_private,
    CODEC_ED25519_PRIV: EdDSAKey.from_private,
}


def generate_key(curve: str) -> Key:
    """Generate a fresh private key on ``curve`` from a secure random source."""
    try:
        generator = _GENERATORS[curve]
    except KeyError as e:
        raise UnsupportedCurveError(curve) from e
    return generator(curve)


def decode_public_key(value: str) -> Key:
    """Decode a multibase public key, choosing the variant from its prefix."""
    codec, _ = multikey_decode(value)
    try:
        decoder = _PUBLIC_DECODERS[codec]
    except KeyError as e:
        raise KeyMaterialError("Not a public key", details={"codec": codec}) from e
    return decoder(value)


def decode_private_key(value: str) -> Key:
    """Decode a multibase private key, choosing the variant from its prefix.

    An Ed25519 public prefix is accepted as the legacy private encoding.
    """
    codec, _ = multikey_decode(value)
    if codec == CODEC_ED25519_PUB:
        return EdDSAKey.from_private(value)
    try:
        decoder = _PRIVATE_DECODERS[codec]
    except KeyError as e:
        raise KeyMaterialError("Not a private key", details={"codec": codec}) from e
    return decoder(value)


def encode_did_key(key: Key) -> str:
    return DID_KEY_PREFIX + key.encode_public()


def decode_did_key(value: str) -> Key:
    if not value.startswith(DID_KEY_PREFIX):
        raise EncodingError("Not a did:key identifier", details={"value": value[:32]})
    return decode_public_key(value[len(DID_KEY_PREFIX):])
