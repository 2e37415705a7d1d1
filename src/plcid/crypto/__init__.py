"""Key material and signing for PLC identities.

- keys: secp256k1 rotation keys and Ed25519 verification keys behind one
  Key protocol, with multibase and did:key encodings
- signing: artifact content hashes and signatures
"""

from plcid.crypto import keys
from plcid.crypto import signing
from plcid.crypto.keys import (
    CURVE_ED25519,
    CURVE_K256,
    ECKey,
    EdDSAKey,
    Key,
    decode_did_key,
    decode_private_key,
    decode_public_key,
    encode_did_key,
    generate_key,
)

__all__ = [
    "keys",
    "signing",
    "CURVE_ED25519",
    "CURVE_K256",
    "ECKey",
    "EdDSAKey",
    "Key",
    "decode_did_key",
    "decode_private_key",
    "decode_public_key",
    "encode_did_key",
    "generate_key",
]
