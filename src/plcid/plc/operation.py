"""PLC operations: construction, validation, signing and the wire projection."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from plcid.crypto.keys import CURVE_K256, Key, decode_did_key, encode_did_key
from plcid.encoding import base64url_decode, base64url_encode
from plcid.errors import (
    ChainIntegrityError,
    EncodingError,
    KeyMaterialError,
    OperationValidationError,
)
from plcid.models.base import PLCBaseModel
from plcid.plc.cid import canonical_cbor, cid_for

OP_TYPE_OPERATION = "plc_operation"
OP_TYPE_TOMBSTONE = "plc_tombstone"
OPERATION_TYPES = (OP_TYPE_OPERATION, OP_TYPE_TOMBSTONE)

VERIFICATION_METHOD_PREFIX = "fair_"


@dataclass(frozen=True)
class Operation:
    """An unsigned PLC operation.

    ``rotation_keys[0]`` is the authoritative signer for the version this
    operation produces. ``prev`` is the CID of the previous operation and
    is absent only for genesis.
    """

    type: str
    rotation_keys: list[Key] = field(default_factory=list)
    verification_methods: dict[str, Key] = field(default_factory=dict)
    also_known_as: list[str] = field(default_factory=list)
    services: dict[str, dict[str, str]] = field(default_factory=dict)
    prev: str | None = None

    def validate(self) -> bool:
        """Check the operation, raising on the first violated rule."""
        if not self.type:
            raise OperationValidationError("type_empty", "Operation type is empty")
        if self.type not in OPERATION_TYPES:
            raise OperationValidationError(
                "type_invalid", f"Invalid operation type: {self.type}", details={"type": self.type}
            )

        if not self.rotation_keys:
            raise OperationValidationError("rotation_keys_empty", "Rotation keys are empty")
        for key in self.rotation_keys:
            if not isinstance(key, Key):
                raise OperationValidationError(
                    "rotation_key_type", "Rotation key is not a Key object"
                )

        if not self.verification_methods:
            raise OperationValidationError(
                "verification_methods_empty", "Verification methods are empty"
            )
        for method_id, key in self.verification_methods.items():
            if not method_id.startswith(VERIFICATION_METHOD_PREFIX):
                raise OperationValidationError(
                    "verification_method_id",
                    f"Invalid verification method ID: {method_id}",
                    details={"method_id": method_id},
                )
            if not isinstance(key, Key):
                raise OperationValidationError(
                    "verification_method_type",
                    f"Verification method {method_id} is not a Key object",
                    details={"method_id": method_id},
                )

        if not self.prev and (not self.rotation_keys or not self.verification_methods):
            raise OperationValidationError(
                "genesis_keys", "Genesis operation requires rotation keys and verification methods"
            )

        return True

    def to_wire(self) -> dict[str, Any]:
        """Canonical JSON/CBOR projection, keys rendered as did:key strings."""
        return {
            "type": self.type,
            "rotationKeys": [encode_did_key(key) for key in self.rotation_keys],
            "verificationMethods": {
                method_id: encode_did_key(key)
                for method_id, key in self.verification_methods.items()
            },
            "alsoKnownAs": list(self.also_known_as),
            "services": {sid: dict(service) for sid, service in self.services.items()},
            "prev": self.prev,
        }

    def signing_payload(self) -> bytes:
        return canonical_cbor(Operation.to_wire(self))

    def sign(self, rotation_key: Key) -> SignedOperation:
        """Validate, then sign with ``rotation_key`` (a private secp256k1 key)."""
        self.validate()
        if rotation_key.curve != CURVE_K256:
            raise KeyMaterialError(
                "Operations must be signed with a secp256k1 rotation key",
                details={"curve": rotation_key.curve},
            )
        signature = rotation_key.sign(self.signing_payload())
        return SignedOperation(
            type=self.type,
            rotation_keys=list(self.rotation_keys),
            verification_methods=dict(self.verification_methods),
            also_known_as=list(self.also_known_as),
            services={sid: dict(service) for sid, service in self.services.items()},
            prev=self.prev,
            sig=base64url_encode(signature),
        )

    def same_state_as(self, other: Operation) -> bool:
        """Field-for-field comparison of everything but ``type`` and ``prev``.

        Key lists and maps compare in order, so a reordering counts as a change.
        """
        mine = self.to_wire()
        theirs = Operation.to_wire(other)
        return (
            mine["rotationKeys"] == theirs["rotationKeys"]
            and list(mine["verificationMethods"].items())
            == list(theirs["verificationMethods"].items())
            and mine["alsoKnownAs"] == theirs["alsoKnownAs"]
            and list(mine["services"].items()) == list(theirs["services"].items())
        )


@dataclass(frozen=True)
class SignedOperation(Operation):
    """An operation plus its base64url signature."""

    sig: str = ""

    def validate(self) -> bool:
        if not self.sig:
            raise OperationValidationError("sig_empty", "Signature is empty")
        return super().validate()

    def unsigned(self) -> Operation:
        return Operation(
            type=self.type,
            rotation_keys=list(self.rotation_keys),
            verification_methods=dict(self.verification_methods),
            also_known_as=list(self.also_known_as),
            services={sid: dict(service) for sid, service in self.services.items()},
            prev=self.prev,
        )

    def to_wire(self) -> dict[str, Any]:
        data = super().to_wire()
        data["sig"] = self.sig
        return data

    @property
    def cid(self) -> str:
        return cid_for(self.to_wire())

    def verify_signature(self, keys: Sequence[Key]) -> bool:
        """Return True if ``sig`` was made by any of ``keys``."""
        try:
            signature = base64url_decode(self.sig)
        except EncodingError:
            return False
        payload = self.signing_payload()
        return any(key.verify(payload, signature) for key in keys)

    @classmethod
    def from_wire(cls, data: Any) -> SignedOperation:
        """Parse a directory payload; keys are decoded to public-only keys."""
        try:
            record = OperationRecord.model_validate(data)
        except PydanticValidationError as e:
            raise OperationValidationError(
                "wire_format", f"Malformed operation payload: {e.error_count()} error(s)",
                details={"errors": e.errors(include_url=False, include_input=False)},
            ) from e
        return cls(
            type=record.type,
            rotation_keys=[decode_did_key(k) for k in record.rotation_keys],
            verification_methods={
                method_id: decode_did_key(k)
                for method_id, k in record.verification_methods.items()
            },
            also_known_as=list(record.also_known_as),
            services={
                sid: service.model_dump() for sid, service in record.services.items()
            },
            prev=record.prev,
            sig=record.sig,
        )


class ServiceRecord(PLCBaseModel):
    type: str
    endpoint: str


class OperationRecord(PLCBaseModel):
    """Wire shape of a signed operation as served by the directory."""

    type: str
    rotation_keys: list[str] = Field(alias="rotationKeys")
    verification_methods: dict[str, str] = Field(alias="verificationMethods")
    also_known_as: list[str] = Field(default_factory=list, alias="alsoKnownAs")
    services: dict[str, ServiceRecord] = Field(default_factory=dict)
    prev: str | None = None
    sig: str


def verify_chain(operations: Sequence[SignedOperation]) -> bool:
    """Check that ``operations`` form an unbroken hash chain from genesis.

    Each operation's signature must verify against the rotation keys of the
    operation before it (genesis: its own rotation keys).
    """
    previous: SignedOperation | None = None
    for index, op in enumerate(operations):
        if previous is None:
            if op.prev is not None:
                raise ChainIntegrityError(index, "First operation must not reference a prev")
            signers = op.rotation_keys
        else:
            expected = previous.cid
            if op.prev != expected:
                raise ChainIntegrityError(
                    index,
                    f"Operation {index} does not link to its predecessor",
                    details={"expected": expected, "actual": op.prev},
                )
            signers = previous.rotation_keys
        if not op.verify_signature(signers):
            raise ChainIntegrityError(index, f"Operation {index} has an invalid signature")
        previous = op
    return True
