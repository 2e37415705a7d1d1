"""The did:plc identity aggregate.

Local key lists are a working draft. The authoritative state is the last
operation in the directory's log: every update fetches it fresh, diffs the
draft against it, and only emits a new signed operation when something
differs. The chain itself is never mutated locally.

Concurrent updates to one identity must be serialized by the caller; two
updates computed from the same last operation cannot both be accepted.
"""

from __future__ import annotations

import hashlib
from typing import Any

import httpx
import structlog

from plcid.config import IdentityConfig
from plcid.crypto.keys import (
    CURVE_ED25519,
    CURVE_K256,
    Key,
    decode_private_key,
    generate_key,
)
from plcid.errors import (
    EncodingError,
    IdentityNotFoundError,
    KeyMaterialError,
    KeyNotFoundError,
    OperationValidationError,
    RemoteError,
)
from plcid.observability import get_logger
from plcid.plc.cid import did_for_genesis
from plcid.plc.directory import (
    STAGE_FETCH_AUDIT,
    STAGE_FETCH_LAST,
    DirectoryClient,
    PublicationStatus,
)
from plcid.plc.document import operation_to_did_document
from plcid.plc.operation import (
    OP_TYPE_OPERATION,
    VERIFICATION_METHOD_PREFIX,
    Operation,
    SignedOperation,
    verify_chain,
)
from plcid.storage.base import IdentityRecord, IdentityStore

logger = get_logger(__name__)


def verification_method_id(key: Key) -> str:
    """Stable method id: ``fair_`` + first 6 hex chars of sha256(public multibase)."""
    digest = hashlib.sha256(key.encode_public().encode("ascii")).hexdigest()
    return VERIFICATION_METHOD_PREFIX + digest[:6]


def _parse_operation(stage: str, data: Any) -> SignedOperation:
    try:
        return SignedOperation.from_wire(data)
    except (OperationValidationError, EncodingError, KeyMaterialError) as e:
        raise RemoteError(stage, f"Malformed operation from directory: {e.message}") from e


class DID:
    """A PLC identity held by this publisher.

    Args:
        store: Persistence for the identity record.
        directory: Client for the PLC directory.
        config: Repository service settings used when building updates.
    """

    def __init__(
        self,
        store: IdentityStore,
        directory: DirectoryClient,
        config: IdentityConfig,
        *,
        did: str | None = None,
        rotation_keys: list[str] | None = None,
        verification_keys: list[str] | None = None,
        handle: str | None = None,
    ) -> None:
        self._store = store
        self._directory = directory
        self._config = config
        self._id = did
        self._handle = handle
        self._rotation_keys: list[str] = list(rotation_keys or [])
        self._verification_keys: list[str] = list(verification_keys or [])

    @property
    def id(self) -> str:
        if self._id is None:
            raise IdentityNotFoundError("<uncreated>")
        return self._id

    @property
    def handle(self) -> str | None:
        """Internal store handle; ``None`` until first saved."""
        return self._handle

    @property
    def log(self) -> structlog.stdlib.BoundLogger:
        return logger.bind(did=self._id)

    def get_rotation_keys(self) -> list[Key]:
        return [decode_private_key(k) for k in self._rotation_keys]

    def get_verification_keys(self) -> list[Key]:
        return [decode_private_key(k) for k in self._verification_keys]

    def generate_verification_key(self) -> Key:
        """Append a fresh Ed25519 key.

        Nothing is submitted or saved; follow with :meth:`update` and :meth:`save`.
        """
        key = generate_key(CURVE_ED25519)
        self._verification_keys.append(key.encode_private())
        self.log.info("plc.key.generated", method_id=verification_method_id(key))
        return key

    def invalidate_verification_key(self, key: Key) -> bool:
        """Remove ``key`` from the verification keys.

        Matches on the exact private encoding, falling back to the legacy
        encoding for records written before the private prefix was used.
        Does not guard against removing the last key; callers must.

        Returns:
            True if one entry was removed, False if the key was not found
            or carries no private material to match on.
        """
        if not key.is_private():
            return False
        encoded = key.encode_private()
        if encoded not in self._verification_keys:
            legacy = getattr(key, "encode_private_legacy", None)
            if legacy is None:
                return False
            encoded = legacy()
            if encoded not in self._verification_keys:
                return False

        self._verification_keys.remove(encoded)
        self.log.info("plc.key.revoked", method_id=verification_method_id(key))
        return True

    def find_verification_key(self, public_key: str) -> Key:
        """Look up a held verification key by its public multibase or method id."""
        for key in self.get_verification_keys():
            if public_key in (key.encode_public(), verification_method_id(key)):
                return key
        raise KeyNotFoundError(public_key, details={"did": self._id})

    def verification_methods(self) -> dict[str, Key]:
        return {verification_method_id(key): key for key in self.get_verification_keys()}

    def to_record(self) -> IdentityRecord:
        return IdentityRecord(
            handle=self._handle,
            did=self.id,
            rotation_keys=list(self._rotation_keys),
            verification_keys=list(self._verification_keys),
        )

    def save(self) -> str:
        self._handle = self._store.save(self.to_record())
        self.log.debug("plc.identity.saved", handle=self._handle)
        return self._handle

    def _perform_operation(self, op: SignedOperation) -> None:
        op.validate()
        self._directory.submit_operation(self.id, op.to_wire())
        self.log.info("plc.operation.submitted", prev=op.prev)

    def fetch_last_op(self) -> SignedOperation:
        """Fetch the newest operation; always a fresh read."""
        data = self._directory.get_last_operation(self.id)
        return _parse_operation(STAGE_FETCH_LAST, data)

    def fetch_audit_log(self) -> list[SignedOperation]:
        entries = self._directory.get_audit_log(self.id)
        return [_parse_operation(STAGE_FETCH_AUDIT, entry) for entry in entries]

    def verify_log(self) -> bool:
        """Fetch the audit log and check its hash chain and signatures."""
        return verify_chain(self.fetch_audit_log())

    def publication_status(self) -> PublicationStatus:
        return self._directory.get_status(self.id)

    def is_published(self) -> bool:
        return self.publication_status() is PublicationStatus.PUBLISHED

    def prepare_update_op(self) -> SignedOperation | None:
        """Build the signed update, or ``None`` if local state matches the directory."""
        last_op = self.fetch_last_op()

        candidate = Operation(
            type=OP_TYPE_OPERATION,
            rotation_keys=self.get_rotation_keys(),
            verification_methods=self.verification_methods(),
            also_known_as=list(last_op.also_known_as),
            services=self._config.repository_services(self.id),
            prev=last_op.cid,
        )

        if candidate.same_state_as(last_op):
            return None

        candidate.validate()
        return candidate.sign(candidate.rotation_keys[0])

    def update(self) -> SignedOperation | None:
        """Submit pending changes; returns the submitted operation, or ``None`` if nothing changed."""
        op = self.prepare_update_op()
        if op is None:
            self.log.info("plc.update.noop")
            return None
        self._perform_operation(op)
        return op

    def get_expected_document(self) -> dict[str, Any]:
        """DID document after the pending update, or the current one if nothing changed."""
        op = self.prepare_update_op()
        if op is None:
            op = self.fetch_last_op()
        return operation_to_did_document(self.id, op)

    @classmethod
    def create(
        cls,
        store: IdentityStore,
        directory: DirectoryClient,
        config: IdentityConfig,
    ) -> DID:
        """Generate keys, publish the genesis operation and persist the identity.

        The identifier is unusable until the directory accepts the genesis
        operation; nothing is persisted if submission fails.
        """
        did = cls(store, directory, config)

        rotation_key = generate_key(CURVE_K256)
        did._rotation_keys = [rotation_key.encode_private()]
        did.generate_verification_key()

        genesis = Operation(
            type=OP_TYPE_OPERATION,
            rotation_keys=[rotation_key],
            verification_methods=did.verification_methods(),
            also_known_as=[],
            services={},
        )
        signed = genesis.sign(rotation_key)
        did._id = did_for_genesis(signed.to_wire())

        did._perform_operation(signed)
        did.save()
        did.log.info("plc.identity.created")
        return did

    @classmethod
    def from_record(
        cls,
        record: IdentityRecord,
        store: IdentityStore,
        directory: DirectoryClient,
        config: IdentityConfig,
    ) -> DID:
        return cls(
            store,
            directory,
            config,
            did=record.did,
            rotation_keys=record.rotation_keys,
            verification_keys=record.verification_keys,
            handle=record.handle,
        )

    @classmethod
    def get(
        cls,
        did: str,
        store: IdentityStore,
        directory: DirectoryClient,
        config: IdentityConfig,
    ) -> DID:
        record = store.find_by_did(did)
        if record is None:
            raise IdentityNotFoundError(did)
        return cls.from_record(record, store, directory, config)

    @classmethod
    def from_handle(
        cls,
        handle: str,
        store: IdentityStore,
        directory: DirectoryClient,
        config: IdentityConfig,
    ) -> DID:
        record = store.get(handle)
        if record is None:
            raise IdentityNotFoundError(handle, details={"handle": handle})
        return cls.from_record(record, store, directory, config)


def open_identity(
    did: str,
    store: IdentityStore,
    config: IdentityConfig,
    transport: httpx.BaseTransport | None = None,
) -> DID:
    """Load a stored identity wired to a directory client built from ``config``."""
    return DID.get(did, store, DirectoryClient.from_config(config, transport), config)

