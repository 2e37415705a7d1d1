"""did:plc operations, content identifiers, directory client and identity aggregate."""

from plcid.plc.cid import cid_for, did_for_genesis
from plcid.plc.did import DID, open_identity, verification_method_id
from plcid.plc.directory import DirectoryClient, PublicationStatus
from plcid.plc.document import operation_to_did_document
from plcid.plc.operation import (
    OP_TYPE_OPERATION,
    OP_TYPE_TOMBSTONE,
    Operation,
    SignedOperation,
    verify_chain,
)

__all__ = [
    "DID",
    "DirectoryClient",
    "OP_TYPE_OPERATION",
    "OP_TYPE_TOMBSTONE",
    "Operation",
    "PublicationStatus",
    "SignedOperation",
    "cid_for",
    "did_for_genesis",
    "open_identity",
    "operation_to_did_document",
    "verification_method_id",
    "verify_chain",
]
