"""Render a PLC operation as the W3C DID document the directory would serve."""

from __future__ import annotations

from typing import Any

from plcid.plc.operation import Operation

DID_CONTEXT = [
    "https://www.w3.org/ns/did/v1",
    "https://w3id.org/security/multikey/v1",
]


def operation_to_did_document(did: str, op: Operation) -> dict[str, Any]:
    return {
        "@context": list(DID_CONTEXT),
        "id": did,
        "alsoKnownAs": list(op.also_known_as),
        "verificationMethod": [
            {
                "id": f"{did}#{method_id}",
                "type": "Multikey",
                "controller": did,
                "publicKeyMultibase": key.encode_public(),
            }
            for method_id, key in op.verification_methods.items()
        ],
        "service": [
            {
                "id": f"#{service_id}",
                "type": service["type"],
                "serviceEndpoint": service["endpoint"],
            }
            for service_id, service in op.services.items()
        ],
    }
