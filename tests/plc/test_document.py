"""Tests for rendering operations as DID documents."""

from plcid.crypto.keys import CURVE_ED25519, CURVE_K256, generate_key
from plcid.plc.did import verification_method_id
from plcid.plc.document import DID_CONTEXT, operation_to_did_document
from plcid.plc.operation import OP_TYPE_OPERATION, Operation

DID = "did:plc:ewvi7nxzyoun6zhxrhs64oiz"


def test_document_shape() -> None:
    first = generate_key(CURVE_ED25519)
    second = generate_key(CURVE_ED25519)
    op = Operation(
        type=OP_TYPE_OPERATION,
        rotation_keys=[generate_key(CURVE_K256)],
        verification_methods={
            verification_method_id(first): first,
            verification_method_id(second): second,
        },
        also_known_as=["https://example.test"],
        services={"fairpm_repo": {"endpoint": "https://repo.test", "type": "FairPackageManagementRepo"}},
    )

    document = operation_to_did_document(DID, op)

    assert document["@context"] == DID_CONTEXT
    assert document["id"] == DID
    assert document["alsoKnownAs"] == ["https://example.test"]
    assert [vm["publicKeyMultibase"] for vm in document["verificationMethod"]] == [
        first.encode_public(),
        second.encode_public(),
    ]
    assert document["verificationMethod"][0]["id"] == f"{DID}#{verification_method_id(first)}"
    assert document["service"] == [
        {
            "id": "#fairpm_repo",
            "type": "FairPackageManagementRepo",
            "serviceEndpoint": "https://repo.test",
        }
    ]


def test_rotation_keys_are_not_published_as_methods() -> None:
    rotation = generate_key(CURVE_K256)
    verification = generate_key(CURVE_ED25519)
    op = Operation(
        type=OP_TYPE_OPERATION,
        rotation_keys=[rotation],
        verification_methods={verification_method_id(verification): verification},
    )
    document = operation_to_did_document(DID, op)
    published = {vm["publicKeyMultibase"] for vm in document["verificationMethod"]}
    assert rotation.encode_public() not in published
    assert document["service"] == []
