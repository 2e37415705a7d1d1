"""Command-line interface for managing PLC identities.

Example:
    >>> # From terminal:
    >>> # plcid --version
    >>> # plcid did generate
    >>> # plcid did show did:plc:abc...
    >>> # plcid did add-key did:plc:abc...
    >>> # plcid did revoke-key did:plc:abc... fair_1a2b3c
    >>> # plcid did update did:plc:abc...
    >>> # plcid did document did:plc:abc...
    >>> # plcid did audit-log did:plc:abc... --verify
    >>> # plcid keys generate --curve ed25519
"""

import json
from pathlib import Path
from typing import Annotated, Optional

import httpx
import typer

from plcid import __version__
from plcid.config import load_config
from plcid.crypto.keys import CURVE_ED25519, CURVE_K256, generate_key
from plcid.errors import PLCError
from plcid.observability import bind_context, clear_context
from plcid.plc.did import DID, verification_method_id
from plcid.plc.directory import DirectoryClient
from plcid.storage import IdentityStore, SQLiteIdentityStore, create_identity_store

app = typer.Typer(help="PLC identity CLI.")

did_app = typer.Typer(help="Create, update and inspect did:plc identities.")
app.add_typer(did_app, name="did")

keys_app = typer.Typer(help="Standalone key generation.")
app.add_typer(keys_app, name="keys")

DbOption = Annotated[
    Optional[Path],
    typer.Option(
        "--db",
        "-d",
        help="SQLite identity database. Defaults to PLCID_STORAGE_BACKEND and PLCID_STORAGE_PATH.",
    ),
]


def _open(ctx: typer.Context, db: Path | None) -> tuple[IdentityStore, DirectoryClient]:
    """Open the identity store and a directory client.

    ``--db`` selects a SQLite file directly. Without it the storage
    environment variables decide, with SQLite as the default backend.
    ``ctx.obj["transport"]`` overrides the directory's HTTP transport.
    """
    if db is not None:
        store: IdentityStore = SQLiteIdentityStore(db_path=db)
    else:
        store = create_identity_store(default_backend="sqlite")
    transport: httpx.BaseTransport | None = (ctx.obj or {}).get("transport")
    return store, DirectoryClient.from_config(load_config(), transport)


def _load(ctx: typer.Context, did: str, db: Path | None) -> DID:
    bind_context(did=did)
    store, directory = _open(ctx, db)
    return DID.get(did, store, directory, load_config())


def _fail(error: PLCError) -> typer.Exit:
    typer.echo(f"Error: {error.message}", err=True)
    return typer.Exit(1)


def _print_identity(did: DID) -> None:
    typer.echo(f"DID:              {did.id}")
    for key in did.get_rotation_keys():
        typer.echo(f"Rotation key:     {key.encode_public()}")
    for key in did.get_verification_keys():
        typer.echo(f"Verification key: {key.encode_public()} ({verification_method_id(key)})")


@did_app.command("generate")
def did_generate(ctx: typer.Context, db: DbOption = None) -> None:
    """Create a new identity and publish its genesis operation."""
    try:
        store, directory = _open(ctx, db)
        did = DID.create(store, directory, load_config())
    except PLCError as e:
        raise _fail(e) from e
    bind_context(did=did.id)
    _print_identity(did)


@did_app.command("show")
def did_show(
    ctx: typer.Context,
    did_id: Annotated[str, typer.Argument(help="The DID to show.")],
    db: DbOption = None,
) -> None:
    """Show an identity's public keys."""
    try:
        did = _load(ctx, did_id, db)
    except PLCError as e:
        raise _fail(e) from e
    _print_identity(did)


@did_app.command("list")
def did_list(ctx: typer.Context, db: DbOption = None) -> None:
    """List identities held in the local database."""
    try:
        store, _ = _open(ctx, db)
    except PLCError as e:
        raise _fail(e) from e
    for record in store.list_records():
        typer.echo(record.did)


@did_app.command("update")
def did_update(
    ctx: typer.Context,
    did_id: Annotated[str, typer.Argument(help="The DID to update.")],
    db: DbOption = None,
) -> None:
    """Sync local keys and services to the directory."""
    try:
        did = _load(ctx, did_id, db)
        op = did.update()
    except PLCError as e:
        raise _fail(e) from e
    if op is None:
        typer.echo("No changes to update.")
    else:
        typer.echo(f"Submitted operation {op.cid}")


@did_app.command("add-key")
def did_add_key(
    ctx: typer.Context,
    did_id: Annotated[str, typer.Argument(help="The DID receiving the new key.")],
    db: DbOption = None,
) -> None:
    """Generate a verification key, publish it, then save it locally."""
    try:
        did = _load(ctx, did_id, db)
        key = did.generate_verification_key()
        did.update()
        did.save()
    except PLCError as e:
        raise _fail(e) from e
    typer.echo(f"Added verification key: {key.encode_public()} ({verification_method_id(key)})")


@did_app.command("revoke-key")
def did_revoke_key(
    ctx: typer.Context,
    did_id: Annotated[str, typer.Argument(help="The DID holding the key.")],
    key_id: Annotated[str, typer.Argument(help="Public multibase key or method id (fair_...).")],
    db: DbOption = None,
) -> None:
    """Revoke a verification key, publish the change, then save locally."""
    try:
        did = _load(ctx, did_id, db)
        if len(did.get_verification_keys()) <= 1:
            typer.echo("Error: cannot revoke the last verification key.", err=True)
            raise typer.Exit(1)
        key = did.find_verification_key(key_id)
        if not did.invalidate_verification_key(key):
            typer.echo("Error: failed to revoke key.", err=True)
            raise typer.Exit(1)
        did.update()
        did.save()
    except PLCError as e:
        raise _fail(e) from e
    typer.echo(f"Revoked verification key: {key.encode_public()}")


@did_app.command("document")
def did_document(
    ctx: typer.Context,
    did_id: Annotated[str, typer.Argument(help="The DID to render.")],
    db: DbOption = None,
) -> None:
    """Print the DID document expected after the next update."""
    try:
        document = _load(ctx, did_id, db).get_expected_document()
    except PLCError as e:
        raise _fail(e) from e
    typer.echo(json.dumps(document, indent=2))


@did_app.command("audit-log")
def did_audit_log(
    ctx: typer.Context,
    did_id: Annotated[str, typer.Argument(help="The DID whose log to fetch.")],
    verify: Annotated[
        bool, typer.Option("--verify", help="Check the hash chain and signatures.")
    ] = False,
    db: DbOption = None,
) -> None:
    """Print the directory's operation log for an identity."""
    try:
        did = _load(ctx, did_id, db)
        ops = did.fetch_audit_log()
        if verify:
            did.verify_log()
    except PLCError as e:
        raise _fail(e) from e
    typer.echo(json.dumps([op.to_wire() for op in ops], indent=2))
    if verify:
        typer.echo(f"Chain verified: {len(ops)} operation(s)", err=True)


@did_app.command("status")
def did_status(
    ctx: typer.Context,
    did_id: Annotated[str, typer.Argument(help="The DID to check.")],
    db: DbOption = None,
) -> None:
    """Show whether the directory has published the identity."""
    try:
        status = _load(ctx, did_id, db).publication_status()
    except PLCError as e:
        raise _fail(e) from e
    typer.echo(status.value)


@keys_app.command("generate")
def keys_generate(
    curve: Annotated[
        str,
        typer.Option("--curve", "-c", help=f"Key curve: {CURVE_K256} or {CURVE_ED25519}."),
    ] = CURVE_ED25519,
) -> None:
    """Generate a key and print its private and public multibase encodings."""
    try:
        key = generate_key(curve)
    except PLCError as e:
        raise typer.BadParameter(e.message) from e
    typer.echo(f"Private: {key.encode_private()}")
    typer.echo(f"Public:  {key.encode_public()}")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


VERSION_OPTION = typer.Option(
    False,
    "--version",
    help="Show version and exit.",
    callback=_version_callback,
    is_eager=True,
)


@app.callback()
def cli(ctx: typer.Context, version: bool = VERSION_OPTION) -> None:
    """PLC identity CLI entrypoint."""
    ctx.ensure_object(dict)
    clear_context()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
