"""SQLite-backed IdentityStore (persistent, file-based)."""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import uuid
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import aiosqlite

from plcid.storage.base import IdentityRecord

DEFAULT_DB_PATH = "plcid_state.db"
IDENTITIES_TABLE = "identities"

T = TypeVar("T")


def _run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine from sync code (creates new loop or uses existing)."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(asyncio.run, coro)
        return future.result()


def _record_to_row(record: IdentityRecord, handle: str) -> tuple[str, str, str, str]:
    return (
        handle,
        record.did,
        json.dumps(record.rotation_keys),
        json.dumps(record.verification_keys),
    )


def _row_to_record(row: tuple[Any, ...]) -> IdentityRecord:
    handle, did, rotation_json, verification_json = row
    return IdentityRecord(
        handle=handle,
        did=did,
        rotation_keys=json.loads(rotation_json),
        verification_keys=json.loads(verification_json),
    )


class SQLiteIdentityStore:
    """SQLite-backed IdentityStore; records persist across process restarts.

    Uses aiosqlite; sync methods wrap async calls so the store conforms to
    the sync IdentityStore protocol.
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def _ensure_table(self, conn: aiosqlite.Connection) -> None:
        await conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {IDENTITIES_TABLE} (
                handle TEXT PRIMARY KEY,
                did TEXT NOT NULL,
                rotation_keys TEXT NOT NULL,
                verification_keys TEXT NOT NULL
            )
            """
        )
        await conn.execute(
            f"CREATE INDEX IF NOT EXISTS idx_{IDENTITIES_TABLE}_did ON {IDENTITIES_TABLE} (did)"
        )
        await conn.commit()

    async def _save_impl(self, record: IdentityRecord, handle: str) -> None:
        async with aiosqlite.connect(self._db_path) as conn:
            await self._ensure_table(conn)
            await conn.execute(
                f"""
                INSERT OR REPLACE INTO {IDENTITIES_TABLE}
                (handle, did, rotation_keys, verification_keys)
                VALUES (?, ?, ?, ?)
                """,
                _record_to_row(record, handle),
            )
            await conn.commit()

    async def _fetch_one_impl(self, column: str, value: str) -> IdentityRecord | None:
        async with aiosqlite.connect(self._db_path) as conn:
            await self._ensure_table(conn)
            cursor = await conn.execute(
                f"""
                SELECT handle, did, rotation_keys, verification_keys
                FROM {IDENTITIES_TABLE}
                WHERE {column} = ?
                LIMIT 1
                """,
                (value,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return _row_to_record(tuple(row))

    async def _list_impl(self) -> list[IdentityRecord]:
        async with aiosqlite.connect(self._db_path) as conn:
            await self._ensure_table(conn)
            cursor = await conn.execute(
                f"""
                SELECT handle, did, rotation_keys, verification_keys
                FROM {IDENTITIES_TABLE}
                ORDER BY rowid
                """
            )
            rows = await cursor.fetchall()
            return [_row_to_record(tuple(r)) for r in rows]

    def save(self, record: IdentityRecord) -> str:
        handle = record.handle or uuid.uuid4().hex
        _run_sync(self._save_impl(record, handle))
        return handle

    def get(self, handle: str) -> IdentityRecord | None:
        return _run_sync(self._fetch_one_impl("handle", handle))

    def find_by_did(self, did: str) -> IdentityRecord | None:
        return _run_sync(self._fetch_one_impl("did", did))

    def list_records(self) -> list[IdentityRecord]:
        return _run_sync(self._list_impl())
