"""
Hospital Wait Board — Persistence

Two interchangeable stores behind one interface:

    PostgresStore — reads/writes PostgreSQL through the db pool
    MemoryStore   — process-local dicts, seeded from JSON; used when the
                    database is unavailable and by the test suite

The app picks one at startup and keeps it on ``app.state.store``; routes
receive it through the ``get_store`` dependency.

Waiting counts change through ``adjust_waiting_count``, which applies the
delta and the zero floor as one atomic step (single UPDATE in PostgreSQL,
under a lock in memory) so concurrent check-ins cannot overwrite each other.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Protocol

import psycopg2
from fastapi import Request

from . import db
from .db import extras
from .helpers import HOSPITAL_FIELDS, db_row_to_hospital, iso
from ..algorithms import WaitingListEntry, apply_delta, new_entry
from ..algorithms.hospital_filter import name_sort_key
from ..algorithms.waiting_list import utcnow

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StoreError(Exception):
    """Base class for persistence-layer errors."""


class HospitalNotFound(StoreError):
    pass


class NotOwner(StoreError):
    """The caller is not the account that registered the hospital."""


class OwnerHasHospital(StoreError):
    """The account already registered a hospital."""


class DuplicateAccount(StoreError):
    pass


class PersistenceFailure(StoreError):
    """The backing database rejected or failed the operation."""


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Account:
    id: str
    email: str
    password_hash: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class SessionRecord:
    token: str
    account_id: str
    email: str
    expires_at: datetime


class HospitalStore(Protocol):
    mode: str

    def fetch_hospitals_with_waiting_counts(self) -> list[dict[str, Any]]: ...
    def fetch_hospital(self, hospital_id: str) -> dict[str, Any]: ...
    def fetch_hospital_for_owner(self, owner_id: str) -> dict[str, Any] | None: ...
    def create_hospital(self, fields: dict[str, Any], owner_id: str) -> dict[str, Any]: ...
    def update_hospital(self, hospital_id: str, fields: dict[str, Any], owner_id: str) -> dict[str, Any]: ...
    def write_waiting_count(self, hospital_id: str, count: int, timestamp: datetime) -> WaitingListEntry: ...
    def adjust_waiting_count(self, hospital_id: str, delta: int) -> WaitingListEntry: ...
    def create_account(self, email: str, password_hash: str) -> Account: ...
    def fetch_account_by_email(self, email: str) -> Account | None: ...
    def create_session(self, token: str, account_id: str, expires_at: datetime) -> SessionRecord: ...
    def fetch_session(self, token: str) -> SessionRecord | None: ...
    def delete_session(self, token: str) -> None: ...
    def record_count(self) -> int: ...


def get_store(request: Request) -> HospitalStore:
    """FastAPI dependency returning the store chosen at startup."""
    return request.app.state.store


def _editable(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if k in HOSPITAL_FIELDS}


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class MemoryStore:
    """Process-local store.  All reads and writes hold one re-entrant lock."""

    mode = "memory"

    def __init__(self, hospitals: list[dict[str, Any]] | None = None) -> None:
        self._lock = threading.RLock()
        self._hospitals: dict[str, dict[str, Any]] = {}
        self._entries: dict[str, WaitingListEntry] = {}
        self._accounts: dict[str, Account] = {}
        self._sessions: dict[str, SessionRecord] = {}
        for record in hospitals or []:
            self._seed(record)

    @classmethod
    def from_json(cls, path: str | Path) -> "MemoryStore":
        """Seed from a JSON list of hospital records; a missing file gives an empty store."""
        path = Path(path)
        if not path.exists():
            logger.info("No seed file at %s — starting with an empty memory store", path)
            return cls()
        with open(path, "r", encoding="utf-8") as f:
            records = json.load(f)
        store = cls(records if isinstance(records, list) else [])
        logger.info("Loaded %d hospitals from %s", store.record_count(), path)
        return store

    def _seed(self, record: dict[str, Any]) -> None:
        hospital_id = str(record.get("id") or uuid.uuid4())
        now = utcnow()
        self._hospitals[hospital_id] = {
            "id": hospital_id,
            **{k: record.get(k) for k in HOSPITAL_FIELDS},
            "owner_id": record.get("owner_id"),
            "created_at": now,
            "updated_at": now,
        }
        self._entries[hospital_id] = WaitingListEntry(
            hospital_id=hospital_id,
            count=max(0, int(record.get("waiting_count") or 0)),
            last_updated=now,
        )

    def _view(self, hospital_id: str) -> dict[str, Any]:
        hospital = self._hospitals[hospital_id]
        entry = self._entries[hospital_id]
        return {
            **hospital,
            "waiting_count": entry.count,
            "last_updated": iso(entry.last_updated),
            "created_at": iso(hospital["created_at"]),
            "updated_at": iso(hospital["updated_at"]),
        }

    # -- hospitals ----------------------------------------------------------

    def fetch_hospitals_with_waiting_counts(self) -> list[dict[str, Any]]:
        with self._lock:
            views = [self._view(hid) for hid in self._hospitals]
        return sorted(views, key=lambda v: name_sort_key(v["name"]))

    def fetch_hospital(self, hospital_id: str) -> dict[str, Any]:
        with self._lock:
            if hospital_id not in self._hospitals:
                raise HospitalNotFound(hospital_id)
            return self._view(hospital_id)

    def fetch_hospital_for_owner(self, owner_id: str) -> dict[str, Any] | None:
        with self._lock:
            for hid, hospital in self._hospitals.items():
                if hospital.get("owner_id") == owner_id:
                    return self._view(hid)
        return None

    def create_hospital(self, fields: dict[str, Any], owner_id: str) -> dict[str, Any]:
        with self._lock:
            if self.fetch_hospital_for_owner(owner_id) is not None:
                raise OwnerHasHospital(owner_id)
            hospital_id = str(uuid.uuid4())
            now = utcnow()
            self._hospitals[hospital_id] = {
                "id": hospital_id,
                **{k: fields.get(k) for k in HOSPITAL_FIELDS},
                "owner_id": owner_id,
                "created_at": now,
                "updated_at": now,
            }
            self._entries[hospital_id] = new_entry(hospital_id, now)
            return self._view(hospital_id)

    def update_hospital(self, hospital_id: str, fields: dict[str, Any], owner_id: str) -> dict[str, Any]:
        with self._lock:
            hospital = self._hospitals.get(hospital_id)
            if hospital is None:
                raise HospitalNotFound(hospital_id)
            if hospital.get("owner_id") != owner_id:
                raise NotOwner(hospital_id)
            hospital.update(_editable(fields))
            hospital["updated_at"] = utcnow()
            return self._view(hospital_id)

    # -- waiting list -------------------------------------------------------

    def write_waiting_count(self, hospital_id: str, count: int, timestamp: datetime) -> WaitingListEntry:
        if count < 0:
            raise ValueError("waiting count cannot be negative")
        with self._lock:
            if hospital_id not in self._entries:
                raise HospitalNotFound(hospital_id)
            entry = WaitingListEntry(hospital_id=hospital_id, count=count, last_updated=timestamp)
            self._entries[hospital_id] = entry
            return entry

    def adjust_waiting_count(self, hospital_id: str, delta: int) -> WaitingListEntry:
        with self._lock:
            current = self._entries.get(hospital_id)
            if current is None:
                raise HospitalNotFound(hospital_id)
            updated = apply_delta(current, delta)
            self._entries[hospital_id] = updated
            return updated

    # -- accounts / sessions --------------------------------------------------

    def create_account(self, email: str, password_hash: str) -> Account:
        with self._lock:
            if self.fetch_account_by_email(email) is not None:
                raise DuplicateAccount(email)
            account = Account(
                id=str(uuid.uuid4()),
                email=email,
                password_hash=password_hash,
                created_at=utcnow(),
            )
            self._accounts[account.id] = account
            return account

    def fetch_account_by_email(self, email: str) -> Account | None:
        with self._lock:
            for account in self._accounts.values():
                if account.email == email:
                    return account
        return None

    def create_session(self, token: str, account_id: str, expires_at: datetime) -> SessionRecord:
        with self._lock:
            account = self._accounts[account_id]
            session = SessionRecord(
                token=token,
                account_id=account_id,
                email=account.email,
                expires_at=expires_at,
            )
            self._sessions[token] = session
            return session

    def fetch_session(self, token: str) -> SessionRecord | None:
        with self._lock:
            return self._sessions.get(token)

    def delete_session(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def record_count(self) -> int:
        with self._lock:
            return len(self._hospitals)


# ---------------------------------------------------------------------------
# PostgreSQL store
# ---------------------------------------------------------------------------

_HOSPITAL_QUERY_BASE = """
    SELECT
        h.id, h.owner_id, h.name, h.address, h.postal_code,
        h.latitude, h.longitude, h.contact_phone, h.contact_email,
        h.created_at, h.updated_at,
        w.waiting_count, w.last_updated
    FROM hospitals h
    LEFT JOIN waiting_lists w ON w.hospital_id = h.id
"""


def _valid_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


class PostgresStore:
    """Store backed by the psycopg2 pool in ``db``."""

    mode = "database"

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        """RealDictCursor in a transaction; driver errors become PersistenceFailure."""
        try:
            with db.get_conn() as conn:
                with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                    yield cur
        except (psycopg2.Error, RuntimeError) as e:
            logger.exception("Database operation failed")
            raise PersistenceFailure(str(e)) from e

    def _require_id(self, hospital_id: str) -> None:
        if not _valid_uuid(hospital_id):
            raise HospitalNotFound(hospital_id)

    # -- hospitals ----------------------------------------------------------

    def fetch_hospitals_with_waiting_counts(self) -> list[dict[str, Any]]:
        with self._cursor() as cur:
            cur.execute(f"{_HOSPITAL_QUERY_BASE} ORDER BY h.name")
            rows = cur.fetchall()
        return [db_row_to_hospital(r) for r in rows]

    def fetch_hospital(self, hospital_id: str) -> dict[str, Any]:
        self._require_id(hospital_id)
        with self._cursor() as cur:
            cur.execute(f"{_HOSPITAL_QUERY_BASE} WHERE h.id = %s", (hospital_id,))
            row = cur.fetchone()
        if row is None:
            raise HospitalNotFound(hospital_id)
        return db_row_to_hospital(row)

    def fetch_hospital_for_owner(self, owner_id: str) -> dict[str, Any] | None:
        with self._cursor() as cur:
            cur.execute(
                f"{_HOSPITAL_QUERY_BASE} WHERE h.owner_id = %s ORDER BY h.created_at LIMIT 1",
                (owner_id,),
            )
            row = cur.fetchone()
        return db_row_to_hospital(row) if row else None

    def create_hospital(self, fields: dict[str, Any], owner_id: str) -> dict[str, Any]:
        values = {k: fields.get(k) for k in HOSPITAL_FIELDS}
        with self._cursor() as cur:
            cur.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (owner_id,))
            cur.execute("SELECT 1 FROM hospitals WHERE owner_id = %s LIMIT 1", (owner_id,))
            if cur.fetchone() is not None:
                raise OwnerHasHospital(owner_id)

            columns = ", ".join(HOSPITAL_FIELDS)
            placeholders = ", ".join(["%s"] * len(HOSPITAL_FIELDS))
            cur.execute(
                f"""
                INSERT INTO hospitals ({columns}, owner_id)
                VALUES ({placeholders}, %s)
                RETURNING id
                """,
                [values[k] for k in HOSPITAL_FIELDS] + [owner_id],
            )
            hospital_id = cur.fetchone()["id"]
            cur.execute(
                "INSERT INTO waiting_lists (hospital_id, waiting_count, last_updated) VALUES (%s, 0, now())",
                (hospital_id,),
            )
            cur.execute(f"{_HOSPITAL_QUERY_BASE} WHERE h.id = %s", (hospital_id,))
            row = cur.fetchone()

        logger.info("Hospital %s registered by %s", hospital_id, owner_id)
        return db_row_to_hospital(row)

    def update_hospital(self, hospital_id: str, fields: dict[str, Any], owner_id: str) -> dict[str, Any]:
        self._require_id(hospital_id)
        changes = _editable(fields)
        with self._cursor() as cur:
            cur.execute("SELECT owner_id FROM hospitals WHERE id = %s FOR UPDATE", (hospital_id,))
            row = cur.fetchone()
            if row is None:
                raise HospitalNotFound(hospital_id)
            if str(row["owner_id"]) != owner_id:
                raise NotOwner(hospital_id)

            if changes:
                assignments = ", ".join(f"{col} = %s" for col in changes)
                cur.execute(
                    f"UPDATE hospitals SET {assignments} WHERE id = %s",
                    list(changes.values()) + [hospital_id],
                )
            cur.execute(f"{_HOSPITAL_QUERY_BASE} WHERE h.id = %s", (hospital_id,))
            updated = cur.fetchone()

        return db_row_to_hospital(updated)

    # -- waiting list -------------------------------------------------------

    def write_waiting_count(self, hospital_id: str, count: int, timestamp: datetime) -> WaitingListEntry:
        if count < 0:
            raise ValueError("waiting count cannot be negative")
        self._require_id(hospital_id)
        with self._cursor() as cur:
            cur.execute(
                """
                UPDATE waiting_lists
                SET waiting_count = %s, last_updated = %s
                WHERE hospital_id = %s
                RETURNING hospital_id, waiting_count, last_updated
                """,
                (count, timestamp, hospital_id),
            )
            row = cur.fetchone()
        if row is None:
            raise HospitalNotFound(hospital_id)
        return _row_to_entry(row)

    def adjust_waiting_count(self, hospital_id: str, delta: int) -> WaitingListEntry:
        self._require_id(hospital_id)
        with self._cursor() as cur:
            cur.execute(
                """
                UPDATE waiting_lists
                SET waiting_count = GREATEST(0, waiting_count + %s), last_updated = now()
                WHERE hospital_id = %s
                RETURNING hospital_id, waiting_count, last_updated
                """,
                (int(delta), hospital_id),
            )
            row = cur.fetchone()
        if row is None:
            raise HospitalNotFound(hospital_id)
        return _row_to_entry(row)

    # -- accounts / sessions --------------------------------------------------

    def create_account(self, email: str, password_hash: str) -> Account:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO accounts (email, password_hash)
                VALUES (%s, %s)
                ON CONFLICT (email) DO NOTHING
                RETURNING id, email, password_hash, created_at
                """,
                (email, password_hash),
            )
            row = cur.fetchone()
        if row is None:
            raise DuplicateAccount(email)
        return _row_to_account(row)

    def fetch_account_by_email(self, email: str) -> Account | None:
        with self._cursor() as cur:
            cur.execute(
                "SELECT id, email, password_hash, created_at FROM accounts WHERE email = %s",
                (email,),
            )
            row = cur.fetchone()
        return _row_to_account(row) if row else None

    def create_session(self, token: str, account_id: str, expires_at: datetime) -> SessionRecord:
        with self._cursor() as cur:
            cur.execute(
                "INSERT INTO sessions (token, account_id, expires_at) VALUES (%s, %s, %s)",
                (token, account_id, expires_at),
            )
            cur.execute("SELECT email FROM accounts WHERE id = %s", (account_id,))
            email = cur.fetchone()["email"]
        return SessionRecord(token=token, account_id=account_id, email=email, expires_at=expires_at)

    def fetch_session(self, token: str) -> SessionRecord | None:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT s.token, s.account_id, s.expires_at, a.email
                FROM sessions s
                JOIN accounts a ON a.id = s.account_id
                WHERE s.token = %s
                """,
                (token,),
            )
            row = cur.fetchone()
        if row is None:
            return None
        return SessionRecord(
            token=row["token"],
            account_id=str(row["account_id"]),
            email=row["email"],
            expires_at=row["expires_at"],
        )

    def delete_session(self, token: str) -> None:
        with self._cursor() as cur:
            cur.execute("DELETE FROM sessions WHERE token = %s", (token,))

    def record_count(self) -> int:
        with self._cursor() as cur:
            cur.execute("SELECT count(*) FROM hospitals")
            return cur.fetchone()["count"]


def _row_to_entry(row: dict) -> WaitingListEntry:
    return WaitingListEntry(
        hospital_id=str(row["hospital_id"]),
        count=row["waiting_count"],
        last_updated=row["last_updated"],
    )


def _row_to_account(row: dict) -> Account:
    return Account(
        id=str(row["id"]),
        email=row["email"],
        password_hash=row["password_hash"],
        created_at=row.get("created_at"),
    )
