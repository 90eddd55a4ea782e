"""Database repository for the account ledger."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager, contextmanager
from typing import Iterator

import psycopg
from psycopg import Connection, Cursor, errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account
from .domain.errors import AccountConflictError, LedgerStorageError

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        id INTEGER PRIMARY KEY,
        introducer_id INTEGER,
        beneficiary_id INTEGER
    )
    """,
    "CREATE INDEX IF NOT EXISTS accounts_introducer_id_idx ON accounts (introducer_id)",
)


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    """Re-raise driver and pool failures as :class:`LedgerStorageError`."""
    try:
        yield
    except psycopg.Error as exc:
        raise LedgerStorageError(f"ledger {operation} failed") from exc


class _LedgerStatements(ABC):
    """SQL shared by the per-operation and transactional ledgers.

    Subclasses decide which connection a statement runs on and when it commits.
    """

    @abstractmethod
    def _cursor(self) -> AbstractContextManager[Cursor]:
        ...

    def insert_provisional(self, account_id: int, introducer_id: int) -> None:
        """Insert a record with a NULL beneficiary."""
        with _storage_errors("insert"):
            try:
                with self._cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO accounts (id, introducer_id, beneficiary_id)
                        VALUES (%s, %s, NULL)
                        """,
                        (account_id, introducer_id),
                    )
            except errors.UniqueViolation as exc:
                raise AccountConflictError(account_id) from exc

    def count_referrals(self, introducer_id: int) -> int:
        with _storage_errors("count"):
            with self._cursor() as cur:
                cur.execute(
                    "SELECT COUNT(*) FROM accounts WHERE introducer_id = %s",
                    (introducer_id,),
                )
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def find_account(self, account_id: int) -> Account | None:
        with _storage_errors("lookup"):
            with self._cursor() as cur:
                cur.execute(
                    """
                    SELECT id, introducer_id, beneficiary_id
                    FROM accounts
                    WHERE id = %s
                    """,
                    (account_id,),
                )
                row = cur.fetchone()
        if not row:
            return None
        return self._map_record(row)

    def finalize(self, account_id: int, beneficiary_id: int | None) -> None:
        with _storage_errors("finalize"):
            with self._cursor() as cur:
                cur.execute(
                    "UPDATE accounts SET beneficiary_id = %s WHERE id = %s",
                    (beneficiary_id, account_id),
                )

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(account_id=row[0], introducer_id=row[1], beneficiary_id=row[2])


class TransactionalLedger(_LedgerStatements):
    """Ledger bound to one connection inside an open transaction."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    @contextmanager
    def _cursor(self) -> Iterator[Cursor]:
        with self._conn.cursor(row_factory=tuple_row) as cur:
            yield cur


class AccountRepository(_LedgerStatements):
    """Postgres-backed account ledger.

    Outside :meth:`unit_of_work` every statement borrows its own pooled
    connection and commits on its own, so a sequence of calls is not atomic.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    @contextmanager
    def _cursor(self) -> Iterator[Cursor]:
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                yield cur
            conn.commit()

    @contextmanager
    def unit_of_work(self) -> Iterator[TransactionalLedger]:
        """Yield a ledger whose statements share one transaction.

        The transaction commits when the block exits cleanly and rolls back
        when it raises.
        """
        with _storage_errors("transaction"):
            with self._pool.connection() as conn:
                with conn.transaction():
                    yield TransactionalLedger(conn)

    def list_accounts(self) -> list[Account]:
        with _storage_errors("list"):
            with self._cursor() as cur:
                cur.execute(
                    """
                    SELECT id, introducer_id, beneficiary_id
                    FROM accounts
                    ORDER BY id ASC
                    """
                )
                rows = cur.fetchall()
        return [self._map_record(row) for row in rows]

    def ensure_schema(self) -> None:
        """Create the accounts table and its introducer index when missing."""
        with _storage_errors("schema bootstrap"):
            with self._cursor() as cur:
                for statement in SCHEMA_STATEMENTS:
                    cur.execute(statement)
