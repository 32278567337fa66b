"""Ordered schema migrations for the subscription store and their bookkeeping."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from . import migration_steps as steps

Step = Callable[[sqlite3.Connection], None]


class MigrationError(Exception):
    """Raised when the schema could not be brought up to date."""


@dataclass(frozen=True)
class Migration:
    """One schema change, identified by a unique id."""

    id: str
    migrate: Step
    rollback: Optional[Step] = None


MIGRATIONS: tuple[Migration, ...] = (
    Migration("0", steps.migrate_0),
    Migration("1576509489", steps.migrate_1576509489, steps.rollback_1576509489),
    Migration("1576783801", steps.migrate_1576783801, steps.rollback_1576783801),
    Migration("1582671289", steps.migrate_1582671289, steps.rollback_1582671289),
    Migration("1587897988", steps.migrate_1587897988, steps.rollback_1587897988),
    Migration("1592829052", steps.migrate_1592829052, steps.rollback_1592829052),
    Migration("1594317706", steps.migrate_1594317706, steps.rollback_1594317706),
    Migration("1599849837", steps.migrate_1599849837, steps.rollback_1599849837),
    Migration("1603803454", steps.migrate_1603803454, steps.rollback_1603803454),
    Migration("1605288480", steps.migrate_1605288480, steps.rollback_1605288480),
    Migration("1608026935", steps.migrate_1608026935, steps.rollback_1608026935),
    Migration("1610281978", steps.migrate_1610281978, steps.rollback_1610281978),
    Migration("1611169747", steps.migrate_1611169747, steps.rollback_1611169747),
    Migration("1613356332", steps.migrate_1613356332, steps.rollback_1613356332),
    Migration("1631086126", steps.migrate_1631086126, steps.rollback_1631086126),
)

_TABLE = '"migrations"'


@contextmanager
def _transaction(conn: sqlite3.Connection) -> Iterator[None]:
    """Run the body in one explicit transaction, DDL included."""
    if conn.in_transaction:
        conn.commit()
    previous = conn.isolation_level
    conn.isolation_level = None
    conn.execute("BEGIN")
    try:
        yield
    except BaseException:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise
    else:
        conn.execute("COMMIT")
    finally:
        conn.isolation_level = previous


def migrate(conn: sqlite3.Connection) -> None:
    """Run, in one transaction, every migration not yet recorded as applied."""
    ids = [m.id for m in MIGRATIONS]
    if len(set(ids)) != len(ids):
        raise MigrationError("error running migrations: duplicated migration id")
    try:
        with _transaction(conn):
            conn.execute(f'CREATE TABLE IF NOT EXISTS {_TABLE} ("id" VARCHAR(255) PRIMARY KEY)')
            done = {row[0] for row in conn.execute(f'SELECT "id" FROM {_TABLE}')}
            for migration in MIGRATIONS:
                if migration.id in done:
                    continue
                migration.migrate(conn)
                conn.execute(f'INSERT INTO {_TABLE} ("id") VALUES (?)', (migration.id,))
    except sqlite3.Error as err:
        raise MigrationError(f"error running migrations: {err}") from err


def applied_migrations(conn: sqlite3.Connection) -> list[str]:
    """Ids of the migrations recorded as applied, in the order they ran."""
    exists = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'migrations'"
    ).fetchone()
    if not exists:
        return []
    return [row[0] for row in conn.execute(f'SELECT "id" FROM {_TABLE} ORDER BY rowid')]