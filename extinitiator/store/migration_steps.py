"""Schema migration steps for the subscription store.

Each step receives an open DB-API connection (sqlite3) and changes the schema
in place. Transactions are left to the caller.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

_MODEL_COLUMNS: tuple[tuple[str, str], ...] = (
    ("id", "INTEGER PRIMARY KEY AUTOINCREMENT"),
    ("created_at", "DATETIME"),
    ("updated_at", "DATETIME"),
    ("deleted_at", "DATETIME"),
)

_SUBSCRIPTION_FK = (
    "FOREIGN KEY (subscription_id) REFERENCES subscriptions(id) "
    "ON DELETE CASCADE ON UPDATE CASCADE"
)


@dataclass(frozen=True)
class _Table:
    """Declarative description of a model table."""

    name: str
    columns: tuple[tuple[str, str], ...]
    constraints: tuple[str, ...] = ()
    indexed: tuple[str, ...] = ()

    @property
    def all_columns(self) -> tuple[tuple[str, str], ...]:
        return _MODEL_COLUMNS + self.columns

    def indexes(self) -> Iterator[tuple[str, str]]:
        yield f"idx_{self.name}_deleted_at", "deleted_at"
        for column in self.indexed:
            yield f"idx_{self.name}_{column}", column


_ENDPOINTS = _Table(
    "endpoints",
    (
        ("url", "TEXT"),
        ("type", "TEXT"),
        ("refresh_int", "INTEGER"),
        ("name", "TEXT NOT NULL UNIQUE"),
    ),
)

_SUBSCRIPTIONS = _Table(
    "subscriptions",
    (
        ("reference_id", "TEXT NOT NULL UNIQUE"),
        ("job", "TEXT"),
        ("endpoint_name", "TEXT"),
    ),
)

_ETH = _Table(
    "eth_subscriptions",
    (("subscription_id", "INTEGER"), ("addresses", "TEXT"), ("topics", "TEXT")),
    (_SUBSCRIPTION_FK,),
)

_TEZOS = _Table(
    "tezos_subscriptions",
    (("subscription_id", "INTEGER NOT NULL UNIQUE"), ("addresses", "TEXT NOT NULL")),
    (_SUBSCRIPTION_FK,),
)

_SUBSTRATE = _Table(
    "substrate_subscriptions",
    (("subscription_id", "INTEGER NOT NULL UNIQUE"), ("account_ids", "TEXT NOT NULL")),
    (_SUBSCRIPTION_FK,),
)

_ONT = _Table(
    "ont_subscriptions",
    (("subscription_id", "INTEGER NOT NULL UNIQUE"), ("addresses", "TEXT NOT NULL")),
    (_SUBSCRIPTION_FK,),
)

_BSC = _Table(
    "binance_smart_chain_subscriptions",
    (("subscription_id", "INTEGER"), ("addresses", "TEXT")),
    (_SUBSCRIPTION_FK,),
)

_NEAR = _Table(
    "near_subscriptions",
    (("subscription_id", "INTEGER"), ("account_ids", "TEXT")),
    (_SUBSCRIPTION_FK,),
)

_CFX = _Table(
    "cfx_subscriptions",
    (("subscription_id", "INTEGER"), ("addresses", "TEXT"), ("topics", "TEXT")),
    (_SUBSCRIPTION_FK,),
)

_ETH_CALL_COLUMNS: tuple[tuple[str, str], ...] = (
    ("subscription_id", "INTEGER"),
    ("address", "TEXT"),
    ("abi", "TEXT"),
    ("response_key", "TEXT"),
    ("method_name", "TEXT"),
)

_ETH_CALL = _Table(
    "eth_call_subscriptions",
    _ETH_CALL_COLUMNS,
    (_SUBSCRIPTION_FK,),
    ("subscription_id",),
)

_ETH_CALL_SELECTOR = _Table(
    "eth_call_subscriptions",
    _ETH_CALL_COLUMNS + (("function_selector", "BLOB"), ("return_type", "TEXT")),
    (),
    ("subscription_id",),
)

_KEEPER = _Table(
    "keeper_subscriptions",
    (("subscription_id", "INTEGER"), ("address", "TEXT"), ("upkeep_id", "INTEGER")),
    (_SUBSCRIPTION_FK,),
)

_BSN_IRITA = _Table(
    "bsn_irita_subscriptions",
    (("subscription_id", "INTEGER"), ("addresses", "TEXT"), ("service_name", "TEXT")),
    (_SUBSCRIPTION_FK,),
)

_AGORIC = _Table(
    "agoric_subscriptions",
    (("subscription_id", "INTEGER"),),
    (_SUBSCRIPTION_FK,),
)

_HEDERA = _Table(
    "hedera_subscriptions",
    (("subscription_id", "INTEGER"), ("account_ids", "TEXT")),
    (_SUBSCRIPTION_FK,),
)


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


@contextmanager
def _step(description: str) -> Iterator[None]:
    """Re-raise database errors with a description of the failing step."""
    try:
        yield
    except sqlite3.Error as err:
        raise type(err)(f"{description}: {err}") from err


def _existing_columns(conn: sqlite3.Connection, table: str) -> list[str]:
    return [row[1] for row in conn.execute(f"PRAGMA table_info({_quote(table)})")]


def _create_table_sql(table: _Table, name: str | None = None) -> str:
    parts = [f"{_quote(col)} {decl}" for col, decl in table.all_columns]
    parts.extend(table.constraints)
    return f"CREATE TABLE {_quote(name or table.name)} ({', '.join(parts)})"


def _auto_migrate(conn: sqlite3.Connection, table: _Table) -> None:
    """Create the table, or add any of its columns that are missing."""
    existing = _existing_columns(conn, table.name)
    if not existing:
        conn.execute(_create_table_sql(table))
    else:
        for column, declaration in table.all_columns:
            if column not in existing:
                conn.execute(
                    f"ALTER TABLE {_quote(table.name)} "
                    f"ADD COLUMN {_quote(column)} {declaration}"
                )
    for index_name, column in table.indexes():
        conn.execute(
            f"CREATE INDEX IF NOT EXISTS {_quote(index_name)} "
            f"ON {_quote(table.name)} ({_quote(column)})"
        )


def _drop_table(conn: sqlite3.Connection, name: str, *, if_exists: bool = False) -> None:
    clause = "IF EXISTS " if if_exists else ""
    conn.execute(f"DROP TABLE {clause}{_quote(name)}")


def _rebuild_without(conn: sqlite3.Connection, table: _Table, keep: list[str]) -> None:
    """Recreate a table from its description, copying the kept columns."""
    temp = f"{table.name}__rebuild"
    conn.execute(_create_table_sql(table, temp))
    columns = ", ".join(_quote(c) for c in keep)
    conn.execute(
        f"INSERT INTO {_quote(temp)} ({columns}) SELECT {columns} FROM {_quote(table.name)}"
    )
    _drop_table(conn, table.name)
    conn.execute(f"ALTER TABLE {_quote(temp)} RENAME TO {_quote(table.name)}")
    for index_name, column in table.indexes():
        conn.execute(
            f"CREATE INDEX IF NOT EXISTS {_quote(index_name)} "
            f"ON {_quote(table.name)} ({_quote(column)})"
        )


def _migrate_subscriptions(conn: sqlite3.Connection) -> None:
    with _step("failed to auto migrate Subscription"):
        _auto_migrate(conn, _SUBSCRIPTIONS)


def _migrate_child(conn: sqlite3.Connection, table: _Table, model: str) -> None:
    _migrate_subscriptions(conn)
    with _step(f"failed to auto migrate {model}"):
        _auto_migrate(conn, table)


def migrate_0(conn: sqlite3.Connection) -> None:
    """Create the subscriptions, endpoints and Ethereum subscription tables."""
    _migrate_subscriptions(conn)
    with _step("failed to auto migrate Endpoint"):
        _auto_migrate(conn, _ENDPOINTS)
    with _step("failed to auto migrate EthSubscription"):
        _auto_migrate(conn, _ETH)


def migrate_1576509489(conn: sqlite3.Connection) -> None:
    """Add the Tezos subscription table."""
    _migrate_child(conn, _TEZOS, "TezosSubscription")


def rollback_1576509489(conn: sqlite3.Connection) -> None:
    _drop_table(conn, _TEZOS.name)


def migrate_1576783801(conn: sqlite3.Connection) -> None:
    """Add the Substrate subscription table."""
    _migrate_child(conn, _SUBSTRATE, "SubstrateSubscription")


def rollback_1576783801(conn: sqlite3.Connection) -> None:
    _drop_table(conn, _SUBSTRATE.name)


def migrate_1582671289(conn: sqlite3.Connection) -> None:
    """Make the subscription job id unique."""
    with _step("failed to add unique index to subscription job id"):
        conn.execute('CREATE UNIQUE INDEX "idx_job_id" ON "subscriptions" ("job")')


def rollback_1582671289(conn: sqlite3.Connection) -> None:
    conn.execute('DROP INDEX "idx_job_id"')


def migrate_1587897988(conn: sqlite3.Connection) -> None:
    """Add the Ontology subscription table."""
    _migrate_child(conn, _ONT, "OntSubscription")


def rollback_1587897988(conn: sqlite3.Connection) -> None:
    _drop_table(conn, _ONT.name)


def migrate_1592829052(conn: sqlite3.Connection) -> None:
    """Add the Binance Smart Chain subscription table."""
    _migrate_child(conn, _BSC, "BinanceSmartChainSubscription")


def rollback_1592829052(conn: sqlite3.Connection) -> None:
    _drop_table(conn, _BSC.name)


def migrate_1594317706(conn: sqlite3.Connection) -> None:
    """Add the NEAR subscription table."""
    _migrate_child(conn, _NEAR, "NEARSubscription")


def rollback_1594317706(conn: sqlite3.Connection) -> None:
    _drop_table(conn, _NEAR.name)


def migrate_1599849837(conn: sqlite3.Connection) -> None:
    """Add the Conflux subscription table."""
    _migrate_child(conn, _CFX, "CfxSubscription")


def rollback_1599849837(conn: sqlite3.Connection) -> None:
    _drop_table(conn, _CFX.name)


def migrate_1603803454(conn: sqlite3.Connection) -> None:
    """Add the eth_call subscription table."""
    _migrate_child(conn, _ETH_CALL, "EthCallSubscription")


def rollback_1603803454(conn: sqlite3.Connection) -> None:
    # A later rollback already drops this table.
    _drop_table(conn, _ETH_CALL.name, if_exists=True)


def migrate_1605288480(conn: sqlite3.Connection) -> None:
    """Add function selector and return type to eth_call subscriptions."""
    with _step("failed to auto migrate EthCallSubscription"):
        _auto_migrate(conn, _ETH_CALL_SELECTOR)


def rollback_1605288480(conn: sqlite3.Connection) -> None:
    _drop_table(conn, _ETH_CALL_SELECTOR.name)


def migrate_1608026935(conn: sqlite3.Connection) -> None:
    """Add the Keeper subscription table."""
    _migrate_child(conn, _KEEPER, "KeeperSubscription")


def rollback_1608026935(conn: sqlite3.Connection) -> None:
    _drop_table(conn, _KEEPER.name)


def migrate_1610281978(conn: sqlite3.Connection) -> None:
    """Add the BSN-IRITA subscription table."""
    _migrate_child(conn, _BSN_IRITA, "BSNIritaSubscription")


def rollback_1610281978(conn: sqlite3.Connection) -> None:
    _drop_table(conn, _BSN_IRITA.name)


def migrate_1611169747(conn: sqlite3.Connection) -> None:
    """Add the sender address column to Keeper subscriptions."""
    conn.execute(
        'ALTER TABLE "keeper_subscriptions" ADD COLUMN "from" BLOB NOT NULL DEFAULT x\'\''
    )


def rollback_1611169747(conn: sqlite3.Connection) -> None:
    existing = _existing_columns(conn, _KEEPER.name)
    if "from" not in existing:
        return
    if sqlite3.sqlite_version_info >= (3, 35, 0):
        conn.execute('ALTER TABLE "keeper_subscriptions" DROP COLUMN "from"')
    else:
        _rebuild_without(conn, _KEEPER, [c for c in existing if c != "from"])


def migrate_1613356332(conn: sqlite3.Connection) -> None:
    """Add the Agoric subscription table."""
    _migrate_child(conn, _AGORIC, "AgoricSubscription")


def rollback_1613356332(conn: sqlite3.Connection) -> None:
    _drop_table(conn, _AGORIC.name)


def migrate_1631086126(conn: sqlite3.Connection) -> None:
    """Add the Hedera subscription table."""
    _migrate_child(conn, _HEDERA, "HederaSubscription")


def rollback_1631086126(conn: sqlite3.Connection) -> None:
    _drop_table(conn, _HEDERA.name)