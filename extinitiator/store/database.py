"""Persistence of endpoints and blockchain subscriptions."""

from __future__ import annotations

import logging
import re
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from .migrations import MigrationError, migrate

log = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when a store operation fails."""


class RecordNotFoundError(StoreError, LookupError):
    """Raised when a requested record does not exist."""

    def __init__(self, message: str = "record not found") -> None:
        super().__init__(message)


# --- column codecs -----------------------------------------------------------

_UNQUOTED = re.compile(r"[^,\n]*")
_QUOTE_ERROR = 'extraneous or missing " in quoted-field'


def _read_csv_record(text: str) -> list[str]:
    """Parse the first non-empty CSV record of ``text`` strictly."""
    text = text.replace("\r\n", "\n")
    pos = len(text) - len(text.lstrip("\n"))
    if pos == len(text):
        return []
    fields: list[str] = []
    while True:
        if text.startswith('"', pos):
            pos += 1
            parts: list[str] = []
            while True:
                close = text.find('"', pos)
                if close == -1:
                    raise ValueError(_QUOTE_ERROR)
                parts.append(text[pos:close])
                pos = close + 1
                if text.startswith('"', pos):
                    parts.append('"')
                    pos += 1
                    continue
                break
            if pos < len(text) and text[pos] not in ",\n":
                raise ValueError(_QUOTE_ERROR)
            value = "".join(parts)
        else:
            match = _UNQUOTED.match(text, pos)
            value = match.group()
            if '"' in value:
                raise ValueError('bare " in non-quoted-field')
            pos = match.end()
        fields.append(value)
        if text.startswith(",", pos):
            pos += 1
            continue
        return fields


def _needs_quotes(value: str) -> bool:
    if value == "":
        return False
    if value == "\\.":
        return True
    if any(ch in value for ch in ',"\r\n'):
        return True
    return value[0].isspace()


def scan_string_array(src: Any) -> Optional[list[str]]:
    """Decode a comma separated database value into a list of strings."""
    if src is None:
        return None
    if isinstance(src, (bytes, bytearray)):
        text = bytes(src).decode("utf-8")
    else:
        text = str(src)
    try:
        return _read_csv_record(text)
    except ValueError as err:
        raise StoreError(f"badly formatted csv string array: {err}") from err


def string_array_value(arr: Iterable[str]) -> str:
    """Encode a list of strings as one CSV line for storage."""
    quoted = (
        '"' + item.replace('"', '""') + '"' if _needs_quotes(item) else item for item in arr
    )
    return ",".join(quoted) + "\n"


def scan_bytes(src: Any) -> Optional[bytes]:
    """Decode a database string value into bytes."""
    if src is None:
        return None
    if isinstance(src, str):
        return src.encode("utf-8", "surrogateescape")
    if isinstance(src, (bytes, bytearray, memoryview)):
        return bytes(src)
    raise StoreError("failed to scan string")


def bytes_value(data: bytes) -> str:
    """Encode bytes as a string for storage."""
    return bytes(data).decode("utf-8", "surrogateescape")


# --- models ------------------------------------------------------------------


@dataclass
class RuntimeConfig:
    keeper_block_cooldown: int = 0


@dataclass
class _Model:
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


@dataclass
class Endpoint(_Model):
    url: str = ""
    type: str = ""
    refresh_int: int = 0
    name: str = ""


@dataclass
class EthSubscription(_Model):
    subscription_id: int = 0
    addresses: list[str] = field(default_factory=list)
    topics: list[str] = field(default_factory=list)


@dataclass
class TezosSubscription(_Model):
    subscription_id: int = 0
    addresses: list[str] = field(default_factory=list)


@dataclass
class SubstrateSubscription(_Model):
    subscription_id: int = 0
    account_ids: list[str] = field(default_factory=list)


@dataclass
class OntSubscription(_Model):
    subscription_id: int = 0
    addresses: list[str] = field(default_factory=list)


@dataclass
class BinanceSmartChainSubscription(_Model):
    subscription_id: int = 0
    addresses: list[str] = field(default_factory=list)


@dataclass
class NEARSubscription(_Model):
    subscription_id: int = 0
    account_ids: list[str] = field(default_factory=list)


@dataclass
class CfxSubscription(_Model):
    subscription_id: int = 0
    addresses: list[str] = field(default_factory=list)
    topics: list[str] = field(default_factory=list)


@dataclass
class KeeperSubscription(_Model):
    subscription_id: int = 0
    address: str = ""
    upkeep_id: str = ""
    from_address: bytes = b""


@dataclass
class BSNIritaSubscription(_Model):
    subscription_id: int = 0
    addresses: list[str] = field(default_factory=list)
    service_name: str = ""


@dataclass
class AgoricSubscription(_Model):
    subscription_id: int = 0


@dataclass
class HederaSubscription(_Model):
    subscription_id: int = 0
    account_ids: list[str] = field(default_factory=list)


@dataclass
class Subscription(_Model):
    reference_id: str = ""
    job: str = ""
    endpoint_name: str = ""
    endpoint: Endpoint = field(default_factory=Endpoint)
    ethereum: EthSubscription = field(default_factory=EthSubscription)
    tezos: TezosSubscription = field(default_factory=TezosSubscription)
    substrate: SubstrateSubscription = field(default_factory=SubstrateSubscription)
    ontology: OntSubscription = field(default_factory=OntSubscription)
    binance_smart_chain: BinanceSmartChainSubscription = field(
        default_factory=BinanceSmartChainSubscription
    )
    near: NEARSubscription = field(default_factory=NEARSubscription)
    conflux: CfxSubscription = field(default_factory=CfxSubscription)
    keeper: KeeperSubscription = field(default_factory=KeeperSubscription)
    bsn_irita: BSNIritaSubscription = field(default_factory=BSNIritaSubscription)
    agoric: AgoricSubscription = field(default_factory=AgoricSubscription)
    hedera: HederaSubscription = field(default_factory=HederaSubscription)


# --- child table mapping -----------------------------------------------------


@dataclass(frozen=True)
class _Column:
    attr: str
    column: str
    kind: str  # "array", "text" or "bytes"

    def encode(self, value: Any) -> Any:
        if self.kind == "array":
            return string_array_value(value)
        if self.kind == "bytes":
            return bytes(value)
        return value

    def decode(self, raw: Any) -> Any:
        if self.kind == "array":
            return scan_string_array(raw) or []
        if self.kind == "bytes":
            return scan_bytes(raw) or b""
        return "" if raw is None else str(raw)


@dataclass(frozen=True)
class _ChildSpec:
    attr: str
    table: str
    model: type
    columns: tuple[_Column, ...]

    def encode(self, child: Any) -> dict[str, Any]:
        return {c.column: c.encode(getattr(child, c.attr)) for c in self.columns}

    def has_data(self, child: Any) -> bool:
        return any(getattr(child, c.attr) for c in self.columns)

    def decode(self, row: sqlite3.Row) -> Any:
        values = {c.attr: c.decode(row[c.column]) for c in self.columns}
        return self.model(
            id=row["id"],
            created_at=_parse_time(row["created_at"]),
            updated_at=_parse_time(row["updated_at"]),
            deleted_at=_parse_time(row["deleted_at"]),
            subscription_id=row["subscription_id"],
            **values,
        )


def _array(name: str) -> _Column:
    return _Column(name, name, "array")


_CHILD_SPECS: tuple[_ChildSpec, ...] = (
    _ChildSpec("ethereum", "eth_subscriptions", EthSubscription,
               (_array("addresses"), _array("topics"))),
    _ChildSpec("tezos", "tezos_subscriptions", TezosSubscription, (_array("addresses"),)),
    _ChildSpec("substrate", "substrate_subscriptions", SubstrateSubscription,
               (_array("account_ids"),)),
    _ChildSpec("ontology", "ont_subscriptions", OntSubscription, (_array("addresses"),)),
    _ChildSpec("binance_smart_chain", "binance_smart_chain_subscriptions",
               BinanceSmartChainSubscription, (_array("addresses"),)),
    _ChildSpec("near", "near_subscriptions", NEARSubscription, (_array("account_ids"),)),
    _ChildSpec("conflux", "cfx_subscriptions", CfxSubscription,
               (_array("addresses"), _array("topics"))),
    _ChildSpec("keeper", "keeper_subscriptions", KeeperSubscription, (
        _Column("address", "address", "text"),
        _Column("upkeep_id", "upkeep_id", "text"),
        _Column("from_address", "from", "bytes"),
    )),
    _ChildSpec("bsn_irita", "bsn_irita_subscriptions", BSNIritaSubscription,
               (_array("addresses"), _Column("service_name", "service_name", "text"))),
    _ChildSpec("agoric", "agoric_subscriptions", AgoricSubscription, ()),
    _ChildSpec("hedera", "hedera_subscriptions", HederaSubscription, (_array("account_ids"),)),
)

_SPECS_BY_ATTR = {spec.attr: spec for spec in _CHILD_SPECS}

_TYPE_TO_ATTR = {
    "ethereum": "ethereum",
    "iotex": "ethereum",
    "klaytn": "ethereum",
    "tezos": "tezos",
    "substrate": "substrate",
    "ontology": "ontology",
    "binance-smart-chain": "binance_smart_chain",
    "conflux": "conflux",
    "near": "near",
    "keeper": "keeper",
    "bsn-irita": "bsn_irita",
    "agoric": "agoric",
    "hedera": "hedera",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_time(raw: Any) -> Optional[datetime]:
    return None if raw is None else datetime.fromisoformat(raw)


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def _endpoint_from_row(row: sqlite3.Row) -> Endpoint:
    return Endpoint(
        id=row["id"],
        created_at=_parse_time(row["created_at"]),
        updated_at=_parse_time(row["updated_at"]),
        deleted_at=_parse_time(row["deleted_at"]),
        url=row["url"] or "",
        type=row["type"] or "",
        refresh_int=row["refresh_int"] or 0,
        name=row["name"],
    )


def _subscription_from_row(row: sqlite3.Row) -> Subscription:
    return Subscription(
        id=row["id"],
        created_at=_parse_time(row["created_at"]),
        updated_at=_parse_time(row["updated_at"]),
        deleted_at=_parse_time(row["deleted_at"]),
        reference_id=row["reference_id"],
        job=row["job"] or "",
        endpoint_name=row["endpoint_name"] or "",
    )


# --- client ------------------------------------------------------------------


class Client:
    """A connection to the subscription database."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._conn.row_factory = sqlite3.Row

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def _fetch_one(self, sql: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        try:
            return self._conn.execute(sql, params).fetchone()
        except sqlite3.Error as err:
            raise StoreError(str(err)) from err

    def _fetch_all(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as err:
            raise StoreError(str(err)) from err

    def _insert(self, table: str, values: dict[str, Any]) -> int:
        columns = ", ".join(_quote(c) for c in values)
        placeholders = ", ".join("?" for _ in values)
        cursor = self._conn.execute(
            f"INSERT INTO {_quote(table)} ({columns}) VALUES ({placeholders})",
            tuple(values.values()),
        )
        return cursor.lastrowid

    def _load_child(self, spec: _ChildSpec, subscription_id: Optional[int]) -> Any:
        row = self._fetch_one(
            f"SELECT * FROM {_quote(spec.table)} WHERE subscription_id = ? "
            "AND deleted_at IS NULL ORDER BY id LIMIT 1",
            (subscription_id,),
        )
        if row is None:
            raise RecordNotFoundError()
        return spec.decode(row)

    def prepare_subscription(self, raw: Subscription) -> Subscription:
        """Attach the endpoint and the chain-specific settings to a subscription."""
        endpoint = self.load_endpoint(raw.endpoint_name)
        sub = Subscription(
            id=raw.id,
            created_at=raw.created_at,
            updated_at=raw.updated_at,
            deleted_at=raw.deleted_at,
            reference_id=raw.reference_id,
            job=raw.job,
            endpoint_name=raw.endpoint_name,
            endpoint=endpoint,
        )
        attr = _TYPE_TO_ATTR.get(endpoint.type)
        if attr is not None:
            setattr(sub, attr, self._load_child(_SPECS_BY_ATTR[attr], sub.id))
        return sub

    def load_subscriptions(self) -> list[Subscription]:
        """All live subscriptions with their endpoints; broken ones are skipped."""
        rows = self._fetch_all(
            "SELECT * FROM subscriptions WHERE deleted_at IS NULL ORDER BY id"
        )
        subs = []
        for row in rows:
            try:
                subs.append(self.prepare_subscription(_subscription_from_row(row)))
            except StoreError as err:
                log.error("%s", err)
        return subs

    def load_subscription(self, job_id: str) -> Subscription:
        """The live subscription for a job id."""
        row = self._fetch_one(
            "SELECT * FROM subscriptions WHERE job = ? AND deleted_at IS NULL "
            "ORDER BY id LIMIT 1",
            (job_id,),
        )
        if row is None:
            raise RecordNotFoundError()
        return self.prepare_subscription(_subscription_from_row(row))

    def save_subscription(self, sub: Subscription) -> None:
        """Store a subscription after checking that its endpoint exists."""
        if not sub.endpoint_name:
            sub.endpoint_name = sub.endpoint.name
        try:
            endpoint: Optional[Endpoint] = self.load_endpoint(sub.endpoint_name)
        except StoreError:
            endpoint = None
        if endpoint is None or endpoint.name != sub.endpoint_name:
            raise StoreError(f"unable to get endpoint {sub.endpoint_name}")

        primary = _TYPE_TO_ATTR.get(endpoint.type)
        now = _now()
        stamp = now.isoformat()
        saved_children = []
        try:
            with self._conn:
                sub_id = self._insert("subscriptions", {
                    "created_at": stamp,
                    "updated_at": stamp,
                    "reference_id": sub.reference_id,
                    "job": sub.job,
                    "endpoint_name": sub.endpoint_name,
                })
                for spec in _CHILD_SPECS:
                    child = getattr(sub, spec.attr)
                    if spec.attr != primary and not spec.has_data(child):
                        continue
                    child_id = self._insert(spec.table, {
                        "created_at": stamp,
                        "updated_at": stamp,
                        "subscription_id": sub_id,
                        **spec.encode(child),
                    })
                    saved_children.append((child, child_id))
        except sqlite3.Error as err:
            raise StoreError(str(err)) from err

        sub.id, sub.created_at, sub.updated_at = sub_id, now, now
        for child, child_id in saved_children:
            child.id, child.created_at, child.updated_at = child_id, now, now
            child.subscription_id = sub_id

    def delete_subscription(self, sub: Subscription) -> None:
        """Soft-delete a stored subscription."""
        if not sub.id:
            return
        now = _now()
        try:
            with self._conn:
                self._conn.execute(
                    "UPDATE subscriptions SET deleted_at = ? "
                    "WHERE id = ? AND deleted_at IS NULL",
                    (now.isoformat(), sub.id),
                )
        except sqlite3.Error as err:
            raise StoreError(str(err)) from err
        sub.deleted_at = now

    def load_endpoint(self, name: str) -> Endpoint:
        """The live endpoint with the given name."""
        row = self._fetch_one(
            "SELECT * FROM endpoints WHERE name = ? AND deleted_at IS NULL "
            "ORDER BY id LIMIT 1",
            (name,),
        )
        if row is None:
            raise RecordNotFoundError()
        return _endpoint_from_row(row)

    def restore_endpoint(self, name: str) -> None:
        """Undo the soft-deletion of the endpoint with the given name."""
        try:
            with self._conn:
                self._conn.execute(
                    "UPDATE endpoints SET deleted_at = NULL WHERE name = ?", (name,)
                )
        except sqlite3.Error as err:
            raise StoreError(str(err)) from err

    def save_endpoint(self, endpoint: Endpoint) -> None:
        """Store an endpoint, overwriting any record with the same name."""
        now = _now()
        stamp = now.isoformat()
        try:
            with self._conn:
                row = self._conn.execute(
                    "SELECT * FROM endpoints WHERE name = ? ORDER BY id LIMIT 1",
                    (endpoint.name,),
                ).fetchone()
                if row is None:
                    endpoint_id = self._insert("endpoints", {
                        "created_at": stamp,
                        "updated_at": stamp,
                        "url": endpoint.url,
                        "type": endpoint.type,
                        "refresh_int": endpoint.refresh_int,
                        "name": endpoint.name,
                    })
                    created = now
                else:
                    endpoint_id = row["id"]
                    created = _parse_time(row["created_at"])
                    self._conn.execute(
                        "UPDATE endpoints SET url = ?, type = ?, refresh_int = ?, "
                        "updated_at = ? WHERE id = ?",
                        (endpoint.url, endpoint.type, endpoint.refresh_int, stamp, endpoint_id),
                    )
        except sqlite3.Error as err:
            raise StoreError(str(err)) from err

        endpoint.id, endpoint.created_at, endpoint.updated_at = endpoint_id, created, now
        self.restore_endpoint(endpoint.name)
        endpoint.deleted_at = None

    def delete_endpoint(self, name: str) -> None:
        """Soft-delete an endpoint and every subscription that uses it."""
        stamp = _now().isoformat()
        try:
            with self._conn:
                self._conn.execute(
                    "UPDATE endpoints SET deleted_at = ? WHERE name = ? AND deleted_at IS NULL",
                    (stamp, name),
                )
                self._conn.execute(
                    "UPDATE subscriptions SET deleted_at = ? "
                    "WHERE endpoint_name = ? AND deleted_at IS NULL",
                    (stamp, name),
                )
        except sqlite3.Error as err:
            raise StoreError(str(err)) from err

    def delete_all_endpoints_except(self, names: Iterable[str]) -> None:
        """Delete every live endpoint whose name is not among ``names``."""
        keep = set(names)
        rows = self._fetch_all("SELECT name FROM endpoints WHERE deleted_at IS NULL ORDER BY id")
        for name in (row["name"] for row in rows):
            if name not in keep:
                self.delete_endpoint(name)


def connect_to_db(uri: str) -> Client:
    """Open (and migrate) the database at ``uri``."""
    target, is_uri = uri, False
    if target == "sqlite://":
        target = ":memory:"
    elif target.startswith("sqlite:///"):
        target = target[len("sqlite:///"):]
    elif target.startswith("file:"):
        is_uri = True
    try:
        conn = sqlite3.connect(target, uri=is_uri)
        conn.execute("PRAGMA foreign_keys = ON")
    except sqlite3.Error as err:
        raise StoreError(f"unable to open {uri} for DB: {err}") from err
    try:
        migrate(conn)
    except MigrationError as err:
        conn.close()
        raise StoreError(f"newDBStore#Migrate: {err}") from err
    return Client(conn)