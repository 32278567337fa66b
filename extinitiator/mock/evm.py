"""Mock log subscription and log query handlers for EVM style chains."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from Crypto.Hash import keccak

from .jsonrpc import JsonrpcMessage, MockRequestError

_HASH_LENGTH = 32
_ADDRESS_LENGTH = 20
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

_LONG_HASH = "0xabc0000000000000000000000000000000000000000000000000000000000000"
_LONG_DATA = "0x0000000000000000000000007d0965224facd7156df0c9a1adf3a94118026eeb354f99e2ac319d0d1ff8975c41c72bf347fb69a4874e2641bd19c32e09eb88b80000000000000000000000000000000000000000000000000de0b6b3a76400000000000000000000000000007d0965224facd7156df0c9a1adf3a94118026eeb92cdaaf300000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000005ef1cd6b00000000000000000000000000000000000000000000000000000000000000010000000000000000000000000000000000000000000000000000000000000100000000000000000000000000000000000000000000000000000000000000005663676574783f68747470733a2f2f6d696e2d6170692e63727970746f636f6d706172652e636f6d2f646174612f70726963653f6673796d3d455448267473796d733d5553446470617468635553446574696d65731864"


# --- hex helpers -------------------------------------------------------------


def _has_hex_prefix(text: str) -> bool:
    return len(text) >= 2 and text[0] == "0" and text[1] in "xX"


def _lenient_hex(text: str) -> bytes:
    """Decode hex leniently: optional prefix, odd length padded, stop at bad digits."""
    digits = text[2:] if _has_hex_prefix(text) else text
    if len(digits) % 2:
        digits = "0" + digits
    valid = len(digits)
    for index, char in enumerate(digits):
        if char not in _HEX_DIGITS:
            valid = index - index % 2
            break
    return bytes.fromhex(digits[:valid])


def _fit(raw: bytes, length: int) -> bytes:
    if len(raw) > length:
        raw = raw[-length:]
    return raw.rjust(length, b"\0")


def hex_to_hash(text: str) -> str:
    """A 32 byte hash from hex text, as a lower case 0x-prefixed string."""
    return "0x" + _fit(_lenient_hex(text), _HASH_LENGTH).hex()


def checksum_address(raw: bytes) -> str:
    """The mixed-case checksummed hex form of a 20 byte address."""
    raw = bytes(raw)
    if len(raw) != _ADDRESS_LENGTH:
        raise ValueError(f"address must be {_ADDRESS_LENGTH} bytes, got {len(raw)}")
    lower = raw.hex()
    digest = keccak.new(digest_bits=256, data=lower.encode("ascii")).hexdigest()
    return "0x" + "".join(
        char.upper() if char.isalpha() and int(nibble, 16) >= 8 else char
        for char, nibble in zip(lower, digest)
    )


def hex_to_address(text: str) -> str:
    """A 20 byte address from hex text, in checksummed form."""
    return checksum_address(_fit(_lenient_hex(text), _ADDRESS_LENGTH))


def parse_address(text: Any) -> str:
    """Strictly parse a JSON address string into checksummed form."""
    if not isinstance(text, str):
        raise MockRequestError("address must be a JSON string")
    if not _has_hex_prefix(text):
        raise MockRequestError("hex string without 0x prefix")
    digits = text[2:]
    if len(digits) % 2:
        raise MockRequestError("hex string of odd length")
    if len(digits) != _ADDRESS_LENGTH * 2:
        raise MockRequestError(
            f"hex string has length {len(digits)}, want {_ADDRESS_LENGTH * 2}"
        )
    if any(char not in _HEX_DIGITS for char in digits):
        raise MockRequestError("invalid hex string")
    return checksum_address(bytes.fromhex(digits))


# --- filters -----------------------------------------------------------------


@dataclass
class LogResponse:
    """One log entry as returned by the mock node."""

    log_index: str
    block_number: str
    block_hash: str
    transaction_hash: str
    transaction_index: str
    address: str
    data: str
    topics: Optional[list[str]]

    def to_dict(self) -> dict[str, Any]:
        """The log as a JSON object."""
        return {
            "logIndex": self.log_index,
            "blockNumber": self.block_number,
            "blockHash": self.block_hash,
            "transactionHash": self.transaction_hash,
            "transactionIndex": self.transaction_index,
            "address": self.address,
            "data": self.data,
            "topics": None if self.topics is None else list(self.topics),
        }


def _topic_text(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MockRequestError("topic must be a JSON string")
    return value


def get_topics_from_map(req: Mapping[str, Any]) -> list[list[str]]:
    """The topic groups of a log filter; null groups are skipped."""
    if "topics" not in req:
        raise MockRequestError("no topics included")
    groups = req["topics"]
    if groups is None:
        return []
    if not isinstance(groups, list):
        raise MockRequestError("topics must be a JSON array")
    final: list[list[str]] = []
    for group in groups:
        if group is None:
            continue
        if not isinstance(group, list):
            raise MockRequestError("topic group must be a JSON array")
        final.append([hex_to_hash(_topic_text(topic)) for topic in group])
    return final


def get_addresses_from_map(req: Mapping[str, Any]) -> list[str]:
    """The contract addresses of a log filter; at least one is required."""
    if "address" not in req:
        raise MockRequestError("no addresses included")
    values = req["address"]
    if values is None:
        values = []
    if not isinstance(values, list):
        raise MockRequestError("address must be a JSON array")
    addresses = [parse_address(value) for value in values]
    if not addresses:
        raise MockRequestError("no addresses provided")
    return addresses


def _as_filter(value: Any) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise MockRequestError("filter must be a JSON object")
    return value


@dataclass(frozen=True)
class _LogTemplate:
    block_number: str
    block_hash: str
    transaction_hash: str
    data: str

    def build(self, filters: Mapping[str, Any]) -> LogResponse:
        filters = _as_filter(filters)
        topics = get_topics_from_map(filters)
        first_group = topics[0] if topics else []
        addresses = get_addresses_from_map(filters)
        return LogResponse(
            log_index="0x0",
            block_number=self.block_number,
            block_hash=self.block_hash,
            transaction_hash=self.transaction_hash,
            transaction_index="0x0",
            address=addresses[0],
            data=self.data,
            topics=list(first_group) or None,
        )


_ETH_TEMPLATE = _LogTemplate("0x1", "0x0", "0x0", "0x0")
_LONG_TEMPLATE = _LogTemplate("0x2", _LONG_HASH, _LONG_HASH, _LONG_DATA)


def _log_request(msg: JsonrpcMessage, template: _LogTemplate) -> LogResponse:
    if not isinstance(msg.params, list):
        raise MockRequestError("params must be a JSON array")
    filters = [_as_filter(item) for item in msg.params]
    if len(filters) != 1:
        raise MockRequestError(f"expected exactly 1 filter in request, got {len(filters)}")
    return template.build(filters[0])


def _get_logs(msg: JsonrpcMessage, template: _LogTemplate) -> list[JsonrpcMessage]:
    log = _log_request(msg, template)
    return [JsonrpcMessage(version="2.0", id=msg.id, result=[log.to_dict()])]


def _subscribe(msg: JsonrpcMessage, method: str, template: _LogTemplate) -> list[JsonrpcMessage]:
    contents = msg.params
    if not isinstance(contents, list):
        raise MockRequestError("params must be a JSON array")
    if len(contents) != 2:
        raise MockRequestError(f"possibly incorrect length of params array: {len(contents)}")
    log = template.build(_as_filter(contents[1]))
    return [
        # The confirmation is ignored by the initiator, so it stays empty.
        JsonrpcMessage(version="2.0", id=msg.id, method=method),
        JsonrpcMessage(
            version="2.0",
            id=msg.id,
            method=method,
            params={"subscription": "test", "result": log.to_dict()},
        ),
    ]


def _dispatch(
    conn: str,
    msg: JsonrpcMessage,
    subscribe_method: str,
    get_logs_method: str,
    template: _LogTemplate,
) -> list[JsonrpcMessage]:
    if conn == "ws":
        if msg.method == subscribe_method:
            return _subscribe(msg, subscribe_method, template)
    elif msg.method == get_logs_method:
        return _get_logs(msg, template)
    raise MockRequestError(f"unexpected method: {msg.method}")


# --- Ethereum ----------------------------------------------------------------


def handle_map_string_interface(filters: Mapping[str, Any]) -> LogResponse:
    """An Ethereum log matching the filter."""
    return _ETH_TEMPLATE.build(filters)


def eth_log_request_to_response(msg: JsonrpcMessage) -> LogResponse:
    """The Ethereum log answering an ``eth_getLogs`` request."""
    return _log_request(msg, _ETH_TEMPLATE)


def handle_eth_subscribe(msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """Confirmation and one log notification for ``eth_subscribe``."""
    return _subscribe(msg, "eth_subscribe", _ETH_TEMPLATE)


def handle_eth_get_logs(msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """The response to ``eth_getLogs``."""
    return _get_logs(msg, _ETH_TEMPLATE)


def handle_eth_request(conn: str, msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """Answer an Ethereum request arriving over ``ws`` or ``rpc``."""
    return _dispatch(conn, msg, "eth_subscribe", "eth_getLogs", _ETH_TEMPLATE)


# --- Binance Smart Chain -----------------------------------------------------


def handle_bsc_map_string_interface(filters: Mapping[str, Any]) -> LogResponse:
    """A Binance Smart Chain log matching the filter."""
    return _LONG_TEMPLATE.build(filters)


def bsc_log_request_to_response(msg: JsonrpcMessage) -> LogResponse:
    """The Binance Smart Chain log answering an ``eth_getLogs`` request."""
    return _log_request(msg, _LONG_TEMPLATE)


def handle_bsc_subscribe(msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """Confirmation and one log notification for ``eth_subscribe``."""
    return _subscribe(msg, "eth_subscribe", _LONG_TEMPLATE)


def handle_bsc_get_logs(msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """The response to ``eth_getLogs``."""
    return _get_logs(msg, _LONG_TEMPLATE)


def handle_bsc_request(conn: str, msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """Answer a Binance Smart Chain request arriving over ``ws`` or ``rpc``."""
    return _dispatch(conn, msg, "eth_subscribe", "eth_getLogs", _LONG_TEMPLATE)


# --- Klaytn ------------------------------------------------------------------


def handle_klaytn_map_string_interface(filters: Mapping[str, Any]) -> LogResponse:
    """A Klaytn log matching the filter."""
    return _LONG_TEMPLATE.build(filters)


def klaytn_log_request_to_response(msg: JsonrpcMessage) -> LogResponse:
    """The Klaytn log answering a ``klay_getLogs`` request."""
    return _log_request(msg, _LONG_TEMPLATE)


def handle_klaytn_subscribe(msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """Confirmation and one log notification for ``klay_subscribe``."""
    return _subscribe(msg, "klay_subscribe", _LONG_TEMPLATE)


def handle_klaytn_get_logs(msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """The response to ``klay_getLogs``."""
    return _get_logs(msg, _LONG_TEMPLATE)


def handle_klaytn_request(conn: str, msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """Answer a Klaytn request arriving over ``ws`` or ``rpc``."""
    return _dispatch(conn, msg, "klay_subscribe", "klay_getLogs", _LONG_TEMPLATE)