"""Mock log subscription and log query handlers for Conflux nodes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .evm import get_topics_from_map
from .jsonrpc import JsonrpcMessage, MockRequestError

SUBSCRIBE_METHOD = "cfx_subscribe"
GET_LOGS_METHOD = "cfx_getLogs"

_HASH = "0xabc0000000000000000000000000000000000000000000000000000000000000"
_DATA = "0x0000000000000000000000007d0965224facd7156df0c9a1adf3a94118026eeb354f99e2ac319d0d1ff8975c41c72bf347fb69a4874e2641bd19c32e09eb88b80000000000000000000000000000000000000000000000000de0b6b3a76400000000000000000000000000007d0965224facd7156df0c9a1adf3a94118026eeb92cdaaf300000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000005ef1cd6b00000000000000000000000000000000000000000000000000000000000000010000000000000000000000000000000000000000000000000000000000000100000000000000000000000000000000000000000000000000000000000000005663676574783f68747470733a2f2f6d696e2d6170692e63727970746f636f6d706172652e636f6d2f646174612f70726963653f6673796d3d455448267473796d733d5553446470617468635553446574696d65731864"


@dataclass
class CfxLogResponse:
    """One Conflux log entry as returned by the mock node."""

    log_index: str
    epoch_number: str
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
            "epochNumber": self.epoch_number,
            "blockHash": self.block_hash,
            "transactionHash": self.transaction_hash,
            "transactionIndex": self.transaction_index,
            "address": self.address,
            "data": self.data,
            "topics": None if self.topics is None else list(self.topics),
        }


def _as_filter(value: Any) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise MockRequestError("filter must be a JSON object")
    return value


def get_cfx_topics_from_map(req: Mapping[str, Any]) -> list[list[str]]:
    """The topic groups of a Conflux log filter; null groups are skipped."""
    return get_topics_from_map(req)


def _address_text(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MockRequestError("address must be a JSON string")
    return value


def get_cfx_addresses_from_map(req: Mapping[str, Any]) -> list[str]:
    """The contract addresses of a Conflux log filter, as given; at least one."""
    if "address" not in req:
        raise MockRequestError("no addresses included")
    values = req["address"]
    if values is None:
        values = []
    if not isinstance(values, list):
        raise MockRequestError("address must be a JSON array")
    addresses = [_address_text(value) for value in values]
    if not addresses:
        raise MockRequestError("no addresses provided")
    return addresses


def handle_cfx_map_string_interface(filters: Mapping[str, Any]) -> CfxLogResponse:
    """A Conflux log matching the filter."""
    filters = _as_filter(filters)
    topics = get_cfx_topics_from_map(filters)
    first_group = topics[0] if topics else []
    addresses = get_cfx_addresses_from_map(filters)
    return CfxLogResponse(
        log_index="0x0",
        epoch_number="0x2",
        block_hash=_HASH,
        transaction_hash=_HASH,
        transaction_index="0x0",
        address=addresses[0],
        data=_DATA,
        topics=list(first_group) or None,
    )


def cfx_log_request_to_response(msg: JsonrpcMessage) -> CfxLogResponse:
    """The Conflux log answering a ``cfx_getLogs`` request."""
    if not isinstance(msg.params, list):
        raise MockRequestError("params must be a JSON array")
    filters = [_as_filter(item) for item in msg.params]
    if len(filters) != 1:
        raise MockRequestError(f"expected exactly 1 filter in request, got {len(filters)}")
    return handle_cfx_map_string_interface(filters[0])


def handle_cfx_subscribe(msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """Confirmation and one log notification for ``cfx_subscribe``."""
    contents = msg.params
    if not isinstance(contents, list):
        raise MockRequestError("params must be a JSON array")
    if len(contents) != 2:
        raise MockRequestError(f"possibly incorrect length of params array: {len(contents)}")
    log = handle_cfx_map_string_interface(_as_filter(contents[1]))
    return [
        # The confirmation is ignored by the initiator, so it stays empty.
        JsonrpcMessage(version="2.0", id=msg.id, method=SUBSCRIBE_METHOD),
        JsonrpcMessage(
            version="2.0",
            id=msg.id,
            method=SUBSCRIBE_METHOD,
            params={"subscription": "test", "result": log.to_dict()},
        ),
    ]


def handle_cfx_get_logs(msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """The response to ``cfx_getLogs``."""
    log = cfx_log_request_to_response(msg)
    return [JsonrpcMessage(version="2.0", id=msg.id, result=[log.to_dict()])]


def handle_cfx_request(conn: str, msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """Answer a Conflux request arriving over ``ws`` or ``rpc``."""
    if conn == "ws":
        if msg.method == SUBSCRIBE_METHOD:
            return handle_cfx_subscribe(msg)
    elif msg.method == GET_LOGS_METHOD:
        return handle_cfx_get_logs(msg)
    raise MockRequestError(f"unexpected method: {msg.method}")