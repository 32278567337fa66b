"""Mock log subscription and log query handlers for Harmony nodes.

Harmony logs use the same shape and sample values as the Binance Smart Chain
mock; only the method names differ.
"""

from __future__ import annotations

from typing import Any, Mapping

from .evm import (
    LogResponse,
    bsc_log_request_to_response,
    get_addresses_from_map,
    get_topics_from_map,
    handle_bsc_map_string_interface,
)
from .jsonrpc import JsonrpcMessage, MockRequestError

SUBSCRIBE_METHOD = "hmy_subscribe"
GET_LOGS_METHOD = "hmy_getLogs"


def get_hmy_topics_from_map(req: Mapping[str, Any]) -> list[list[str]]:
    """The topic groups of a Harmony log filter; null groups are skipped."""
    return get_topics_from_map(req)


def get_hmy_addresses_from_map(req: Mapping[str, Any]) -> list[str]:
    """The contract addresses of a Harmony log filter; at least one is required."""
    return get_addresses_from_map(req)


def handle_hmy_map_string_interface(filters: Mapping[str, Any]) -> LogResponse:
    """A Harmony log matching the filter."""
    return handle_bsc_map_string_interface(filters)


def hmy_log_request_to_response(msg: JsonrpcMessage) -> LogResponse:
    """The Harmony log answering an ``hmy_getLogs`` request."""
    return bsc_log_request_to_response(msg)


def handle_hmy_subscribe(msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """Confirmation and one log notification for ``hmy_subscribe``."""
    contents = msg.params
    if not isinstance(contents, list):
        raise MockRequestError("params must be a JSON array")
    if len(contents) != 2:
        raise MockRequestError(f"possibly incorrect length of params array: {len(contents)}")
    log = handle_hmy_map_string_interface(contents[1])
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


def handle_hmy_get_logs(msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """The response to ``hmy_getLogs``."""
    log = hmy_log_request_to_response(msg)
    return [JsonrpcMessage(version="2.0", id=msg.id, result=[log.to_dict()])]


def handle_hmy_request(conn: str, msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """Answer a Harmony request arriving over ``ws`` or ``rpc``."""
    if conn == "ws":
        if msg.method == SUBSCRIBE_METHOD:
            return handle_hmy_subscribe(msg)
    elif msg.method == GET_LOGS_METHOD:
        return handle_hmy_get_logs(msg)
    raise MockRequestError(f"unexpected method: {msg.method}")