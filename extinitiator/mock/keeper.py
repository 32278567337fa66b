"""Mock ``eth_call`` handling for the Keeper registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .jsonrpc import JsonrpcMessage, MockRequestError

# Selector of checkUpkeep(uint256,address).
CHECK_UPKEEP_SELECTOR = "0xc41b813a"

_CHECK_UPKEEP_RESULT = "0x00000000000000000000000000000000000000000000000000000000000000a0000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000023078000000000000000000000000000000000000000000000000000000000000"

_FIELDS = {
    "from": "from_address",
    "to": "to",
    "gas": "gas",
    "gasPrice": "gas_price",
    "value": "value",
    "data": "data",
}


@dataclass
class EthCallMessage:
    """The call object of an ``eth_call`` request."""

    from_address: str = ""
    to: str = ""
    gas: str = ""
    gas_price: str = ""
    value: str = ""
    data: str = ""


def _eth_call_from_json(value: Any) -> EthCallMessage:
    if value is None:
        return EthCallMessage()
    if not isinstance(value, dict):
        raise MockRequestError("eth_call object must be a JSON object")
    fields = {}
    for key, attr in _FIELDS.items():
        item = value.get(key)
        if item is None:
            continue
        if not isinstance(item, str):
            raise MockRequestError(f"eth_call field {key!r} must be a string")
        fields[attr] = item
    return EthCallMessage(**fields)


def msg_to_eth_call(msg: JsonrpcMessage) -> EthCallMessage:
    """The call object of an ``eth_call`` request with exactly two params."""
    if not isinstance(msg.params, list):
        raise MockRequestError("params must be a JSON array")
    if len(msg.params) != 2:
        raise MockRequestError("unexpected amount of params")
    return _eth_call_from_json(msg.params[0])


def handle_eth_call(msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """Answer a ``checkUpkeep`` call with a fixed encoded result."""
    call = msg_to_eth_call(msg)
    if not call.data.startswith(CHECK_UPKEEP_SELECTOR):
        raise MockRequestError("unknown function selector")
    return [JsonrpcMessage(version="2.0", id=msg.id, result=_CHECK_UPKEEP_RESULT)]


def handle_keeper_request(conn: str, msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """Answer a Keeper request; the connection kind does not matter."""
    if msg.method == "eth_call":
        return handle_eth_call(msg)
    raise MockRequestError(f"unexpected method: {msg.method}")