"""Mock Ontology JSON-RPC handling."""

from __future__ import annotations

from .jsonrpc import JsonrpcMessage, MockRequestError

_CONTRACT_ADDRESS = "0x2aD9B7b9386c2f45223dDFc4A4d81C2957bAE19A"


def handle_get_smart_code_event(msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """One execution notice carrying a sample oracle request event."""
    states = [
        b"oracleRequest".hex(),
        "mock", "01", "02", "03", "04", "05", "06", "07", "", "08",
    ]
    notice = {
        "TxHash": "",
        "State": 0,
        "GasConsumed": 0,
        "Notify": [{"ContractAddress": _CONTRACT_ADDRESS, "States": states}],
    }
    return [JsonrpcMessage(id=msg.id, result=[notice])]


def handle_ont_request(msg: JsonrpcMessage) -> list[JsonrpcMessage]:
    """Answer an Ontology request."""
    if msg.method == "getsmartcodeevent":
        return handle_get_smart_code_event(msg)
    raise MockRequestError(f"unexpected method: {msg.method}")