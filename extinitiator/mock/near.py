"""Mock NEAR JSON-RPC handling backed by canned responses."""

from __future__ import annotations

from .canned import PathArg, get_canned_responses, set_jsonrpc_id
from .jsonrpc import JsonrpcMessage, MockRequestError

_PLATFORM = "near"
_METHOD_NOT_FOUND = "error_MethodNotFound"


def build_response_id(msg: JsonrpcMessage) -> str:
    """The key under which the canned response for ``msg`` is stored."""
    if not msg.method:
        raise MockRequestError(
            f"failed to build response ID (Method not available): {msg}"
        )
    if not isinstance(msg.params, dict):
        raise MockRequestError("params must be a JSON object")
    method_name = msg.params.get("method_name")
    if method_name is None:
        method_name = ""
    if not isinstance(method_name, str):
        raise MockRequestError("method_name must be a JSON string")
    if not method_name:
        return msg.method
    return f"{msg.method}_{method_name}"


def handle_near_request(
    conn: str, msg: JsonrpcMessage, directory: PathArg = None
) -> list[JsonrpcMessage]:
    """Answer a NEAR ``query`` request over ``rpc`` from the canned responses.

    Unknown contract methods get the canned ``MethodNotFound`` error response.
    """
    if conn != "rpc":
        raise MockRequestError(f"unexpected connection: {conn}")
    if msg.method != "query":
        raise MockRequestError(f"unexpected method: {msg.method}")

    responses = get_canned_responses(_PLATFORM, directory)
    if responses is None:
        raise MockRequestError(f"failed to load canned responses for: {_PLATFORM}")

    found = responses.get(build_response_id(msg))
    if found is None:
        return list(responses.get(_METHOD_NOT_FOUND, []))
    return set_jsonrpc_id(msg.id, found)