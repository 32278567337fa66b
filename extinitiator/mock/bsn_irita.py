"""Mock BSN-IRITA (Tendermint style) JSON-RPC handling."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from .canned import PathArg, get_canned_response
from .jsonrpc import JsonrpcMessage, MockRequestError

_PLATFORM = "birita"
SERVICE_REQUEST_PATH = "/custom/service/request"
_SERVICE_REQUEST_METHOD = "abci_query_service_request"


def handle_bsn_irita_request(msg: JsonrpcMessage, directory: PathArg = None) -> list[JsonrpcMessage]:
    """Answer a BSN-IRITA request from canned responses or the ABCI query mock."""
    if msg.method in ("status", "block_results"):
        rsp = get_canned_response(_PLATFORM, msg, directory)
        if rsp is None:
            raise MockRequestError(
                f"failed to handle BSN-IRITA request for method {msg.method}"
            )
        return rsp
    if msg.method == "abci_query":
        return handle_query_abci(msg, directory)
    raise MockRequestError(f"unexpected method: {msg.method}")


def _query_path(params: Any) -> str:
    """The path of an ABCI query, after checking the query's shape."""
    if not isinstance(params, dict):
        raise MockRequestError("abci_query params must be a JSON object")
    path = params.get("path")
    if path is None:
        path = ""
    if not isinstance(path, str):
        raise MockRequestError("abci_query path must be a JSON string")
    height = params.get("height")
    if height is not None and not (
        isinstance(height, str) and height.lstrip("-").isdigit()
    ):
        raise MockRequestError("abci_query height must be an integer encoded as a string")
    prove = params.get("prove")
    if prove is not None and not isinstance(prove, bool):
        raise MockRequestError("abci_query prove must be a JSON boolean")
    return path


def handle_query_abci(msg: JsonrpcMessage, directory: PathArg = None) -> list[JsonrpcMessage]:
    """Answer an ``abci_query``; service request queries get a canned response."""
    if _query_path(msg.params) == SERVICE_REQUEST_PATH:
        return handle_query_service_request(msg, directory)
    return [JsonrpcMessage(id=msg.id)]


def handle_query_service_request(
    msg: JsonrpcMessage, directory: PathArg = None
) -> list[JsonrpcMessage]:
    """The canned response to a service request query."""
    query = replace(msg, method=_SERVICE_REQUEST_METHOD)
    rsp = get_canned_response(_PLATFORM, query, directory)
    if rsp is None:
        raise MockRequestError(
            "failed to handle BSN-IRITA request for service request query"
        )
    return rsp