"""Routing of mock JSON-RPC requests to the per-platform handlers."""

from __future__ import annotations

from .canned import PathArg, get_canned_response
from .cfx import handle_cfx_request
from .evm import handle_bsc_request, handle_eth_request, handle_klaytn_request
from .harmony import handle_hmy_request
from .jsonrpc import JsonrpcMessage, MockRequestError
from .keeper import handle_keeper_request
from .near import handle_near_request
from .ont import handle_ont_request


def handle_request(
    conn: str, platform: str, msg: JsonrpcMessage, directory: PathArg = None
) -> list[JsonrpcMessage]:
    """Answer ``msg`` for ``platform``; canned responses take precedence."""
    canned = get_canned_response(platform, msg, directory)
    if canned is not None:
        return canned

    if platform == "eth":
        return handle_eth_request(conn, msg)
    if platform == "hmy":
        return handle_hmy_request(conn, msg)
    if platform == "ont":
        return handle_ont_request(msg)
    if platform == "binance-smart-chain":
        return handle_bsc_request(conn, msg)
    if platform == "near":
        return handle_near_request(conn, msg, directory)
    if platform == "cfx":
        return handle_cfx_request(conn, msg)
    if platform == "keeper":
        return handle_keeper_request(conn, msg)
    if platform == "klaytn":
        return handle_klaytn_request(conn, msg)
    raise MockRequestError(f"unexpected platform: {platform}")