"""Static, file based responses of the mock blockchain clients."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from os import PathLike
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from .jsonrpc import JsonrpcMessage, MockRequestError

log = logging.getLogger(__name__)

CannedResponses = dict[str, list[JsonrpcMessage]]
PathArg = Optional[Union[str, "PathLike[str]"]]


def static_directory() -> Path:
    """Directory holding the ``<platform>.json`` response files."""
    cwd = Path.cwd()
    if cwd.name != "blockchain":
        cwd = cwd / "blockchain"
    return cwd / "static"


def load_static(platform: str, directory: PathArg = None) -> bytes:
    """Raw contents of the response file for ``platform``."""
    base = Path(directory) if directory is not None else static_directory()
    return (base / f"{platform}.json").read_bytes()


def _decode(raw: bytes) -> CannedResponses:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise MockRequestError("canned responses must be a JSON object")
    responses: CannedResponses = {}
    for method, items in data.items():
        if items is None:
            items = []
        if not isinstance(items, list):
            raise MockRequestError(f"canned responses for {method} must be an array")
        responses[method] = [JsonrpcMessage.from_dict(item) for item in items]
    return responses


def get_canned_responses(platform: str, directory: PathArg = None) -> Optional[CannedResponses]:
    """All static responses of a platform, keyed by method; JSON-RPC ids are not set.

    Returns ``None`` when the platform has no usable response file.
    """
    try:
        raw = load_static(platform, directory)
    except OSError as err:
        log.debug("%s", err)
        return None
    try:
        return _decode(raw)
    except (ValueError, MockRequestError) as err:
        log.error("%s", err)
        return None


def get_canned_response(
    platform: str, msg: JsonrpcMessage, directory: PathArg = None
) -> Optional[list[JsonrpcMessage]]:
    """The static responses for the message's method, carrying the message's id."""
    responses = get_canned_responses(platform, directory)
    if responses is None:
        return None
    items = responses.get(msg.method)
    if items is None:
        return None
    return set_jsonrpc_id(msg.id, items)


def set_jsonrpc_id(msg_id: Any, msgs: Iterable[JsonrpcMessage]) -> list[JsonrpcMessage]:
    """Copies of the messages with their id set to ``msg_id``."""
    return [replace(msg, id=msg_id) for msg in msgs]