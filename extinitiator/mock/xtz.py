"""Canned Tezos node responses."""

from __future__ import annotations

import json
from typing import Any

from .canned import PathArg, load_static
from .jsonrpc import MockRequestError


def get_xtz_response(method: str, directory: PathArg = None) -> Any:
    """The static Tezos response stored under ``method``."""
    try:
        raw = load_static("xtz", directory)
    except OSError as err:
        raise MockRequestError(str(err)) from err
    try:
        responses = json.loads(raw)
    except ValueError as err:
        raise MockRequestError(f"invalid Tezos responses: {err}") from err
    if not isinstance(responses, dict):
        raise MockRequestError("Tezos responses must be a JSON object")
    if method not in responses:
        raise MockRequestError("method not found")
    return responses[method]