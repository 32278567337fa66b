"""JSON-RPC 2.0 message type shared by the mock blockchain handlers."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Union


class MockRequestError(Exception):
    """Raised when a mock blockchain request cannot be answered."""


def _optional_string(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MockRequestError(f"JSON-RPC field {key!r} must be a string")
    return value


@dataclass
class JsonrpcMessage:
    """A JSON-RPC request, response or notification.

    ``id``, ``params``, ``error`` and ``result`` hold decoded JSON values;
    ``None`` means the member is absent.
    """

    version: str = ""
    id: Any = None
    method: str = ""
    params: Any = None
    error: Any = None
    result: Any = None

    def to_dict(self) -> dict[str, Any]:
        """The message as a JSON object, leaving out empty members."""
        data: dict[str, Any] = {}
        if self.version:
            data["jsonrpc"] = self.version
        if self.id is not None:
            data["id"] = self.id
        if self.method:
            data["method"] = self.method
        if self.params is not None:
            data["params"] = self.params
        if self.error is not None:
            data["error"] = self.error
        if self.result is not None:
            data["result"] = self.result
        return data

    def to_json(self) -> str:
        """The message encoded as compact JSON text."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Any) -> "JsonrpcMessage":
        """Build a message from a decoded JSON object."""
        if not isinstance(data, Mapping):
            raise MockRequestError("JSON-RPC message must be a JSON object")
        return cls(
            version=_optional_string(data, "jsonrpc"),
            id=data.get("id"),
            method=_optional_string(data, "method"),
            params=data.get("params"),
            error=data.get("error"),
            result=data.get("result"),
        )

    @classmethod
    def from_json(cls, text: Union[str, bytes, bytearray]) -> "JsonrpcMessage":
        """Parse a message from JSON text."""
        try:
            data = json.loads(text)
        except ValueError as err:
            raise MockRequestError(f"invalid JSON-RPC message: {err}") from err
        return cls.from_dict(data)