"""Mock IoTeX API service answering chain meta and log queries."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from .evm import _LONG_DATA
from .jsonrpc import MockRequestError

_HEX = re.compile(r"[0-9a-fA-F]*")
_CHAIN_HEIGHT = 1000


def hex_to_bytes(text: str) -> bytes:
    """Decode hex text with an optional ``0x`` prefix."""
    digits = text[2:] if text.startswith("0x") else text
    if not _HEX.fullmatch(digits):
        raise MockRequestError("invalid hex string")
    if len(digits) % 2:
        raise MockRequestError("odd length hex string")
    return bytes.fromhex(digits)


@dataclass
class ChainMeta:
    height: int = 0


@dataclass
class TopicFilter:
    topic: list[bytes] = field(default_factory=list)


@dataclass
class LogsFilter:
    address: list[str] = field(default_factory=list)
    topics: list[TopicFilter] = field(default_factory=list)


@dataclass
class GetLogsRequest:
    """A log query over a block range."""

    filter: Optional[LogsFilter] = None
    from_block: int = 0
    count: int = 0


@dataclass
class IoTeXLog:
    contract_address: str = ""
    topics: list[bytes] = field(default_factory=list)
    data: bytes = b""
    blk_height: int = 0
    index: int = 0


class MockIoTeXServer:
    """Fixed answers for the IoTeX API calls the initiator makes."""

    def get_chain_meta(self) -> ChainMeta:
        """The chain meta, always at height 1000."""
        return ChainMeta(height=_CHAIN_HEIGHT)

    def get_logs(self, request: GetLogsRequest) -> list[IoTeXLog]:
        """One sample log for the first filtered contract and topic group."""
        log_filter = request.filter or LogsFilter()
        contract = log_filter.address[0] if log_filter.address else ""
        topic = list(log_filter.topics[0].topic) if log_filter.topics else []
        return [
            IoTeXLog(
                contract_address=contract,
                topics=topic,
                data=hex_to_bytes(_LONG_DATA),
                blk_height=request.from_block,
                index=0,
            )
        ]