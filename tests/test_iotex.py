import pytest

from extinitiator.mock.iotex import (
    GetLogsRequest,
    LogsFilter,
    MockIoTeXServer,
    TopicFilter,
    hex_to_bytes,
)
from extinitiator.mock.jsonrpc import MockRequestError


def test_get_chain_meta():
    assert MockIoTeXServer().get_chain_meta().height == 1000


def test_get_logs():
    contract = "io12345678"
    height = 1000
    req = GetLogsRequest(filter=LogsFilter(address=[contract]), from_block=height, count=1)
    logs = MockIoTeXServer().get_logs(req)
    assert len(logs) > 0
    log = logs[0]
    assert log.contract_address == contract
    assert log.blk_height == height
    assert len(log.data) > 0
    assert log.index == 0


def test_get_logs_uses_first_topic_group():
    req = GetLogsRequest(
        filter=LogsFilter(
            address=["io1", "io2"],
            topics=[TopicFilter(topic=[b"\x01", b"\x02"]), TopicFilter(topic=[b"\x03"])],
        )
    )
    log = MockIoTeXServer().get_logs(req)[0]
    assert log.contract_address == "io1"
    assert log.topics == [b"\x01", b"\x02"]


def test_get_logs_without_filter():
    log = MockIoTeXServer().get_logs(GetLogsRequest())[0]
    assert log.contract_address == ""
    assert log.topics == []


def test_hex_to_bytes():
    assert hex_to_bytes("0x0a0b") == b"\x0a\x0b"
    assert hex_to_bytes("ff") == b"\xff"


@pytest.mark.parametrize("text", ["0x123", "0xzz", "0x 1"])
def test_hex_to_bytes_rejects_bad_input(text):
    with pytest.raises(MockRequestError):
        hex_to_bytes(text)