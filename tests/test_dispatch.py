import json

import pytest

from extinitiator.mock.cfx import handle_cfx_get_logs
from extinitiator.mock.dispatch import handle_request
from extinitiator.mock.evm import handle_bsc_get_logs, handle_eth_get_logs, handle_klaytn_get_logs
from extinitiator.mock.harmony import handle_hmy_get_logs
from extinitiator.mock.jsonrpc import JsonrpcMessage, MockRequestError
from extinitiator.mock.keeper import handle_eth_call
from extinitiator.mock.ont import handle_get_smart_code_event

ADDRESS = "0x0000000000000000000000000000000000000000"
FILTER = [{"topics": [["0x123"]], "address": [ADDRESS]}]


def test_canned_response_takes_precedence(tmp_path):
    (tmp_path / "eth.json").write_text(
        json.dumps({"eth_blockNumber": [{"jsonrpc": "2.0", "result": "0x0"}]})
    )
    msg = JsonrpcMessage(id=123, method="eth_blockNumber")
    got = handle_request("rpc", "eth", msg, tmp_path)
    assert got == [JsonrpcMessage(version="2.0", id=123, result="0x0")]


@pytest.mark.parametrize(
    "platform, method, handler",
    [
        ("eth", "eth_getLogs", handle_eth_get_logs),
        ("binance-smart-chain", "eth_getLogs", handle_bsc_get_logs),
        ("klaytn", "klay_getLogs", handle_klaytn_get_logs),
        ("hmy", "hmy_getLogs", handle_hmy_get_logs),
        ("cfx", "cfx_getLogs", handle_cfx_get_logs),
    ],
)
def test_get_logs_routed(tmp_path, platform, method, handler):
    msg = JsonrpcMessage(version="2.0", id=1, method=method, params=FILTER)
    assert handle_request("rpc", platform, msg, tmp_path) == handler(msg)


def test_keeper_routed(tmp_path):
    msg = JsonrpcMessage(id=1, method="eth_call", params=[{"data": "0xc41b813a"}, "latest"])
    assert handle_request("rpc", "keeper", msg, tmp_path) == handle_eth_call(msg)


def test_ont_routed(tmp_path):
    msg = JsonrpcMessage(id=1, method="getsmartcodeevent")
    assert handle_request("rpc", "ont", msg, tmp_path) == handle_get_smart_code_event(msg)


def test_ws_subscribe_routed(tmp_path):
    msg = JsonrpcMessage(
        id=1, method="eth_subscribe", params=["logs", {"topics": [None], "address": [ADDRESS]}]
    )
    got = handle_request("ws", "eth", msg, tmp_path)
    assert len(got) == 2
    assert got[1].params["subscription"] == "test"


def test_unexpected_platform(tmp_path):
    with pytest.raises(MockRequestError, match="unexpected platform: foo"):
        handle_request("rpc", "foo", JsonrpcMessage(method="x"), tmp_path)


def test_near_without_canned_file(tmp_path):
    msg = JsonrpcMessage(id=1, method="query", params={"method_name": "get_nonces"})
    with pytest.raises(MockRequestError, match="failed to load canned responses for: near"):
        handle_request("rpc", "near", msg, tmp_path)


def test_near_wrong_connection(tmp_path):
    with pytest.raises(MockRequestError, match="unexpected connection: ws"):
        handle_request("ws", "near", JsonrpcMessage(id=1, method="query"), tmp_path)