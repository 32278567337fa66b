import json

import pytest
from aiohttp import test_utils

from extinitiator.mock.evm import handle_eth_get_logs
from extinitiator.mock.jsonrpc import JsonrpcMessage
from extinitiator.mock.web import create_app, read_body, read_sanitized_json

ADDRESS = "0x0000000000000000000000000000000000000000"
MONITOR_HASH = "8BADF00D8BADF00D8BADF00D8BADF00D8BADF00D8BADF00D8BADF00D"


def test_read_sanitized_json_sorts_keys():
    assert read_sanitized_json(b'{"b": 1, "a": "x"}') == '{"a":"x","b":1}'


def test_read_sanitized_json_escapes_html():
    assert read_sanitized_json(b'{"a": "<"}') == '{"a":"\\u003c"}'


def test_read_sanitized_json_round_trip():
    text = read_sanitized_json(b'{"k": [1, 2, {"z": null}]}')
    assert json.loads(text) == {"k": [1, 2, {"z": None}]}


def test_read_sanitized_json_rejects_invalid():
    with pytest.raises(ValueError):
        read_sanitized_json(b"{nope")


def test_read_body():
    assert read_body(b"") == ""
    assert read_body(b"[1]") == "*FAILED TO READ BODY*"
    assert read_body(b'{"a":1}') == '{"a":1}'


def _client(directory):
    return test_utils.TestClient(test_utils.TestServer(create_app(directory)))


@pytest.mark.asyncio
async def test_rpc_get_logs(tmp_path):
    params = [{"topics": [["0x123"]], "address": [ADDRESS]}]
    payload = {"jsonrpc": "2.0", "id": 1, "method": "eth_getLogs", "params": params}
    expected = handle_eth_get_logs(JsonrpcMessage.from_dict(payload))[0].to_dict()
    async with _client(tmp_path) as client:
        resp = await client.post("/rpc/eth", json=payload)
        assert resp.status == 200
        assert await resp.json() == expected


@pytest.mark.asyncio
async def test_rpc_unknown_platform(tmp_path):
    async with _client(tmp_path) as client:
        resp = await client.post("/rpc/foo", json={"jsonrpc": "2.0", "id": 1, "method": "x"})
        assert resp.status == 400
        assert await resp.json() is None


@pytest.mark.asyncio
async def test_rpc_bad_body(tmp_path):
    async with _client(tmp_path) as client:
        resp = await client.post("/rpc/eth", data=b"not json")
        assert resp.status == 400
        assert await resp.json() is None


@pytest.mark.asyncio
async def test_xtz_routes(tmp_path):
    (tmp_path / "xtz.json").write_text(
        json.dumps({"monitor": {"hash": MONITOR_HASH}, "operations": [[], [], [], [{}]]})
    )
    async with _client(tmp_path) as client:
        resp = await client.get("/http/xtz/monitor/heads/main")
        assert resp.status == 200
        assert (await resp.json())["hash"] == MONITOR_HASH
        resp = await client.get("/http/xtz/chains/main/blocks/head/operations")
        assert resp.status == 200
        assert len(await resp.json()) == 4


@pytest.mark.asyncio
async def test_xtz_missing_file(tmp_path):
    async with _client(tmp_path) as client:
        resp = await client.get("/http/xtz/monitor/heads/main")
        assert resp.status == 400
        assert await resp.json() is None


@pytest.mark.asyncio
async def test_bsn_irita_unknown_method(tmp_path):
    async with _client(tmp_path) as client:
        resp = await client.post("/", json={"jsonrpc": "2.0", "id": 7, "method": "foo"})
        assert resp.status == 400
        body = await resp.json()
        assert body["id"] == 7
        assert body["error"]["message"] == "unexpected method: foo"


@pytest.mark.asyncio
async def test_bsn_irita_status(tmp_path):
    result = {"sync_info": {"latest_block_height": "7753"}}
    (tmp_path / "birita.json").write_text(
        json.dumps({"status": [{"jsonrpc": "2.0", "result": result}]})
    )
    async with _client(tmp_path) as client:
        resp = await client.post("/", json={"jsonrpc": "2.0", "id": 3, "method": "status"})
        assert resp.status == 200
        body = await resp.json()
        assert body["result"] == result
        assert body["id"] == 3


@pytest.mark.asyncio
async def test_ws_subscribe(tmp_path):
    request = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "eth_subscribe",
        "params": ["logs", {"topics": [None], "address": [ADDRESS]}],
    }
    async with _client(tmp_path) as client:
        ws = await client.ws_connect("/ws/eth")
        await ws.send_str(json.dumps(request))
        first = await ws.receive_json()
        second = await ws.receive_json()
        await ws.close()
    assert first["method"] == "eth_subscribe"
    assert "params" not in first
    assert second["params"]["subscription"] == "test"
    assert second["params"]["result"]["address"] == ADDRESS
    assert second["id"] == 1