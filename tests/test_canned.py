import json

import pytest

from extinitiator.mock.canned import (
    get_canned_response,
    get_canned_responses,
    load_static,
    set_jsonrpc_id,
    static_directory,
)
from extinitiator.mock.jsonrpc import JsonrpcMessage

ETH_RESPONSES = {"eth_blockNumber": [{"jsonrpc": "2.0", "result": "0x0"}]}


def write_static(directory, platform, content):
    directory.mkdir(parents=True, exist_ok=True)
    text = content if isinstance(content, str) else json.dumps(content)
    path = directory / f"{platform}.json"
    path.write_text(text)
    return path


def test_canned_response_carries_request_id(tmp_path):
    write_static(tmp_path, "eth", ETH_RESPONSES)
    msg = JsonrpcMessage(id=123, method="eth_blockNumber")
    got = get_canned_response("eth", msg, tmp_path)
    assert got == [JsonrpcMessage(version="2.0", id=123, result="0x0")]


def test_every_canned_message_gets_the_id(tmp_path):
    write_static(
        tmp_path,
        "substrate",
        {"state_subscribeStorage": [{"result": "1"}, {"params": {"subscription": "1"}}]},
    )
    msg = JsonrpcMessage(id="xyz", method="state_subscribeStorage")
    got = get_canned_response("substrate", msg, tmp_path)
    assert len(got) == 2
    assert all(item.id == "xyz" for item in got)


def test_unknown_method_gives_none(tmp_path):
    write_static(tmp_path, "eth", ETH_RESPONSES)
    msg = JsonrpcMessage(id=1, method="eth_getLogs")
    assert get_canned_response("eth", msg, tmp_path) is None


def test_missing_file_gives_none(tmp_path):
    msg = JsonrpcMessage(id=1, method="eth_blockNumber")
    assert get_canned_responses("nowhere", tmp_path) is None
    assert get_canned_response("nowhere", msg, tmp_path) is None


def test_invalid_json_gives_none(tmp_path):
    write_static(tmp_path, "eth", "{not json")
    assert get_canned_responses("eth", tmp_path) is None


def test_wrong_shape_gives_none(tmp_path):
    write_static(tmp_path, "eth", [1, 2, 3])
    assert get_canned_responses("eth", tmp_path) is None


def test_canned_responses_keyed_by_method(tmp_path):
    content = {"a": [{"result": 1}], "b": []}
    write_static(tmp_path, "hmy", content)
    responses = get_canned_responses("hmy", tmp_path)
    assert set(responses) == set(content)
    assert responses["a"] == [JsonrpcMessage(result=1)]
    assert responses["b"] == []


def test_load_static_returns_file_bytes(tmp_path):
    path = write_static(tmp_path, "ont", ETH_RESPONSES)
    assert load_static("ont", tmp_path) == path.read_bytes()


def test_load_static_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_static("missing", tmp_path)


def test_set_jsonrpc_id_leaves_input_untouched():
    original = [JsonrpcMessage(id=1, method="a"), JsonrpcMessage(id=2, method="b")]
    updated = set_jsonrpc_id(9, original)
    assert [m.id for m in updated] == [9, 9]
    assert [m.method for m in updated] == ["a", "b"]
    assert [m.id for m in original] == [1, 2]


def test_static_directory_appends_blockchain(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert static_directory() == tmp_path / "blockchain" / "static"


def test_static_directory_inside_blockchain(tmp_path, monkeypatch):
    inner = tmp_path / "blockchain"
    inner.mkdir()
    monkeypatch.chdir(inner)
    assert static_directory() == inner / "static"


def test_default_directory_is_used(tmp_path, monkeypatch):
    write_static(tmp_path / "blockchain" / "static", "eth", ETH_RESPONSES)
    monkeypatch.chdir(tmp_path)
    got = get_canned_response("eth", JsonrpcMessage(id=5, method="eth_blockNumber"))
    assert got == [JsonrpcMessage(version="2.0", id=5, result="0x0")]