import pytest

from extinitiator.mock.evm import LogResponse
from extinitiator.mock.harmony import (
    get_hmy_addresses_from_map,
    get_hmy_topics_from_map,
    handle_hmy_get_logs,
    handle_hmy_map_string_interface,
    handle_hmy_request,
    handle_hmy_subscribe,
    hmy_log_request_to_response,
)
from extinitiator.mock.jsonrpc import JsonrpcMessage, MockRequestError

ADDRESS = "0x0000000000000000000000000000000000000000"
ADDRESS2 = "0x0000000000000000000000000000000000000001"
HASH = "0x0000000000000000000000000000000000000000000000000000000000000123"
LONG_HASH = "0xabc0000000000000000000000000000000000000000000000000000000000000"
LONG_DATA = "0x0000000000000000000000007d0965224facd7156df0c9a1adf3a94118026eeb354f99e2ac319d0d1ff8975c41c72bf347fb69a4874e2641bd19c32e09eb88b80000000000000000000000000000000000000000000000000de0b6b3a76400000000000000000000000000007d0965224facd7156df0c9a1adf3a94118026eeb92cdaaf300000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000005ef1cd6b00000000000000000000000000000000000000000000000000000000000000010000000000000000000000000000000000000000000000000000000000000100000000000000000000000000000000000000000000000000000000000000005663676574783f68747470733a2f2f6d696e2d6170692e63727970746f636f6d706172652e636f6d2f646174612f70726963653f6673796d3d455448267473796d733d5553446470617468635553446574696d65731864"


def hmy_log(address, topics):
    return LogResponse(
        log_index="0x0",
        block_number="0x2",
        block_hash=LONG_HASH,
        transaction_hash=LONG_HASH,
        transaction_index="0x0",
        address=address,
        data=LONG_DATA,
        topics=topics,
    )


@pytest.mark.parametrize(
    "params, expected",
    [
        ([{"topics": [[HASH]], "address": [ADDRESS]}], hmy_log(ADDRESS, [HASH])),
        ([{"topics": [None], "address": [ADDRESS]}], hmy_log(ADDRESS, None)),
    ],
)
def test_log_request_to_response(params, expected):
    assert hmy_log_request_to_response(JsonrpcMessage(params=params)) == expected


@pytest.mark.parametrize(
    "params",
    [[{"topics": [None], "address": "0x0"}], []],
)
def test_log_request_to_response_errors(params):
    with pytest.raises(MockRequestError):
        hmy_log_request_to_response(JsonrpcMessage(params=params))


def test_empty_request_message():
    with pytest.raises(MockRequestError, match="expected exactly 1 filter in request, got 0"):
        hmy_log_request_to_response(JsonrpcMessage(params=[]))


@pytest.mark.parametrize(
    "req, expected",
    [
        ({"address": [ADDRESS]}, [ADDRESS]),
        ({"address": [ADDRESS, ADDRESS, ADDRESS]}, [ADDRESS, ADDRESS, ADDRESS]),
    ],
)
def test_get_addresses(req, expected):
    assert get_hmy_addresses_from_map(req) == expected


@pytest.mark.parametrize(
    "req",
    [{"address": []}, {"something_else": [ADDRESS]}],
)
def test_get_addresses_errors(req):
    with pytest.raises(MockRequestError):
        get_hmy_addresses_from_map(req)


@pytest.mark.parametrize(
    "req, expected",
    [
        ({"topics": [[HASH]]}, [[HASH]]),
        ({"topics": [[HASH, HASH], [HASH]]}, [[HASH, HASH], [HASH]]),
        ({"topics": [None, [HASH]]}, [[HASH]]),
        ({"topics": [None]}, []),
    ],
)
def test_get_topics(req, expected):
    assert get_hmy_topics_from_map(req) == expected


def test_get_topics_missing_key():
    with pytest.raises(MockRequestError, match="no topics included"):
        get_hmy_topics_from_map({"something_else": [None]})


def test_get_logs_returns_id():
    msg = JsonrpcMessage(id=123, params=[{"topics": [[HASH]], "address": [ADDRESS]}])
    assert handle_hmy_get_logs(msg) == [
        JsonrpcMessage(version="2.0", id=123, result=[hmy_log(ADDRESS, [HASH]).to_dict()])
    ]


def test_get_logs_missing_address():
    msg = JsonrpcMessage(id=123, params=[{"topics": [[HASH]], "address": []}])
    with pytest.raises(MockRequestError):
        handle_hmy_get_logs(msg)


def expected_subscription():
    return [
        JsonrpcMessage(version="2.0", method="hmy_subscribe"),
        JsonrpcMessage(
            version="2.0",
            method="hmy_subscribe",
            params={"subscription": "test", "result": hmy_log(ADDRESS, None).to_dict()},
        ),
    ]


def test_request_ws_subscribe():
    msg = JsonrpcMessage(
        method="hmy_subscribe", params=["logs", {"topics": [None], "address": [ADDRESS]}]
    )
    assert handle_hmy_request("ws", msg) == expected_subscription()


def test_request_subscribe_on_rpc_fails():
    msg = JsonrpcMessage(
        method="hmy_subscribe", params=["logs", {"topics": [None], "address": [ADDRESS]}]
    )
    with pytest.raises(MockRequestError, match="unexpected method: hmy_subscribe"):
        handle_hmy_request("rpc", msg)


def test_request_gets_logs():
    msg = JsonrpcMessage(
        method="hmy_getLogs", params=[{"topics": [[HASH]], "address": [ADDRESS]}]
    )
    assert handle_hmy_request("rpc", msg) == [
        JsonrpcMessage(version="2.0", result=[hmy_log(ADDRESS, [HASH]).to_dict()])
    ]


def test_subscribe():
    msg = JsonrpcMessage(
        method="hmy_subscribe", params=["logs", {"topics": [None], "address": [ADDRESS]}]
    )
    assert handle_hmy_subscribe(msg) == expected_subscription()


@pytest.mark.parametrize(
    "params",
    [
        [{"topics": [None], "address": [ADDRESS]}],
        ["logs", {"address": [ADDRESS]}],
    ],
)
def test_subscribe_errors(params):
    with pytest.raises(MockRequestError):
        handle_hmy_subscribe(JsonrpcMessage(method="hmy_subscribe", params=params))


@pytest.mark.parametrize(
    "filters, expected",
    [
        ({"topics": [[HASH]], "address": [ADDRESS]}, hmy_log(ADDRESS, [HASH])),
        ({"topics": [], "address": [ADDRESS]}, hmy_log(ADDRESS, None)),
        ({"topics": [[HASH]], "address": [ADDRESS, ADDRESS2]}, hmy_log(ADDRESS, [HASH])),
    ],
)
def test_map_string_interface(filters, expected):
    assert handle_hmy_map_string_interface(filters) == expected


@pytest.mark.parametrize(
    "filters",
    [{"address": [ADDRESS]}, {"topics": [[HASH]], "address": []}],
)
def test_map_string_interface_errors(filters):
    with pytest.raises(MockRequestError):
        handle_hmy_map_string_interface(filters)