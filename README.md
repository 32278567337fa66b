# extinitiator

Tools for running and testing an external initiator against blockchain
nodes, in two parts:

- `extinitiator.store` keeps endpoints and per-chain subscriptions in an
  SQLite database, with versioned schema migrations.
- `extinitiator.mock` is a mock blockchain client that answers JSON-RPC,
  WebSocket and REST requests the way the supported chains would, from
  canned response files and small generated payloads.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## The subscription store

```python
from extinitiator.store.database import (
    Endpoint,
    EthSubscription,
    Subscription,
    connect_to_db,
)

client = connect_to_db("store.db")
client.save_endpoint(Endpoint(name="eth-main", url="ws://localhost:8546/", type="ethereum"))
client.save_subscription(
    Subscription(
        reference_id="abc",
        job="test123",
        endpoint_name="eth-main",
        ethereum=EthSubscription(addresses=["0x12345"], topics=["0xabcde"]),
    )
)

for sub in client.load_subscriptions():
    print(sub.job, sub.endpoint.name)

client.close()
```

`connect_to_db` takes a file path, `sqlite://` (in memory), `sqlite:///<path>`
or a `file:` URI, and applies any pending migrations before returning the
`Client`. The client is also a context manager that closes the connection.

- `save_endpoint` creates an endpoint or overwrites the one with the same
  name, and undoes an earlier deletion of it.
- `save_subscription` fails with `StoreError` unless the named endpoint
  exists; the chain settings matching the endpoint's type are stored with it.
- `load_subscription(job_id)`, `load_subscriptions()` and
  `prepare_subscription` return subscriptions with their endpoint and chain
  settings filled in.
- Deletions are soft: `delete_subscription`, `delete_endpoint` (which also
  deletes the subscriptions using that endpoint), and
  `delete_all_endpoints_except(names)`.

Lookups of missing records raise `RecordNotFoundError`, a `StoreError`.

String lists such as addresses and topics are stored as a single CSV row;
`string_array_value` and `scan_string_array` convert in each direction.

Schema changes live in `extinitiator.store.migrations`: `migrate(conn)` runs
every migration in `MIGRATIONS` not yet applied, in one transaction, and
`applied_migrations(conn)` lists the ids already recorded. Failures raise
`MigrationError`.

## The mock blockchain client

Start it with:

```
extinitiator-mock --port 8080 --static-dir path/to/static
```

Options are `--host` (default `0.0.0.0`), `--port` (default `8080`) and
`--static-dir`. It serves:

- `POST /rpc/<platform>`: one JSON-RPC request, one response; requests that
  cannot be answered get status 400.
- `GET /ws/<platform>`: a WebSocket taking JSON-RPC requests; a log
  subscription is answered with a confirmation followed by one log event.
- `POST /`: BSN-IRITA style Tendermint RPC (`status`, `block_results` and
  `abci_query`).
- `GET /http/xtz/monitor/heads/<chain_id>` and
  `GET /http/xtz/chains/main/blocks/<block_id>/operations`: Tezos REST.

Platforms are `eth`, `hmy`, `ont`, `binance-smart-chain`, `near`, `cfx`,
`keeper` and `klaytn`. A request whose method has a canned response for the
platform gets that response, with the request's id; other requests go to the
platform's handler.

The handlers can also be called directly:

```python
from extinitiator.mock.dispatch import handle_request
from extinitiator.mock.jsonrpc import JsonrpcMessage

msg = JsonrpcMessage.from_json(
    '{"jsonrpc":"2.0","id":1,"method":"eth_getLogs",'
    '"params":[{"topics":[null],"address":["0x0000000000000000000000000000000000000000"]}]}'
)
for reply in handle_request("rpc", "eth", msg):
    print(reply.to_json())
```

A request that cannot be answered raises `MockRequestError`.

`extinitiator.mock.iotex.MockIoTeXServer` offers the IoTeX chain-meta and
log queries as plain method calls (`get_chain_meta`, `get_logs`).

### Canned response files

Canned responses are read from `<platform>.json` files in the static
directory: the one given with `--static-dir` or `directory=`, or else
`blockchain/static` under the working directory (`static` if the working
directory is itself named `blockchain`). Each file is a JSON object mapping a
method name to a list of JSON-RPC messages. NEAR queries are looked up under
`query_<method_name>`, with `error_MethodNotFound` as the fallback;
BSN-IRITA uses `birita.json` and Tezos uses `xtz.json`, an object keyed by
`monitor` and `operations`.

## What this package does not do

- It ships no canned response files; without them, methods that rely on
  canned data (block numbers, NEAR queries, BSN-IRITA status, Tezos) are
  answered with an error.
- `MockIoTeXServer` is not exposed over the network; no gRPC server is run.
- The store works with SQLite only.