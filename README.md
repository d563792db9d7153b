# decodefi

Building blocks for a service that looks into EVM blocks and the call
traces inside them:

- `decodefi.alchemy`: JSON-RPC request payloads for `eth_blockNumber` and
  `eth_getBlockByNumber`, and typed views (`BlockNumberResponse`,
  `BlockResponse`) of their responses.
- `decodefi.evm_inspect`: the `Trace` record and `EvmInspectClient`, which
  fetches the traces of a block from a trace service over HTTP
  (`http://127.0.0.1:3000` unless told otherwise).
- `decodefi.db`: `Database`, a trace store on top of a DB-API connection
  with `blocks` and `traces` tables.
- `decodefi.server`: `HttpServer`, which serves the above as JSON through a
  Flask application.
- `decodefi.chisel`: a small interactive shell (`CommandHandler`,
  `run_repl`).

## Building requests and reading responses

```python
from decodefi.alchemy import BlockResponse, block_request

payload = block_request("0x10d4f").payload(1)
# b'{"id":1,"jsonrpc":"2.0","method":"eth_getBlockByNumber","params":["0x10d4f",false]}'

block = BlockResponse.from_json(reply_body)
print(block.hash, block.transactions)
```

`block_number_request()` builds the `eth_blockNumber` call; with no
parameters its `params` is serialised as `null`. `from_json` accepts bytes
or text, returns `None` for a JSON `null`, and raises `ValueError` when a
field has the wrong type. `to_dict()` gives the response back in its JSON
shape.

## Fetching traces

```python
from decodefi.evm_inspect import EvmInspectClient

traces = EvmInspectClient().trace_block("19000000")
```

`trace_block` sends `GET <host>:<port>/trace_block/<id>`, prints that URL,
and returns a list of `Trace` (empty when the service answers `null`).
`Trace.to_dict()` leaves out `trace_id` and `block_number` when they are
empty.

## Storing traces

```python
from decodefi.db import Block, BlockRange, Database, Direction, Limit

with Database(connection, paramstyle="format") as database:
    database.insert_traces("19000000", traces)
    database.insert_block(Block(block_number=19000000))

    stored = database.get_block_traces("19000000")
    for trace in database.get_address_traces(
        "0xabc", "call", Direction.FROM, Limit(top=20), BlockRange(0, 20000000)
    ):
        print(trace.to_addr)
```

- `paramstyle` is one of `"dollar"` (the default, `$1`), `"numeric"`
  (`:1`), `"qmark"` (`?`) or `"format"` (`%s`); anything else raises
  `ValueError`.
- `insert_block` and `insert_traces` upsert and commit. Each trace gets the
  id `<index as 8 hex digits><tx_hash>`. Inserting an empty list raises
  `ValueError`.
- `get_address_traces` groups the counterparties of an address for one
  action, most frequent first. For `delegate_call` the storage address
  stands in for the sender. Without a `Limit` it returns at most 100 rows;
  without a `BlockRange` it spans every block.
- `DbCreds(user, password, db_name).dsn()` builds a PostgreSQL connection
  string.

## Serving over HTTP

```python
from decodefi.evm_inspect import EvmInspectClient
from decodefi.server import HttpServer

app = HttpServer(rpc_client, database, EvmInspectClient).create_app()
```

Routes of the application:

| Route | Answer |
| --- | --- |
| `/block_number` | the `eth_blockNumber` reply |
| `/block/<block_id>` | the `eth_getBlockByNumber` reply |
| `/force_trace_block/<block_id>` | traces the block now, stores the traces and the block, returns the traces |
| `/block_traces/<block_id>` | stored traces of the block without calldata, or `null` if there are none |
| `/address_traces/<address>` | top counterparties per direction and action (`call`, `delegate_call`: 20; `create`, `create2`: 50) |

## The interactive shell

```python
import sys
from decodefi.chisel import CommandHandler, run_repl
from decodefi.evm_inspect import EvmInspectClient

handler = CommandHandler(rpc_client, EvmInspectClient(), sys.stdout)
run_repl(handler, sys.stdin, sys.stdout)
```

Input is trimmed and lower-cased. Commands: `block_number`, `block <n>`
(hash and first transaction), `trace_block <n>` (first trace), and
`.help`, `.clear` (runs the system `clear`), `.exit`. `block` and
`trace_block` without a number raise `ValueError`; other words print
`<word> : command not found`.

## What this package does not do

- It has no JSON-RPC client that talks to a node. `HttpServer` and
  `CommandHandler` need one supplied: an object with
  `block_number(request)` returning a `BlockNumberResponse` and
  `block(request)` returning a `BlockResponse`.
- It does not open database connections or create tables; pass `Database`
  a connection whose `blocks` and `traces` tables already exist.
- It installs no command-line programs; start the shell or the server from
  your own code as shown above.

## Tests

The test suite uses pytest and responses, available through the `test`
extra.