# shardkv

Building blocks for a sharded, replicated key-value store. Keys are spread
over shards. A shard map says which nodes hold which shard, and it can
change while the program runs. This package provides:

- hashing of keys to shards;
- an updatable, thread-safe shard map that tells subscribers about changes;
- a shard map loaded from a JSON file, which is reloaded when the file changes;
- status-coded errors;
- a consistency checker that keeps a record of writes and checks that reads
  return a value that is allowed, TTL expiry included;
- logging setup.

It needs no third-party libraries and runs on Python 3.10 or newer.

## Install

```
pip install shardkv
```

## Modules

- `shardkv.util.shard_for_key(key, num_shards)` returns the shard of a key,
  from `1` to `num_shards`. It uses the 32-bit FNV-1 hash of the key's UTF-8
  bytes. It raises `ValueError` if `num_shards` is less than 1.
- `shardkv.errors` has `StatusCode`, an `IntEnum` of status codes such as
  `NOT_FOUND` and `INVALID_ARGUMENT`. It also has `KvError(code, message)`,
  an exception that carries a `code` and a `message`.
- `shardkv.shardmap` has the following:
  - `NodeInfo(address, port)`.
  - `ShardMapState(nodes, shards_to_nodes, num_shards)`.
    `is_valid()` checks three things: shard numbers are in range, every
    listed node exists, and no node is listed twice for one shard.
    `ShardMapState.from_json(data)` accepts JSON text, bytes or a mapping
    that has already been decoded.
  - `ShardMap(state)` has the properties `state`, `nodes` and `num_shards`,
    and the methods `shards_for_node(name)` (sorted ascending) and
    `nodes_for_shard(shard)`. `update(state)` swaps in a new state. It then
    calls every subscribed callback and returns once they have all run.
    `subscribe(callback)` returns a `ShardMapListener`. Call `close()` on
    it, or use it as a context manager, to stop getting updates.
- `shardkv.file_shardmap` has the following:
  - `load_shard_map_state(filename)` reads and parses a shard map file. It
    raises `OSError` if the file cannot be read and `ValueError` if it
    cannot be parsed.
  - `FileShardMap(filename, poll_interval=0.1)` loads the file into its
    `shard_map` attribute. It then polls the file in a background thread and
    applies any change. After the first load, a file that cannot be read or
    parsed is logged, and the last good state stays in use. `reload()`
    applies the file at once. Call `shutdown()` or use a `with` block to
    stop watching.
  - `watch_shard_map_file(filename)` is a shortcut for `FileShardMap(filename)`.
- `shardkv.checker` has `ConsistencyChecker(check=True, check_ttl=True,
  ttl_check_buffer=0.01)`, `StateValue` and `InconsistencyError`. All times
  are seconds on the `time.monotonic()` clock.
- `shardkv.log_setup.init_logging(level="INFO", log_file=None)` configures
  the `shardkv` logger. The level is one of error, warn, info, debug or
  trace. Records go to standard error, or are appended to `log_file` if
  one is given. `TRACE` is the custom level number 5.

## Shard map file

```json
{
  "numShards": 2,
  "nodes": {
    "n1": {"address": "127.0.0.1", "port": 9001},
    "n2": {"address": "127.0.0.1", "port": 9002}
  },
  "shards": {"1": ["n1", "n2"], "2": ["n2"]}
}
```

Shards are numbered from 1. A shard may be listed with no nodes, in which
case no node holds it.

## Example

```python
import time

from shardkv.checker import ConsistencyChecker, InconsistencyError
from shardkv.shardmap import NodeInfo, ShardMap, ShardMapState
from shardkv.util import shard_for_key

state = ShardMapState(
    nodes={"n1": NodeInfo("127.0.0.1", 9001), "n2": NodeInfo("127.0.0.1", 9002)},
    shards_to_nodes={1: ["n1", "n2"], 2: ["n2"]},
    num_shards=2,
)
assert state.is_valid()

shard_map = ShardMap(state)
print(shard_map.shards_for_node("n2"))  # [1, 2]
print(shard_map.nodes_for_shard(shard_for_key("abc", shard_map.num_shards)))

with shard_map.subscribe(lambda: print("shard map changed")):
    shard_map.update(ShardMapState(state.nodes, {1: ["n1"], 2: ["n2"]}, 2))

checker = ConsistencyChecker()
start = time.monotonic()
version = checker.begin_write("abc")
# ... write "v1" with a 2 s TTL to the store here ...
checker.complete_write("abc", "v1", None, version, start + 2, time.monotonic() + 2)

version, pending = checker.begin_read("abc")
checker.check_read_correct("abc", "v1", True, time.monotonic(), version, pending)
try:
    checker.check_read_correct("abc", "v0", True, time.monotonic(), version, pending)
except InconsistencyError as exc:
    print(exc)  # incorrect value v0; never written to key
```

## What this package does not do

The package stores no data and opens no network connections. It contains
no storage node and no client that routes requests to nodes. It has no
commands to run. The shard maps, errors and consistency checker are the
parts you build such a node and client on.

## Tests

```
pip install -e .[test]
pytest
```