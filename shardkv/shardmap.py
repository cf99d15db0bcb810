"""Cluster layout: nodes and the assignment of shards to them."""

from __future__ import annotations

import itertools
import json
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from shardkv.log_setup import TRACE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeInfo:
    """Network location of a node."""

    address: str = ""
    port: int = 0


@dataclass
class ShardMapState:
    """A snapshot of the cluster layout. Shards are numbered from 1."""

    nodes: dict[str, NodeInfo] = field(default_factory=dict)
    shards_to_nodes: dict[int, list[str]] = field(default_factory=dict)
    num_shards: int = 0

    def is_valid(self) -> bool:
        """Whether shard numbers are in range and every shard's nodes exist and are distinct."""
        if len(self.shards_to_nodes) > self.num_shards:
            return False
        for shard, nodes in self.shards_to_nodes.items():
            if not 1 <= shard <= self.num_shards:
                return False
            if any(node not in self.nodes for node in nodes):
                return False
            if len(set(nodes)) != len(nodes):
                return False
        return True

    @classmethod
    def from_json(cls, data) -> ShardMapState:
        """Build a state from JSON text, bytes, or an already decoded mapping."""
        raw = json.loads(data) if isinstance(data, (str, bytes, bytearray)) else data
        if not isinstance(raw, Mapping):
            raise ValueError("shard map must be a JSON object")
        try:
            nodes = {
                str(name): NodeInfo(
                    address=str(info.get("address", "")),
                    port=int(info.get("port", 0)),
                )
                for name, info in (raw.get("nodes") or {}).items()
            }
            shards = {
                int(shard): [str(node) for node in (names or [])]
                for shard, names in (raw.get("shards") or {}).items()
            }
            num_shards = int(raw.get("numShards", 0))
        except (AttributeError, TypeError) as exc:
            raise ValueError(f"malformed shard map: {exc}") from exc
        return cls(nodes=nodes, shards_to_nodes=shards, num_shards=num_shards)


class ShardMapListener:
    """Handle for a callback subscribed to a :class:`ShardMap`."""

    def __init__(self, shard_map: ShardMap, listener_id: int) -> None:
        self._shard_map = shard_map
        self._id = listener_id

    def close(self) -> None:
        """Stop receiving update notifications. Safe to call more than once."""
        self._shard_map._unsubscribe(self._id)

    def __enter__(self) -> ShardMapListener:
        return self

    def __exit__(self, *args) -> None:
        self.close()


class ShardMap:
    """Thread-safe, updatable cluster layout that notifies subscribers on change."""

    def __init__(self, state: ShardMapState | None = None) -> None:
        self._state = state if state is not None else ShardMapState()
        self._lock = threading.Lock()
        self._update_lock = threading.RLock()
        self._listeners: dict[int, Callable[[], None]] = {}
        self._ids = itertools.count()

    @property
    def state(self) -> ShardMapState:
        """The current state; treat it as read-only."""
        with self._lock:
            return self._state

    @property
    def nodes(self) -> dict[str, NodeInfo]:
        """All nodes in the cluster keyed by name."""
        return dict(self.state.nodes)

    @property
    def num_shards(self) -> int:
        """Total number of shards."""
        return self.state.num_shards

    def shards_for_node(self, node_name: str) -> list[int]:
        """Shards assigned to ``node_name``, in ascending order."""
        state = self.state
        return sorted(
            shard
            for shard, nodes in state.shards_to_nodes.items()
            for node in nodes
            if node == node_name
        )

    def nodes_for_shard(self, shard: int) -> list[str]:
        """Names of the nodes hosting ``shard``; empty if none."""
        return list(self.state.shards_to_nodes.get(shard, []))

    def subscribe(self, callback: Callable[[], None]) -> ShardMapListener:
        """Call ``callback`` after every future :meth:`update`."""
        with self._lock:
            listener_id = next(self._ids)
            self._listeners[listener_id] = callback
        return ShardMapListener(self, listener_id)

    def _unsubscribe(self, listener_id: int) -> None:
        with self._lock:
            self._listeners.pop(listener_id, None)

    def update(self, state: ShardMapState) -> None:
        """Replace the state and notify every subscriber, returning once all have run."""
        logger.log(TRACE, "updating shardmap state")
        with self._update_lock:
            with self._lock:
                self._state = state
                callbacks = list(self._listeners.values())
            for callback in callbacks:
                callback()