import json
import random

import pytest

from shardkv.shardmap import NodeInfo, ShardMap, ShardMapState


def make_node_infos(n):
    return {f"n{i}": NodeInfo(address="", port=i) for i in range(1, n + 1)}


def make_basic_one_shard():
    return ShardMapState(nodes=make_node_infos(1), shards_to_nodes={1: ["n1"]}, num_shards=1)


def make_multi_shard_single_node():
    return ShardMapState(
        nodes=make_node_infos(1),
        shards_to_nodes={s: ["n1"] for s in range(1, 6)},
        num_shards=5,
    )


def make_no_shard_assigned():
    return ShardMapState(nodes=make_node_infos(1), shards_to_nodes={}, num_shards=1)


def make_single_node_half_shards_assigned():
    shards = {1: ["n1"], 2: ["n1"], 3: ["n1"], 4: ["n1"], 5: [], 6: [], 7: [], 8: []}
    return ShardMapState(nodes=make_node_infos(1), shards_to_nodes=shards, num_shards=8)


def make_two_node_both_assigned_single_shard():
    return ShardMapState(nodes=make_node_infos(2), shards_to_nodes={1: ["n1", "n2"]}, num_shards=1)


def make_two_node_multi_shard():
    shards = {s: ["n1"] if s <= 5 else ["n2"] for s in range(1, 11)}
    return ShardMapState(nodes=make_node_infos(2), shards_to_nodes=shards, num_shards=10)


def make_four_nodes_with_five_shards():
    shards = {
        1: ["n1", "n2", "n3"],
        2: ["n1", "n2", "n4"],
        3: ["n2", "n3"],
        4: ["n3", "n4"],
        5: ["n2"],
    }
    return ShardMapState(nodes=make_node_infos(4), shards_to_nodes=shards, num_shards=5)


def make_many_nodes_with_many_shards(num_shards, num_nodes, rng):
    names = [f"n{i}" for i in range(1, num_nodes + 1)]
    shards = {}
    for shard in range(1, num_shards + 1):
        max_r = min(5, num_nodes)
        min_r = min(2, max_r)
        r = rng.randint(min_r, max_r)
        shards[shard] = rng.sample(names, r)
    return ShardMapState(nodes=make_node_infos(num_nodes), shards_to_nodes=shards, num_shards=num_shards)


@pytest.mark.parametrize(
    "factory",
    [
        make_basic_one_shard,
        make_multi_shard_single_node,
        make_no_shard_assigned,
        make_single_node_half_shards_assigned,
        make_two_node_both_assigned_single_shard,
        make_two_node_multi_shard,
        make_four_nodes_with_five_shards,
    ],
)
def test_generated_states_are_valid(factory):
    state = factory()
    assert ShardMapState.is_valid(state) is True
    assert ShardMap(state).num_shards == state.num_shards


@pytest.mark.parametrize(
    "num_shards, num_nodes",
    [(0, 0), (0, 4), (3, 0), (4, 5), (4, 1), (20, 7), (20, 20)],
)
def test_many_nodes_many_shards_valid(num_shards, num_nodes):
    rng = random.Random(num_shards * 31 + num_nodes)
    assert make_many_nodes_with_many_shards(num_shards, num_nodes, rng).is_valid() is True


def test_many_nodes_many_shards_repeated():
    rng = random.Random(7)
    for _ in range(20):
        assert make_many_nodes_with_many_shards(100, 4, rng).is_valid()
        assert make_many_nodes_with_many_shards(1000, 700, rng).is_valid()


def test_invalid_shard_number():
    state = make_basic_one_shard()
    state.shards_to_nodes = {0: ["n1"]}
    assert state.is_valid() is False
    state.shards_to_nodes = {2: ["n1"]}
    assert state.is_valid() is False


def test_invalid_unknown_node():
    state = make_basic_one_shard()
    state.shards_to_nodes = {1: ["n9"]}
    assert state.is_valid() is False


def test_invalid_duplicate_node():
    state = make_two_node_both_assigned_single_shard()
    state.shards_to_nodes = {1: ["n1", "n1"]}
    assert state.is_valid() is False


def test_invalid_too_many_shards():
    state = make_basic_one_shard()
    state.shards_to_nodes = {1: ["n1"], 2: ["n1"]}
    assert state.is_valid() is False


def test_from_json_round_trip():
    doc = {
        "numShards": 5,
        "nodes": {"n1": {"address": "127.0.0.1", "port": 9001}, "n2": {"address": "127.0.0.1", "port": 9002}},
        "shards": {"1": ["n1"], "2": ["n1", "n2"], "3": []},
    }
    state = ShardMapState.from_json(json.dumps(doc))
    assert state.num_shards == 5
    assert state.nodes["n2"] == NodeInfo(address="127.0.0.1", port=9002)
    assert state.shards_to_nodes == {1: ["n1"], 2: ["n1", "n2"], 3: []}
    assert ShardMapState.from_json(doc) == state
    assert ShardMapState.from_json(json.dumps(doc).encode()) == state


def test_from_json_null_shards():
    state = ShardMapState.from_json('{"numShards": 2, "nodes": {}, "shards": null}')
    assert state.shards_to_nodes == {}
    assert state.num_shards == 2


@pytest.mark.parametrize("text", ["not json", "[1, 2]", '{"shards": {"x": ["n1"]}}', '{"nodes": {"n1": 3}}'])
def test_from_json_rejects_bad_input(text):
    with pytest.raises(ValueError):
        ShardMapState.from_json(text)


def test_accessors():
    sm = ShardMap(make_four_nodes_with_five_shards())
    assert sm.num_shards == 5
    assert set(sm.nodes) == {"n1", "n2", "n3", "n4"}
    assert sm.shards_for_node("n3") == [1, 3, 4]
    assert sm.shards_for_node("n2") == [1, 2, 3, 5]
    assert sm.shards_for_node("n9") == []
    assert sm.nodes_for_shard(2) == ["n1", "n2", "n4"]
    assert sm.nodes_for_shard(42) == []


def test_nodes_for_shard_returns_copy():
    sm = ShardMap(make_basic_one_shard())
    sm.nodes_for_shard(1).append("n2")
    assert sm.nodes_for_shard(1) == ["n1"]


def test_empty_shard_map():
    sm = ShardMap()
    assert sm.num_shards == 0
    assert sm.nodes == {}
    assert sm.shards_for_node("n1") == []


def test_update_replaces_state_and_notifies():
    sm = ShardMap(make_basic_one_shard())
    seen = []
    sm.subscribe(lambda: seen.append(sm.num_shards))
    new_state = make_two_node_multi_shard()
    sm.update(new_state)
    assert sm.state is new_state
    assert seen == [10]


def test_every_listener_notified():
    sm = ShardMap(make_basic_one_shard())
    first, second = [], []
    sm.subscribe(lambda: first.append(1))
    sm.subscribe(lambda: second.append(1))
    sm.update(make_no_shard_assigned())
    sm.update(make_basic_one_shard())
    assert len(first) == 2
    assert len(second) == 2


def test_closed_listener_not_notified():
    sm = ShardMap(make_basic_one_shard())
    calls = []
    listener = sm.subscribe(lambda: calls.append(1))
    sm.update(make_basic_one_shard())
    listener.close()
    listener.close()
    sm.update(make_no_shard_assigned())
    assert calls == [1]
    assert sm.shards_for_node("n1") == []


def test_listener_context_manager():
    sm = ShardMap(make_basic_one_shard())
    calls = []
    with sm.subscribe(lambda: calls.append(1)):
        sm.update(make_basic_one_shard())
    sm.update(make_basic_one_shard())
    assert calls == [1]