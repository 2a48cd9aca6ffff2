import dataclasses

import pytest

from keydirtree.hashing import INNER_HASH_SIZE
from keydirtree.sparse_tree import SparseMerkleTree
from keydirtree.updates import DEPTH, VkdAppend, VkdUpdate
from keydirtree.vkd import (
    VerifiableKeyDirectoryCircuit,
    VerifiableKeyDirectoryCircuitParams,
    get_random_key_value,
)


@pytest.fixture(scope="module")
def null_leaf():
    return SparseMerkleTree(DEPTH).sparse_initial_hashes[DEPTH]


@pytest.fixture(scope="module")
def vkd5(null_leaf):
    params = VerifiableKeyDirectoryCircuitParams(log_num_subcircuits=5, null_leaf=null_leaf)
    return VerifiableKeyDirectoryCircuit.random(params)


def test_vkd_rand(vkd5, null_leaf):
    assert vkd5.verify(null_leaf) is True


def test_counts_for_log5(vkd5):
    assert vkd5.count_appends_updates() == (1, 2)


def test_counts_for_log4(null_leaf):
    params = VerifiableKeyDirectoryCircuitParams(4, null_leaf)
    vkd = VerifiableKeyDirectoryCircuit.random(params)
    assert vkd.count_appends_updates() == (1, 0)
    assert vkd.verify(null_leaf) is True
    assert len(vkd.subcircuits) == 16


@pytest.mark.parametrize("log", [5, 6])
def test_subcircuits_fill_all_slots(null_leaf, log):
    vkd = VerifiableKeyDirectoryCircuit.random(
        VerifiableKeyDirectoryCircuitParams(log, null_leaf)
    )
    assert len(vkd.subcircuits) == 1 << log


def test_representative_subcircuit_types(vkd5):
    types = [s.get_type() for s in vkd5.subcircuits]
    assert types[0] == "padding"
    assert types[6] == "write pp"
    assert types[7] == "hash leaf, get index, compute path"
    assert types[8] == "compute path"
    assert types[10] == "compute path, equality"
    assert types[19] == "equality, hash leaf, compute path"
    assert types[-1] == "equality"


def test_update_kinds_in_order(vkd5):
    assert isinstance(vkd5.updates[0], VkdAppend)
    assert all(isinstance(u, VkdUpdate) for u in vkd5.updates[1:])
    assert vkd5.updates[0].username == bytes([8]) * 32
    assert [u.counter for u in vkd5.updates[1:]] == [0, 1]


def test_tampered_final_root_fails(vkd5, null_leaf):
    tampered = dataclasses.replace(vkd5, final_root=bytes(INNER_HASH_SIZE))
    assert tampered.verify(null_leaf) is False


def test_wrong_null_leaf_fails(vkd5):
    assert vkd5.verify(bytes(INNER_HASH_SIZE)) is False


def test_initial_and_final_roots_differ(vkd5):
    assert vkd5.initial_root != vkd5.final_root
    assert len(vkd5.final_root) == INNER_HASH_SIZE


def test_too_small_log_raises(null_leaf):
    with pytest.raises(ValueError):
        VerifiableKeyDirectoryCircuit.random(VerifiableKeyDirectoryCircuitParams(3, null_leaf))


def test_params_str(null_leaf):
    assert str(VerifiableKeyDirectoryCircuitParams(5, null_leaf)) == "[nu=5]"


def test_params_reject_wrong_null_leaf_size():
    with pytest.raises(ValueError):
        VerifiableKeyDirectoryCircuitParams(5, bytes(32))


def test_params_are_hashable_and_equal(null_leaf):
    a = VerifiableKeyDirectoryCircuitParams(5, null_leaf)
    b = VerifiableKeyDirectoryCircuitParams(5, bytes(null_leaf))
    assert a == b
    assert len({a, b}) == 1


def test_random_key_value_empty():
    assert get_random_key_value({}) is None


def test_random_key_value_single():
    assert get_random_key_value({"alice": 3}) == ("alice", 3)


def test_random_key_value_member():
    users = {"alice": 1, "bob": 2, "carol": 3}
    pair = get_random_key_value(users)
    assert pair in users.items()