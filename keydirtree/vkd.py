"""The verifiable key directory: a batch of key updates between two tree roots."""

from __future__ import annotations

import random as _random
from dataclasses import dataclass, field
from typing import Mapping, TypeVar

from keydirtree.circuits import SubCircuit
from keydirtree.hashing import INNER_HASH_SIZE, hash_value
from keydirtree.sparse_tree import MerkleIndex, NodeType, SparseMerkleTree
from keydirtree.updates import (
    DEPTH,
    KEY_SIZE,
    USERNAME_SIZE,
    Update,
    VkdAppend,
    VkdUpdate,
    concat,
    vkd_update_to_subcircuit,
)

K = TypeVar("K")
V = TypeVar("V")


def _leaf_index(username: bytes) -> MerkleIndex:
    return SparseMerkleTree.get_index(hash_value(username), DEPTH)


@dataclass(frozen=True)
class VerifiableKeyDirectoryCircuitParams:
    """Size of a key directory batch and the hash of an empty leaf."""

    log_num_subcircuits: int
    null_leaf: bytes

    def __post_init__(self) -> None:
        if self.log_num_subcircuits < 0:
            raise ValueError("log_num_subcircuits must not be negative")
        null_leaf = bytes(self.null_leaf)
        if len(null_leaf) != INNER_HASH_SIZE:
            raise ValueError(
                f"null_leaf must be {INNER_HASH_SIZE} bytes long, got {len(null_leaf)}"
            )
        object.__setattr__(self, "null_leaf", null_leaf)

    def __str__(self) -> str:
        return f"[nu={self.log_num_subcircuits}]"


@dataclass
class VerifiableKeyDirectoryCircuit:
    """A list of updates that take the tree from ``initial_root`` to ``final_root``."""

    initial_root: bytes
    params: VerifiableKeyDirectoryCircuitParams
    final_root: bytes
    updates: list = field(default_factory=list)
    subcircuits: list[SubCircuit] = field(default_factory=list)

    @classmethod
    def random(
        cls, params: VerifiableKeyDirectoryCircuitParams
    ) -> VerifiableKeyDirectoryCircuit:
        """Build a batch whose subcircuit layout fills ``2 ** log_num_subcircuits`` slots.

        The batch appends one user and then updates that user's key repeatedly.
        """
        num_updates = ((1 << params.log_num_subcircuits) - 8) // 8 - 1
        if num_updates < 0:
            raise ValueError("log_num_subcircuits must be at least 4")

        tree = SparseMerkleTree(DEPTH)
        users: dict[bytes, tuple[int, bytes]] = {}

        genesis_user = bytes(USERNAME_SIZE)
        genesis_key = bytes(KEY_SIZE)
        users[genesis_user] = (0, genesis_key)
        tree.insert(
            _leaf_index(genesis_user), concat(genesis_user, genesis_key, 0), NodeType.LEAF
        )
        initial_root = tree.root

        updates: list[Update] = []

        username = bytes([8]) * USERNAME_SIZE
        key = bytes(KEY_SIZE)
        users[username] = (0, key)
        index = _leaf_index(username)
        path = tree.lookup_path(index)
        tree.insert(index, concat(username, key, 0), NodeType.LEAF)
        updates.append(VkdAppend(username=username, key=key, path=path))

        for i in range(num_updates):
            counter, key1 = users[username]
            index = _leaf_index(username)
            path = tree.lookup_path(index)
            key2 = bytes([i % 256]) * KEY_SIZE
            new_counter = counter + 1
            users[username] = (new_counter, key2)
            tree.insert(index, concat(username, key2, new_counter), NodeType.LEAF)
            updates.append(
                VkdUpdate(username=username, counter=counter, key1=key1, path=path, key2=key2)
            )

        return cls(
            initial_root=initial_root,
            params=params,
            final_root=tree.root,
            updates=list(updates),
            subcircuits=vkd_update_to_subcircuit(updates),
        )

    def verify(self, pp) -> bool:
        """Replay every update from the initial root and check it ends at the final root.

        ``pp`` is the hash of an empty leaf, against which appends are checked.
        """
        null_leaf = bytes(pp)
        ok = True
        root = self.initial_root
        for update in self.updates:
            bits = _leaf_index(update.username).to_bit_vector()
            if isinstance(update, VkdUpdate):
                old_leaf = concat(update.username, update.key1, update.counter)
                ok = update.path.verify(root, old_leaf, bits, NodeType.LEAF) and ok
                new_leaf = concat(update.username, update.key2, update.counter + 1)
            elif isinstance(update, VkdAppend):
                ok = update.path.verify(root, null_leaf, bits, NodeType.INTERNAL_NODE) and ok
                new_leaf = concat(update.username, update.key, 0)
            else:
                raise TypeError(f"not a key directory update: {update!r}")
            root = update.path.compute_root(new_leaf, bits, NodeType.LEAF)
        return root == self.final_root and ok

    def count_appends_updates(self) -> tuple[int, int]:
        """Return the number of appends and the number of key updates."""
        appends = sum(isinstance(u, VkdAppend) for u in self.updates)
        key_updates = sum(isinstance(u, VkdUpdate) for u in self.updates)
        return appends, key_updates


def get_random_key_value(users: Mapping[K, V]) -> tuple[K, V] | None:
    """Return a randomly chosen (key, value) pair, or None for an empty mapping."""
    if not users:
        return None
    return _random.choice(list(users.items()))