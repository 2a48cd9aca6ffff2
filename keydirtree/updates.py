"""Key directory updates and their layout as a sequence of subcircuits.

A key directory leaf is a username, a 16-bit counter and a key. An update
replaces the key of an existing user and bumps the counter. An append adds a
new user with counter zero. Every update is proved by hashing along its Merkle
path, which is split into ``SPLIT_FACTOR`` parts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Union

from keydirtree.circuits import (
    LEAF_SIZE,
    ComputePathPrimitive,
    EqualityPrimitive,
    FinalRootAddress,
    GetIndexPrimitive,
    HashLeafPrimitive,
    IndexAddress,
    InitialRootAddress,
    IntermediateRootAddress,
    LeafHashAddress,
    NodeAddress,
    NullLeafAddress,
    PaddingPrimitive,
    PathRootAddress,
    SubCircuit,
    WritePublicParameterPrimitive,
    node_address_to_bytes,
)
from keydirtree.sparse_tree import MerkleTreePath

USERNAME_SIZE = 32
KEY_SIZE = 32
COUNTER_LIMIT = 1 << 16

DEPTH = 128
"""Depth of the key directory tree; one of 8, 16, 32, 64, 128, 256."""

SPLIT_FACTOR = 4
"""Number of parts each Merkle path is split into."""

PATH_LENGTH = DEPTH // SPLIT_FACTOR
"""Length of one part of a split path."""

PADDING_SUBCIRCUITS = 6
"""Number of padding subcircuits placed before the public parameters."""


def _default_path() -> MerkleTreePath:
    return MerkleTreePath.default(DEPTH)


@dataclass
class VkdUpdate:
    """Replace a user's key: (username, counter, key1) becomes (username, counter + 1, key2)."""

    username: bytes = bytes(USERNAME_SIZE)
    counter: int = 0
    key1: bytes = bytes(KEY_SIZE)
    path: MerkleTreePath = field(default_factory=_default_path)
    key2: bytes = bytes(KEY_SIZE)


@dataclass
class VkdAppend:
    """Add a new user with counter zero."""

    username: bytes = bytes(USERNAME_SIZE)
    key: bytes = bytes(KEY_SIZE)
    path: MerkleTreePath = field(default_factory=_default_path)


Update = Union[VkdUpdate, VkdAppend]


def default_leaf() -> bytes:
    """Return the all-zero leaf."""
    return bytes(LEAF_SIZE)


def concat(username, key, counter: int) -> bytes:
    """Build a leaf: username, counter as two little-endian bytes, then key."""
    username_bytes = bytes(username)
    key_bytes = bytes(key)
    if len(username_bytes) != USERNAME_SIZE:
        raise ValueError(
            f"username must be {USERNAME_SIZE} bytes long, got {len(username_bytes)}"
        )
    if len(key_bytes) != KEY_SIZE:
        raise ValueError(f"key must be {KEY_SIZE} bytes long, got {len(key_bytes)}")
    if not 0 <= counter < COUNTER_LIMIT:
        raise ValueError(f"counter {counter} does not fit in 16 bits")
    return username_bytes + counter.to_bytes(2, "little") + key_bytes


def get_previous_root_from_update_idx(
    update_idx: int, updates: Sequence[Update]
) -> NodeAddress:
    """Return the address of the root that update ``update_idx`` starts from."""
    if update_idx == 0:
        return InitialRootAddress()
    if not 0 < update_idx <= len(updates):
        raise IndexError(f"update index {update_idx} out of range")
    return PathRootAddress(path_id=1, update_idx=update_idx - 1)


def get_node_addresses(
    update_idx: int, path_id: int, initial_node: NodeAddress
) -> list[tuple[NodeAddress, NodeAddress]]:
    """Return the (start, end) address of each part of a split path."""

    def intermediate(indicator: int) -> IntermediateRootAddress:
        return IntermediateRootAddress(
            indicator=indicator, path_id=path_id, update_idx=update_idx
        )

    pairs: list[tuple[NodeAddress, NodeAddress]] = []
    for i in range(SPLIT_FACTOR):
        start = initial_node if i == 0 else intermediate(i - 1)
        if i == SPLIT_FACTOR - 1:
            end: NodeAddress = PathRootAddress(path_id=path_id, update_idx=update_idx)
        else:
            end = intermediate(i)
        pairs.append((start, end))
    return pairs


def _compute_path_primitives(
    update_idx: int,
    path_id: int,
    initial_node: NodeAddress,
    index_leaf: bytes,
    path: MerkleTreePath,
) -> list[ComputePathPrimitive]:
    pairs = get_node_addresses(update_idx, path_id, initial_node)
    parts = path.split(SPLIT_FACTOR)
    return [
        ComputePathPrimitive(
            update_idx=update_idx,
            path_id=path_id,
            indicator=i,
            initial_value_addr=node_address_to_bytes(start),
            final_value_addr=node_address_to_bytes(end),
            index_addr=IndexAddress(indicator=i, leaf=index_leaf),
            path=part,
        )
        for i, ((start, end), part) in enumerate(zip(pairs, parts))
    ]


def _root_equality(update_idx: int, updates: Sequence[Update]) -> EqualityPrimitive:
    return EqualityPrimitive(
        update_idx=update_idx,
        addr1=node_address_to_bytes(PathRootAddress(path_id=0, update_idx=update_idx)),
        addr2=node_address_to_bytes(get_previous_root_from_update_idx(update_idx, updates)),
    )


def _update_subcircuits(
    update_idx: int, update: VkdUpdate, updates: Sequence[Update]
) -> list[SubCircuit]:
    leaf1 = concat(update.username, update.key1, update.counter)
    leaf2 = concat(update.username, update.key2, update.counter + 1)

    old_path = _compute_path_primitives(
        update_idx, 0, LeafHashAddress(leaf1), leaf1, update.path
    )
    new_path = _compute_path_primitives(
        update_idx, 1, LeafHashAddress(leaf2), leaf1, update.path
    )

    circuits = [SubCircuit([op]) for op in old_path]
    circuits.append(
        SubCircuit(
            [_root_equality(update_idx, updates), HashLeafPrimitive(leaf2), new_path[0]]
        )
    )
    circuits.extend(SubCircuit([op]) for op in new_path[1:])
    return circuits


def _append_subcircuits(
    update_idx: int, append: VkdAppend, updates: Sequence[Update]
) -> list[SubCircuit]:
    leaf = concat(append.username, append.key, 0)

    null_path = _compute_path_primitives(
        update_idx, 0, NullLeafAddress(), leaf, append.path
    )
    new_path = _compute_path_primitives(
        update_idx, 1, LeafHashAddress(leaf), leaf, append.path
    )

    circuits = [
        SubCircuit(
            [
                HashLeafPrimitive(leaf),
                GetIndexPrimitive(update_idx=update_idx, leaf=leaf),
                null_path[0],
            ]
        )
    ]
    circuits.extend(SubCircuit([op]) for op in null_path[1:-1])
    circuits.append(SubCircuit([null_path[-1], _root_equality(update_idx, updates)]))
    circuits.extend(SubCircuit([op]) for op in new_path)
    return circuits


def vkd_update_to_subcircuit(updates: Sequence[Update]) -> list[SubCircuit]:
    """Lay out a list of updates as the subcircuits that prove them.

    The layout is six padding subcircuits, one that writes the public
    parameters, the subcircuits of every update in order, and a final check
    that the last path root equals the final root.
    """
    if not updates:
        raise ValueError("at least one update is required")

    subcircuits = [SubCircuit([PaddingPrimitive()]) for _ in range(PADDING_SUBCIRCUITS)]
    subcircuits.append(SubCircuit([WritePublicParameterPrimitive()]))

    for update_idx, update in enumerate(updates):
        if isinstance(update, VkdUpdate):
            subcircuits.extend(_update_subcircuits(update_idx, update, updates))
        elif isinstance(update, VkdAppend):
            subcircuits.extend(_append_subcircuits(update_idx, update, updates))
        else:
            raise TypeError(f"not a key directory update: {update!r}")

    subcircuits.append(
        SubCircuit(
            [
                EqualityPrimitive(
                    update_idx=len(updates) - 1,
                    addr1=node_address_to_bytes(FinalRootAddress()),
                    addr2=node_address_to_bytes(
                        get_previous_root_from_update_idx(len(updates), updates)
                    ),
                )
            ]
        )
    )
    return subcircuits