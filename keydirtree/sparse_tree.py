"""A sparse Merkle tree whose empty subtrees are represented by precomputed hashes."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from keydirtree.hashing import DIGEST_SIZE, INNER_HASH_SIZE, hash_inner_node, hash_leaf
from keydirtree.util import split as split_vector

INITIAL_LEAF_VALUE = bytes(32)
"""The value every leaf of an empty tree is taken to hold."""


class MerkleTreeError(ValueError):
    """Raised when a tree operation is given inconsistent input."""


class NodeType(enum.Enum):
    """How a value placed in the tree is turned into a node hash."""

    LEAF = "leaf"
    INTERNAL_NODE = "internal node"


def is_even(number: int) -> bool:
    """Return True when ``number`` is divisible by two."""
    return number % 2 == 0


@dataclass(frozen=True)
class MerkleIndex:
    """Position of a node: ``index`` counts nodes left to right at level ``depth``."""

    index: int = 0
    depth: int = 0

    def to_bit_vector(self) -> list[bool]:
        """Return, from the node upwards, True where the node is a left child."""
        bits = []
        index = self.index
        for _ in range(self.depth):
            bits.append(is_even(index))
            index >>= 1
        return bits


def _node_hash(value, node_type: NodeType) -> bytes:
    if node_type is NodeType.INTERNAL_NODE:
        node = bytes(value)
        if len(node) != INNER_HASH_SIZE:
            raise ValueError(
                f"internal node must be {INNER_HASH_SIZE} bytes long, got {len(node)}"
            )
        return node
    return hash_leaf(value)


@dataclass
class MerkleTreePath:
    """Sibling hashes from a node up to the root, nearest sibling first."""

    path: list[bytes] = field(default_factory=list)

    @classmethod
    def default(cls, depth: int) -> MerkleTreePath:
        """Return a path of ``depth`` all-zero node hashes."""
        return cls([bytes(INNER_HASH_SIZE) for _ in range(depth)])

    def compute_root(self, value, index, node_type: NodeType) -> bytes:
        """Hash ``value`` up along this path, steering by the bits of ``index``."""
        if len(index) < len(self.path):
            raise ValueError(
                f"index has {len(index)} bits but the path has {len(self.path)} levels"
            )
        current = _node_hash(value, node_type)
        for is_left, sibling in zip(index, self.path):
            if is_left:
                current = hash_inner_node(current, sibling)
            else:
                current = hash_inner_node(sibling, current)
        return current

    def verify(self, root, value, index, node_type: NodeType) -> bool:
        """Return whether this path leads from ``value`` to ``root``."""
        return self.compute_root(value, index, node_type) == bytes(root)

    def split(self, split_factor: int) -> list[MerkleTreePath]:
        """Divide the path into ``split_factor`` consecutive sub-paths."""
        return [MerkleTreePath(part) for part in split_vector(self.path, split_factor)]


class SparseMerkleTree:
    """A Merkle tree of fixed depth that stores only the nodes that were written."""

    def __init__(self, depth: int) -> None:
        self.depth = depth
        hashes = [hash_leaf(INITIAL_LEAF_VALUE)]
        for _ in range(depth):
            child = hashes[-1]
            hashes.append(hash_inner_node(child, child))
        hashes.reverse()
        self.sparse_initial_hashes: list[bytes] = hashes
        self.tree: dict[MerkleIndex, bytes] = {}
        self.leaves: dict[MerkleIndex, bytes] = {}
        self.root: bytes = hashes[0]

    def __str__(self) -> str:
        return f"(leaves: {list(self.leaves)})"

    def insert(self, index: MerkleIndex, value, node_type: NodeType) -> None:
        """Place ``value`` at ``index`` and recompute the hashes up to the root."""
        node_hash = _node_hash(value, node_type)
        if node_type is NodeType.LEAF:
            self.leaves[index] = bytes(value)
        self.tree[MerkleIndex(index.index, index.depth)] = node_hash

        position = index.index
        for level in reversed(range(index.depth)):
            position >>= 1
            left_child = position << 1
            left_hash, _ = self.lookup_internal_node(left_child, level + 1)
            right_hash, _ = self.lookup_internal_node(left_child + 1, level + 1)
            self.tree[MerkleIndex(position, level)] = hash_inner_node(left_hash, right_hash)

        try:
            self.root = self.tree[MerkleIndex(0, 0)]
        except KeyError:
            raise MerkleTreeError("root lookup failed") from None

    def lookup_internal_node(self, index: int, depth: int) -> tuple[bytes, bool]:
        """Return the hash at a position and whether it was written explicitly."""
        stored = self.tree.get(MerkleIndex(index, depth))
        if stored is not None:
            return stored, True
        return self.sparse_initial_hashes[depth], False

    def lookup_path(self, index: MerkleIndex) -> MerkleTreePath:
        """Return the authentication path of the node at ``index``."""
        siblings = []
        position = index.index
        for level in range(index.depth, 0, -1):
            sibling, _ = self.lookup_internal_node(position ^ 1, level)
            siblings.append(sibling)
            position >>= 1
        return MerkleTreePath(siblings)

    @staticmethod
    def get_index(leaf_hash, depth: int) -> MerkleIndex:
        """Derive a leaf position from the first ``depth // 8`` bytes of a digest."""
        digest = bytes(leaf_hash)
        if len(digest) != DIGEST_SIZE:
            raise MerkleTreeError("invalid hash size")
        return MerkleIndex(int.from_bytes(digest[: depth // 8], "little"), depth)