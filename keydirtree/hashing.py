"""Byte-level hash functions used by the sparse Merkle tree and the key directory.

Digests of tree nodes are truncated to ``INNER_HASH_SIZE`` bytes so that a node
always fits inside a single field element of the proving system.
"""

from __future__ import annotations

import enum
import hashlib

INNER_HASH_SIZE = 27
"""Number of bytes kept from a digest to form a tree node hash."""

DIGEST_SIZE = 32
"""Length in bytes of a full digest returned by :func:`hash_value`."""


class HashType(enum.Enum):
    """Hash function families a tree can be built over."""

    SHA256 = "sha256"
    POSEIDON = "poseidon"


HASH_TYPE = HashType.SHA256
"""The hash family the package computes with."""


def _as_bytes(data: bytes | bytearray | memoryview | list[int]) -> bytes:
    try:
        return bytes(data)
    except (TypeError, ValueError) as exc:
        raise TypeError("expected a byte sequence") from exc


def _check_inner_hash(name: str, value: bytes) -> None:
    if len(value) != INNER_HASH_SIZE:
        raise ValueError(
            f"{name} must be {INNER_HASH_SIZE} bytes long, got {len(value)}"
        )


def hash_value(value) -> bytes:
    """Return the full 32-byte digest of ``value``."""
    return hashlib.sha256(_as_bytes(value)).digest()


def hash_leaf(leaf) -> bytes:
    """Return the node hash of a leaf: its digest truncated to INNER_HASH_SIZE bytes."""
    return hash_value(leaf)[:INNER_HASH_SIZE]


def hash_inner_node(left, right) -> bytes:
    """Hash two child node hashes into their parent's node hash."""
    left_bytes = _as_bytes(left)
    right_bytes = _as_bytes(right)
    _check_inner_hash("left", left_bytes)
    _check_inner_hash("right", right_bytes)
    return hashlib.sha256(left_bytes + right_bytes).digest()[:INNER_HASH_SIZE]