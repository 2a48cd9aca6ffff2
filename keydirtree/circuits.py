"""Node addresses, subcircuit primitives and their canonical byte encodings.

Integers are encoded as 8-byte little-endian words, byte strings and text as a
length word followed by their contents, and leaves as their raw 66 bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from keydirtree.hashing import INNER_HASH_SIZE
from keydirtree.sparse_tree import MerkleTreePath

LEAF_SIZE = 66
"""Length in bytes of a key directory leaf (username, counter, key)."""

_U64_LIMIT = 1 << 64


def _encode_u64(value: int) -> bytes:
    if not 0 <= value < _U64_LIMIT:
        raise ValueError(f"value {value} does not fit in an unsigned 64-bit word")
    return value.to_bytes(8, "little")


def _encode_blob(data: bytes) -> bytes:
    return _encode_u64(len(data)) + data


def _encode_text(text: str) -> bytes:
    return _encode_blob(text.encode("utf-8"))


class _Reader:
    """Sequential reader over an encoded byte string."""

    def __init__(self, data) -> None:
        self._data = bytes(data)
        self._pos = 0

    def take(self, count: int) -> bytes:
        end = self._pos + count
        if end > len(self._data):
            raise ValueError("unexpected end of data")
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def u64(self) -> int:
        return int.from_bytes(self.take(8), "little")

    def blob(self) -> bytes:
        return self.take(self.u64())

    def text(self) -> str:
        return self.blob().decode("utf-8")


def _checked_leaf(value) -> bytes:
    leaf = bytes(value)
    if len(leaf) != LEAF_SIZE:
        raise ValueError(f"leaf must be {LEAF_SIZE} bytes long, got {len(leaf)}")
    return leaf


def _checked_index(name: str, value: int) -> None:
    if not 0 <= value < _U64_LIMIT:
        raise ValueError(f"{name} must be an unsigned 64-bit integer, got {value}")


# --------------------------------------------------------------------------
# Node addresses
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class NullLeafAddress:
    """Address of the hash of an empty leaf."""

    def __str__(self) -> str:
        return "null leaf"

    def encode(self) -> bytes:
        return b""

    @classmethod
    def _read(cls, reader: _Reader) -> NullLeafAddress:
        return cls()


@dataclass(frozen=True)
class InitialRootAddress:
    """Address of the tree root before any update."""

    def __str__(self) -> str:
        return "initial root"

    def encode(self) -> bytes:
        return b""

    @classmethod
    def _read(cls, reader: _Reader) -> InitialRootAddress:
        return cls()


@dataclass(frozen=True)
class FinalRootAddress:
    """Address of the tree root after all updates."""

    def __str__(self) -> str:
        return "final root"

    def encode(self) -> bytes:
        return b""

    @classmethod
    def _read(cls, reader: _Reader) -> FinalRootAddress:
        return cls()


@dataclass(frozen=True)
class PathRootAddress:
    """Address of the root computed along path ``path_id`` of update ``update_idx``."""

    path_id: int
    update_idx: int

    def __post_init__(self) -> None:
        _checked_index("path_id", self.path_id)
        _checked_index("update_idx", self.update_idx)

    def __str__(self) -> str:
        return f"path root {self.path_id} {self.update_idx}"

    def encode(self) -> bytes:
        return _encode_u64(self.path_id) + _encode_u64(self.update_idx)

    @classmethod
    def _read(cls, reader: _Reader) -> PathRootAddress:
        return cls(reader.u64(), reader.u64())


@dataclass(frozen=True)
class IntermediateRootAddress:
    """Address of the node reached after part ``indicator`` of a split path."""

    indicator: int
    path_id: int
    update_idx: int

    def __post_init__(self) -> None:
        _checked_index("indicator", self.indicator)
        _checked_index("path_id", self.path_id)
        _checked_index("update_idx", self.update_idx)

    def __str__(self) -> str:
        return f"intermediate root {self.path_id} {self.indicator} {self.update_idx}"

    def encode(self) -> bytes:
        return (
            _encode_u64(self.indicator)
            + _encode_u64(self.path_id)
            + _encode_u64(self.update_idx)
        )

    @classmethod
    def _read(cls, reader: _Reader) -> IntermediateRootAddress:
        return cls(reader.u64(), reader.u64(), reader.u64())


@dataclass(frozen=True)
class LeafHashAddress:
    """Address of the hash of a given leaf."""

    leaf: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "leaf", _checked_leaf(self.leaf))

    def __str__(self) -> str:
        return f"leaf hash {self.leaf.hex()}"

    def encode(self) -> bytes:
        return self.leaf

    @classmethod
    def _read(cls, reader: _Reader) -> LeafHashAddress:
        return cls(reader.take(LEAF_SIZE))


@dataclass(frozen=True)
class IndexAddress:
    """Address of part ``indicator`` of the tree index of a leaf."""

    indicator: int
    leaf: bytes

    def __post_init__(self) -> None:
        _checked_index("indicator", self.indicator)
        object.__setattr__(self, "leaf", _checked_leaf(self.leaf))

    def __str__(self) -> str:
        return f"index {self.indicator} {self.leaf[:32].hex()}"

    def encode(self) -> bytes:
        return _encode_u64(self.indicator) + self.leaf

    @classmethod
    def _read(cls, reader: _Reader) -> IndexAddress:
        return cls(reader.u64(), reader.take(LEAF_SIZE))


NodeAddress = Union[
    PathRootAddress,
    LeafHashAddress,
    NullLeafAddress,
    FinalRootAddress,
    InitialRootAddress,
    IntermediateRootAddress,
]

_NODE_TYPE_NAMES: dict[type, str] = {
    PathRootAddress: "path root",
    LeafHashAddress: "leaf hash",
    NullLeafAddress: "null leaf",
    FinalRootAddress: "final root",
    InitialRootAddress: "initial leaf",
    IntermediateRootAddress: "intermediate root",
}
_NODE_TYPES_BY_NAME = {name: cls for cls, name in _NODE_TYPE_NAMES.items()}


@dataclass(frozen=True)
class NodeAddressBytes:
    """A node address encoded as bytes, tagged with its kind."""

    data: bytes
    node_type: str

    def encode(self) -> bytes:
        return _encode_blob(bytes(self.data)) + _encode_text(self.node_type)

    @classmethod
    def decode(cls, data) -> NodeAddressBytes:
        return cls._read(_Reader(data))

    @classmethod
    def _read(cls, reader: _Reader) -> NodeAddressBytes:
        return cls(reader.blob(), reader.text())


def node_address_to_bytes(node: NodeAddress) -> NodeAddressBytes:
    """Encode a node address together with its kind."""
    try:
        node_type = _NODE_TYPE_NAMES[type(node)]
    except KeyError:
        raise TypeError(f"not a node address: {node!r}") from None
    return NodeAddressBytes(node.encode(), node_type)


def bytes_to_node_address(data: NodeAddressBytes) -> NodeAddress:
    """Decode a node address produced by :func:`node_address_to_bytes`."""
    try:
        cls = _NODE_TYPES_BY_NAME[data.node_type]
    except KeyError:
        raise ValueError("wrong node address type") from None
    return cls._read(_Reader(data.data))


# --------------------------------------------------------------------------
# Primitives
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class EqualityPrimitive:
    """Checks that the values at two addresses are equal."""

    update_idx: int
    addr1: NodeAddressBytes
    addr2: NodeAddressBytes

    def __post_init__(self) -> None:
        _checked_index("update_idx", self.update_idx)

    def encode(self) -> bytes:
        return _encode_u64(self.update_idx) + self.addr1.encode() + self.addr2.encode()

    @classmethod
    def _read(cls, reader: _Reader) -> EqualityPrimitive:
        return cls(reader.u64(), NodeAddressBytes._read(reader), NodeAddressBytes._read(reader))


@dataclass(frozen=True)
class GetIndexPrimitive:
    """Computes the split tree index of a leaf."""

    update_idx: int
    leaf: bytes

    def __post_init__(self) -> None:
        _checked_index("update_idx", self.update_idx)
        object.__setattr__(self, "leaf", _checked_leaf(self.leaf))

    def encode(self) -> bytes:
        return _encode_u64(self.update_idx) + self.leaf

    @classmethod
    def _read(cls, reader: _Reader) -> GetIndexPrimitive:
        return cls(reader.u64(), reader.take(LEAF_SIZE))


def _encode_path(path: MerkleTreePath) -> bytes:
    parts = [_encode_u64(len(path.path))]
    for node in path.path:
        node = bytes(node)
        if len(node) != INNER_HASH_SIZE:
            raise ValueError(
                f"path node must be {INNER_HASH_SIZE} bytes long, got {len(node)}"
            )
        parts.append(node)
    return b"".join(parts)


def _read_path(reader: _Reader) -> MerkleTreePath:
    count = reader.u64()
    return MerkleTreePath([reader.take(INNER_HASH_SIZE) for _ in range(count)])


@dataclass(frozen=True)
class ComputePathPrimitive:
    """Hashes one part of a split Merkle path from one address to another."""

    update_idx: int
    path_id: int
    indicator: int
    initial_value_addr: NodeAddressBytes
    final_value_addr: NodeAddressBytes
    index_addr: IndexAddress
    path: MerkleTreePath = field(default_factory=MerkleTreePath)

    def __post_init__(self) -> None:
        _checked_index("update_idx", self.update_idx)
        _checked_index("path_id", self.path_id)
        _checked_index("indicator", self.indicator)

    def encode(self) -> bytes:
        return b"".join(
            (
                _encode_u64(self.update_idx),
                _encode_u64(self.path_id),
                _encode_u64(self.indicator),
                self.initial_value_addr.encode(),
                self.final_value_addr.encode(),
                self.index_addr.encode(),
                _encode_path(self.path),
            )
        )

    @classmethod
    def _read(cls, reader: _Reader) -> ComputePathPrimitive:
        update_idx = reader.u64()
        path_id = reader.u64()
        indicator = reader.u64()
        initial = NodeAddressBytes._read(reader)
        final = NodeAddressBytes._read(reader)
        index_addr = IndexAddress._read(reader)
        path = _read_path(reader)
        return cls(update_idx, path_id, indicator, initial, final, index_addr, path)


@dataclass(frozen=True)
class HashLeafPrimitive:
    """Hashes a leaf into its node hash."""

    leaf: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "leaf", _checked_leaf(self.leaf))

    def encode(self) -> bytes:
        return self.leaf

    @classmethod
    def _read(cls, reader: _Reader) -> HashLeafPrimitive:
        return cls(reader.take(LEAF_SIZE))


@dataclass(frozen=True)
class PaddingPrimitive:
    """Does nothing; fills a subcircuit slot."""

    def encode(self) -> bytes:
        return b""

    @classmethod
    def _read(cls, reader: _Reader) -> PaddingPrimitive:
        return cls()


@dataclass(frozen=True)
class WritePublicParameterPrimitive:
    """Writes the initial root, final root and null leaf to memory."""

    def encode(self) -> bytes:
        return b""

    @classmethod
    def _read(cls, reader: _Reader) -> WritePublicParameterPrimitive:
        return cls()


PrimitiveSubcircuit = Union[
    EqualityPrimitive,
    GetIndexPrimitive,
    ComputePathPrimitive,
    HashLeafPrimitive,
    PaddingPrimitive,
    WritePublicParameterPrimitive,
]

_PRIMITIVE_TYPE_NAMES: dict[type, str] = {
    EqualityPrimitive: "equality",
    GetIndexPrimitive: "get index",
    ComputePathPrimitive: "compute path",
    HashLeafPrimitive: "hash leaf",
    PaddingPrimitive: "padding",
    WritePublicParameterPrimitive: "write pp",
}
_PRIMITIVES_BY_NAME = {name: cls for cls, name in _PRIMITIVE_TYPE_NAMES.items()}


def primitive_type(primitive: PrimitiveSubcircuit) -> str:
    """Return the name of a primitive's kind."""
    try:
        return _PRIMITIVE_TYPE_NAMES[type(primitive)]
    except KeyError:
        raise TypeError(f"not a subcircuit primitive: {primitive!r}") from None


def primitive_update_idx(primitive: PrimitiveSubcircuit) -> int:
    """Return the update a primitive belongs to, or -1 for kinds that carry none."""
    if isinstance(primitive, (EqualityPrimitive, ComputePathPrimitive)):
        return primitive.update_idx
    return -1


@dataclass(frozen=True)
class PrimitiveSubcircuitBytes:
    """A primitive encoded as bytes, tagged with its kind."""

    data: bytes
    node_type: str

    def encode(self) -> bytes:
        return _encode_blob(bytes(self.data)) + _encode_text(self.node_type)

    @classmethod
    def decode(cls, data) -> PrimitiveSubcircuitBytes:
        return cls._read(_Reader(data))

    @classmethod
    def _read(cls, reader: _Reader) -> PrimitiveSubcircuitBytes:
        return cls(reader.blob(), reader.text())


def primitive_to_bytes(primitive: PrimitiveSubcircuit) -> PrimitiveSubcircuitBytes:
    """Encode a primitive together with its kind."""
    return PrimitiveSubcircuitBytes(primitive.encode(), primitive_type(primitive))


def bytes_to_primitive(data: PrimitiveSubcircuitBytes) -> PrimitiveSubcircuit:
    """Decode a primitive produced by :func:`primitive_to_bytes`."""
    try:
        cls = _PRIMITIVES_BY_NAME[data.node_type]
    except KeyError:
        raise ValueError("wrong primitive type") from None
    return cls._read(_Reader(data.data))


# --------------------------------------------------------------------------
# Subcircuits
# --------------------------------------------------------------------------


@dataclass
class SubCircuit:
    """A sequence of primitives proved together in one subcircuit."""

    primitives: list = field(default_factory=list)

    def get_type(self) -> str:
        """Return the kinds of the primitives, joined by commas."""
        return ", ".join(primitive_type(p) for p in self.primitives)

    def get_update_idx(self) -> list[int]:
        """Return the update index of each primitive, -1 where it has none."""
        return [primitive_update_idx(p) for p in self.primitives]


@dataclass
class SubcircuitBytes:
    """A subcircuit as a list of encoded primitives."""

    primitives: list = field(default_factory=list)

    def encode(self) -> bytes:
        return _encode_u64(len(self.primitives)) + b"".join(
            p.encode() for p in self.primitives
        )

    @classmethod
    def decode(cls, data) -> SubcircuitBytes:
        reader = _Reader(data)
        count = reader.u64()
        return cls([PrimitiveSubcircuitBytes._read(reader) for _ in range(count)])


def subcircuit_to_bytes(subcircuit: SubCircuit) -> SubcircuitBytes:
    """Encode every primitive of a subcircuit."""
    return SubcircuitBytes([primitive_to_bytes(p) for p in subcircuit.primitives])


def bytes_to_subcircuit(data: SubcircuitBytes) -> SubCircuit:
    """Decode a subcircuit produced by :func:`subcircuit_to_bytes`."""
    return SubCircuit([bytes_to_primitive(p) for p in data.primitives])