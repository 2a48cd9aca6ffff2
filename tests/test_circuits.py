import pytest

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
    NodeAddressBytes,
    NullLeafAddress,
    PaddingPrimitive,
    PathRootAddress,
    PrimitiveSubcircuitBytes,
    SubCircuit,
    SubcircuitBytes,
    WritePublicParameterPrimitive,
    bytes_to_node_address,
    bytes_to_primitive,
    bytes_to_subcircuit,
    node_address_to_bytes,
    primitive_to_bytes,
    primitive_type,
    primitive_update_idx,
    subcircuit_to_bytes,
)
from keydirtree.sparse_tree import MerkleTreePath

BIG = 2**64 - 1


def default_leaf():
    return bytes(LEAF_SIZE)


@pytest.fixture
def final_root_bytes():
    return node_address_to_bytes(FinalRootAddress())


@pytest.fixture
def all_primitives(final_root_bytes):
    return [
        WritePublicParameterPrimitive(),
        GetIndexPrimitive(update_idx=987654321, leaf=default_leaf()),
        HashLeafPrimitive(leaf=default_leaf()),
        ComputePathPrimitive(
            update_idx=BIG,
            path_id=17,
            indicator=3,
            initial_value_addr=final_root_bytes,
            final_value_addr=final_root_bytes,
            index_addr=IndexAddress(indicator=12345, leaf=default_leaf()),
            path=MerkleTreePath.default(128),
        ),
        PaddingPrimitive(),
        EqualityPrimitive(update_idx=42, addr1=final_root_bytes, addr2=final_root_bytes),
    ]


@pytest.mark.parametrize(
    "address",
    [
        IntermediateRootAddress(indicator=BIG, path_id=7, update_idx=123456789),
        FinalRootAddress(),
        InitialRootAddress(),
        NullLeafAddress(),
        LeafHashAddress(leaf=default_leaf()),
        PathRootAddress(path_id=99, update_idx=BIG),
    ],
)
def test_node_address_round_trip(address):
    assert bytes_to_node_address(node_address_to_bytes(address)) == address


def test_primitive_round_trip(all_primitives):
    for primitive in all_primitives:
        assert bytes_to_primitive(primitive_to_bytes(primitive)) == primitive


def test_subcircuit_round_trip(all_primitives):
    subcircuit = SubCircuit(all_primitives)
    assert bytes_to_subcircuit(subcircuit_to_bytes(subcircuit)) == subcircuit


def test_subcircuit_bytes_encode_decode(all_primitives):
    encoded = subcircuit_to_bytes(SubCircuit(all_primitives))
    assert SubcircuitBytes.decode(encoded.encode()) == encoded


def test_node_address_bytes_encode_decode():
    encoded = node_address_to_bytes(PathRootAddress(1, 2))
    assert NodeAddressBytes.decode(encoded.encode()) == encoded
    primitive = primitive_to_bytes(PaddingPrimitive())
    assert PrimitiveSubcircuitBytes.decode(primitive.encode()) == primitive


def test_path_root_encoding_is_little_endian_words():
    encoded = node_address_to_bytes(PathRootAddress(path_id=1, update_idx=2))
    assert encoded == NodeAddressBytes(
        (1).to_bytes(8, "little") + (2).to_bytes(8, "little"), "path root"
    )


def test_empty_addresses_encode_to_nothing():
    assert node_address_to_bytes(NullLeafAddress()) == NodeAddressBytes(b"", "null leaf")
    assert node_address_to_bytes(InitialRootAddress()).node_type == "initial leaf"
    assert node_address_to_bytes(FinalRootAddress()).data == b""


def test_leaf_hash_encoding_is_raw_leaf():
    leaf = bytes(range(LEAF_SIZE))
    assert node_address_to_bytes(LeafHashAddress(leaf)).data == leaf


def test_address_strings():
    leaf = bytes([0xAB]) * LEAF_SIZE
    assert str(NullLeafAddress()) == "null leaf"
    assert str(InitialRootAddress()) == "initial root"
    assert str(FinalRootAddress()) == "final root"
    assert str(PathRootAddress(path_id=1, update_idx=5)) == "path root 1 5"
    assert (
        str(IntermediateRootAddress(indicator=2, path_id=1, update_idx=5))
        == "intermediate root 1 2 5"
    )
    assert str(LeafHashAddress(leaf)) == "leaf hash " + "ab" * LEAF_SIZE
    assert str(IndexAddress(3, leaf)) == "index 3 " + "ab" * 32


def test_subcircuit_type_and_update_idx(final_root_bytes):
    eq = EqualityPrimitive(update_idx=4, addr1=final_root_bytes, addr2=final_root_bytes)
    subcircuit = SubCircuit([eq, HashLeafPrimitive(default_leaf()), PaddingPrimitive()])
    assert subcircuit.get_type() == "equality, hash leaf, padding"
    assert subcircuit.get_update_idx() == [4, -1, -1]


def test_primitive_type_names(all_primitives):
    assert [primitive_type(p) for p in all_primitives] == [
        "write pp",
        "get index",
        "hash leaf",
        "compute path",
        "padding",
        "equality",
    ]
    assert [primitive_update_idx(p) for p in all_primitives] == [-1, -1, -1, BIG, -1, 42]


def test_unknown_node_type_rejected():
    with pytest.raises(ValueError, match="wrong node address type"):
        bytes_to_node_address(NodeAddressBytes(b"", "mystery"))


def test_unknown_primitive_type_rejected():
    with pytest.raises(ValueError, match="wrong primitive type"):
        bytes_to_primitive(PrimitiveSubcircuitBytes(b"", "mystery"))


def test_truncated_data_rejected():
    with pytest.raises(ValueError, match="unexpected end of data"):
        bytes_to_node_address(NodeAddressBytes(b"\x01\x00", "path root"))


def test_wrong_leaf_size_rejected():
    with pytest.raises(ValueError):
        LeafHashAddress(bytes(LEAF_SIZE - 1))


def test_out_of_range_index_rejected():
    with pytest.raises(ValueError):
        PathRootAddress(path_id=-1, update_idx=0)
    with pytest.raises(ValueError):
        IntermediateRootAddress(indicator=2**64, path_id=0, update_idx=0)


def test_compute_path_bad_node_size_rejected(final_root_bytes):
    primitive = ComputePathPrimitive(
        update_idx=0,
        path_id=0,
        indicator=0,
        initial_value_addr=final_root_bytes,
        final_value_addr=final_root_bytes,
        index_addr=IndexAddress(0, default_leaf()),
        path=MerkleTreePath([b"\x00" * 5]),
    )
    with pytest.raises(ValueError):
        primitive_to_bytes(primitive)