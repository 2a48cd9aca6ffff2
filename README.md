# keydirtree

Building blocks for a verifiable key directory: a sparse Merkle tree over
truncated SHA-256 digests, Merkle paths that can be split into parts, the
subcircuit layout that describes a batch of directory updates, and a byte
encoding for that layout.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `keydirtree.hashing`: `hash_value` returns the 32-byte SHA-256 digest of a
  byte string; `hash_leaf` truncates it to `INNER_HASH_SIZE` (27) bytes;
  `hash_inner_node` hashes two 27-byte node hashes into their parent. The
  `HashType` enum names two hash families, `SHA256` and `POSEIDON`, but every
  function computes with SHA-256 (`HASH_TYPE` is `HashType.SHA256`).
- `keydirtree.util`: `split(vector, split_factor)` divides a sequence into 2,
  4, 8 or 16 consecutive parts by repeated halving; any other factor raises
  `ValueError`.
- `keydirtree.sparse_tree`: `SparseMerkleTree(depth)` stores only the nodes
  that were written and uses precomputed hashes for empty subtrees. It offers
  `insert`, `lookup_internal_node`, `lookup_path` and the static
  `get_index(leaf_hash, depth)`, which takes a leaf position from the first
  `depth // 8` bytes of a 32-byte digest. `MerkleTreePath` has
  `compute_root`, `verify`, `split` and `MerkleTreePath.default(depth)`.
  Also `MerkleIndex` (with `to_bit_vector`), `NodeType` (`LEAF`,
  `INTERNAL_NODE`), `MerkleTreeError` and `is_even`.
- `keydirtree.circuits`: node addresses (`PathRootAddress`,
  `LeafHashAddress`, `NullLeafAddress`, `FinalRootAddress`,
  `InitialRootAddress`, `IntermediateRootAddress`, `IndexAddress`),
  primitives (`EqualityPrimitive`, `GetIndexPrimitive`,
  `ComputePathPrimitive`, `HashLeafPrimitive`, `PaddingPrimitive`,
  `WritePublicParameterPrimitive`), `SubCircuit` (with `get_type` and
  `get_update_idx`), and the encoders `node_address_to_bytes`,
  `bytes_to_node_address`, `primitive_to_bytes`, `bytes_to_primitive`,
  `subcircuit_to_bytes` and `bytes_to_subcircuit`. `NodeAddressBytes`,
  `PrimitiveSubcircuitBytes` and `SubcircuitBytes` each have `encode()` and
  `decode(data)` for a flat byte string.
- `keydirtree.updates`: `VkdUpdate` and `VkdAppend`, `concat(username, key,
  counter)` building a 66-byte leaf, `default_leaf`,
  `get_previous_root_from_update_idx`, `get_node_addresses` and
  `vkd_update_to_subcircuit`, which lays out a non-empty list of updates as
  six padding subcircuits, one that writes the public parameters, the
  subcircuits of each update, and a final root check. The tree depth is
  `DEPTH` (128) and paths are split into `SPLIT_FACTOR` (4) parts.
- `keydirtree.vkd`: `VerifiableKeyDirectoryCircuitParams` and
  `VerifiableKeyDirectoryCircuit`. `random(params)` builds a batch that
  appends one user and then updates that user's key repeatedly, sized to fill
  `2 ** log_num_subcircuits` subcircuit slots (at least 4); `verify(pp)`
  replays the batch from the initial root; `count_appends_updates` returns
  `(appends, updates)`. `get_random_key_value` picks a random item of a
  mapping.
- `keydirtree.vm`: `VirtualMachine` with `REGISTER_NUM` registers and
  placeholder operations (`execute_dummy_operation`, `run`),
  `VirtualMachineParameters`, and `vm_to_subcircuits`, which returns one
  `Circuit` of `DummyCircuit` entries per subcircuit slot.

## Example

```python
from keydirtree.sparse_tree import NodeType, SparseMerkleTree

tree = SparseMerkleTree(64)
leaf = bytes([1]) * 32
index = SparseMerkleTree.get_index(leaf, 64)
tree.insert(index, leaf, NodeType.LEAF)

path = tree.lookup_path(index)
assert path.verify(tree.root, leaf, index.to_bit_vector(), NodeType.LEAF)
```

A random key directory batch and its check:

```python
from keydirtree.sparse_tree import SparseMerkleTree
from keydirtree.vkd import (
    VerifiableKeyDirectoryCircuit,
    VerifiableKeyDirectoryCircuitParams,
)

tree = SparseMerkleTree(128)
null_leaf = tree.sparse_initial_hashes[128]
params = VerifiableKeyDirectoryCircuitParams(log_num_subcircuits=5, null_leaf=null_leaf)
circuit = VerifiableKeyDirectoryCircuit.random(params)
assert circuit.verify(null_leaf)
print(circuit.count_appends_updates())  # (1, 2)
```

## What this package does not do

It describes subcircuits and their memory addresses but does not generate
constraints, build or check proofs, or run any prover. Only SHA-256 hashing
is computed; Poseidon is named in `HashType` but not available. There is no
command-line tool and no persistent storage: trees live in memory.