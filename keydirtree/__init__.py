"""Sparse Merkle trees, key directory updates and their subcircuit layouts."""

__version__ = "0.1.0"
__all__ = ["circuits", "hashing", "sparse_tree", "updates", "util", "vkd", "vm"]