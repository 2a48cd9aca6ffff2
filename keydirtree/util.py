"""Helpers for dividing Merkle paths and index bit vectors into equal parts."""

from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")

ALLOWED_SPLIT_FACTORS = frozenset({2, 4, 8, 16})


def split(vector: Sequence[T], split_factor: int) -> list[list[T]]:
    """Divide ``vector`` into ``split_factor`` consecutive parts by repeated halving.

    Each round halves a shared cut length and splits every current part at it,
    so with an odd length the trailing part of each split is the longer one.
    Raises ValueError unless ``split_factor`` is 2, 4, 8 or 16.
    """
    if split_factor not in ALLOWED_SPLIT_FACTORS:
        raise ValueError("invalid parameters")
    length = len(vector)
    parts: list[list[T]] = [list(vector)]
    while split_factor != 1:
        length //= 2
        split_factor //= 2
        parts = [half for part in parts for half in (part[:length], part[length:])]
    return parts