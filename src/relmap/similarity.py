"""Cosine similarity between embedding vectors."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = ["cosine_similarity"]


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """Return the cosine of the angle between two vectors, in ``[-1, 1]``.

    A zero-magnitude vector has no direction, so its similarity to anything
    is ``0.0``.

    Raises:
        ValueError: If the vectors differ in length.
    """
    if len(vec_a) != len(vec_b):
        raise ValueError(f"Vector dimensions differ: {len(vec_a)} != {len(vec_b)}")

    dot = math.fsum(a * b for a, b in zip(vec_a, vec_b, strict=True))
    norm_a = math.sqrt(math.fsum(a * a for a in vec_a))
    norm_b = math.sqrt(math.fsum(b * b for b in vec_b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    # Rounding can push |cos| a hair past 1 for parallel vectors
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))
