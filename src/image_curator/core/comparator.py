"""Distance between perceptual signatures."""

from typing import Sequence

from image_curator.core.errors import LengthMismatchError


def hamming_distance(a: Sequence, b: Sequence) -> int:
    """
    Count the positions at which two signatures differ.

    Args:
        a: First signature
        b: Second signature, same length as ``a``

    Returns:
        Number of differing positions

    Raises:
        LengthMismatchError: If the signatures differ in length
    """
    if len(a) != len(b):
        raise LengthMismatchError(len(a), len(b))
    return sum(1 for x, y in zip(a, b) if x != y)
