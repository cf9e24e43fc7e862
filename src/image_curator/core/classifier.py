"""Classify a single item against the reference signatures."""

import logging
from dataclasses import dataclass
from typing import Optional

from image_curator.core.comparator import hamming_distance
from image_curator.core.signatures import Signature, SignatureStore

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 5


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one item."""

    item_id: str
    matched: bool
    matched_name: Optional[str] = None
    distance: Optional[int] = None


def classify(
    item_id: str,
    signature: Signature,
    store: SignatureStore,
    threshold: int = DEFAULT_THRESHOLD,
) -> ClassificationResult:
    """
    Match a signature against the store, first sufficiently close reference wins.

    References are tried in store order and the search stops at the first one
    within ``threshold``, so a closer reference later in the store is never
    considered.

    Args:
        item_id: Identifier of the item being classified
        signature: The item's perceptual signature
        store: Reference signatures
        threshold: Maximum Hamming distance that still counts as a match

    Returns:
        ClassificationResult for the item

    Raises:
        ValueError: If threshold is negative
        LengthMismatchError: If the signature length differs from the references
    """
    if threshold < 0:
        raise ValueError(f"Threshold must be non-negative, got {threshold}")

    for name, reference in store.items():
        distance = hamming_distance(signature, reference)
        if distance <= threshold:
            logger.info(
                f"  Match found! Token #{item_id} is similar to '{name}'. "
                f"Distance: {distance}."
            )
            return ClassificationResult(
                item_id=item_id, matched=True, matched_name=name, distance=distance
            )

    logger.debug(f"  Token #{item_id} matched no reference signature")
    return ClassificationResult(item_id=item_id, matched=False)
