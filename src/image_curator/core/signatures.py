"""
Reference signatures and the store they are loaded into.

A signature is the bit-string form of a 64-bit perceptual hash
(``"0110..."``). The store document is a flat JSON object mapping a reference
image name to its signature; document order decides tie-break precedence
when classifying.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from image_curator.core.errors import CuratorError, LoadError

logger = logging.getLogger(__name__)

BIT_CHARS = frozenset("01")


@dataclass(frozen=True)
class Signature:
    """Immutable perceptual fingerprint, one character per bit."""

    bits: str

    def __post_init__(self) -> None:
        if not isinstance(self.bits, str) or not self.bits:
            raise ValueError("Signature must be a non-empty string")
        if not set(self.bits) <= BIT_CHARS:
            raise ValueError(f"Signature may only contain '0' and '1': {self.bits!r}")

    @classmethod
    def from_hex(cls, hex_hash: str) -> "Signature":
        """
        Build a signature from a hexadecimal hash (as imagededup returns it).

        Args:
            hex_hash: Hash string, 4 bits per hex digit

        Returns:
            Signature with ``4 * len(hex_hash)`` bits
        """
        width = len(hex_hash) * 4
        return cls(format(int(hex_hash, 16), f"0{width}b"))

    def __len__(self) -> int:
        return len(self.bits)

    def __iter__(self) -> Iterator[str]:
        return iter(self.bits)

    def __getitem__(self, index):
        return self.bits[index]

    def __str__(self) -> str:
        return self.bits


class SignatureStore:
    """Ordered, read-only mapping of reference name to signature."""

    def __init__(self, entries: Iterable[Tuple[str, Signature]] = ()):
        self._entries: Dict[str, Signature] = dict(entries)
        lengths = {len(signature) for signature in self._entries.values()}
        if len(lengths) > 1:
            raise LoadError(
                f"Reference signatures have inconsistent lengths: {sorted(lengths)}"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "SignatureStore":
        """
        Validate a decoded store document.

        Raises:
            LoadError: If any entry is not a valid signature
        """
        entries: List[Tuple[str, Signature]] = []
        for name, value in data.items():
            if not isinstance(value, str):
                raise LoadError(f"Signature for '{name}' is not a string")
            try:
                entries.append((str(name), Signature(value)))
            except ValueError as e:
                raise LoadError(f"Invalid signature for '{name}': {e}") from e
        return cls(entries)

    def items(self) -> Iterator[Tuple[str, Signature]]:
        """Entries in source order."""
        return iter(self._entries.items())

    def names(self) -> List[str]:
        return list(self._entries)

    def get(self, name: str) -> Optional[Signature]:
        return self._entries.get(name)

    @property
    def signature_length(self) -> Optional[int]:
        """Common length of all reference signatures (None when empty)."""
        for signature in self._entries.values():
            return len(signature)
        return None

    def to_dict(self) -> Dict[str, str]:
        return {name: signature.bits for name, signature in self._entries.items()}

    def __iter__(self) -> Iterator[Tuple[str, Signature]]:
        return self.items()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries


def load_signature_store(path: Path) -> SignatureStore:
    """
    Load reference signatures from a JSON document.

    Args:
        path: Path to the signature document (e.g. master-hashes.json)

    Returns:
        Validated SignatureStore

    Raises:
        LoadError: If the file is missing, not JSON, or holds malformed entries
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise LoadError(f"Signature file not found: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise LoadError(f"Could not read signature file {path}: {e}") from e

    if not isinstance(data, dict):
        raise LoadError(f"Signature file {path} must contain a JSON object")

    store = SignatureStore.from_dict(data)
    if not len(store):
        logger.warning(f"Signature file {path} holds no reference signatures")
    logger.info(f"Loaded {len(store)} reference signatures from {path}")
    return store


def save_signature_store(store: SignatureStore, path: Path) -> None:
    """Write the store as a JSON document, preserving entry order."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(store.to_dict(), f, indent=2)


def generate_signature_store(
    image_paths: Iterable[Path],
    compute: Callable[[bytes], Signature],
) -> SignatureStore:
    """
    Hash reference images into a new store, keyed by file name.

    Images that fail to hash are logged and left out.

    Args:
        image_paths: Reference image files, in the order they should be stored
        compute: Turns raw image bytes into a signature

    Returns:
        SignatureStore with one entry per successfully hashed image
    """
    entries: List[Tuple[str, Signature]] = []
    for image_path in image_paths:
        try:
            signature = compute(image_path.read_bytes())
        except (OSError, CuratorError) as e:
            logger.error(f"Error processing {image_path.name}: {e}")
            continue
        entries.append((image_path.name, signature))
        logger.info(f"- Generated hash for {image_path.name}: {signature}")
    return SignatureStore(entries)
