"""Exception taxonomy for curator runs."""


class CuratorError(Exception):
    """Base class for all curator errors."""


class LoadError(CuratorError):
    """Raised when the reference signature data is missing or malformed."""


class LengthMismatchError(CuratorError):
    """Raised when two signatures of different length are compared."""

    def __init__(self, left: int, right: int):
        super().__init__(f"Cannot compare signatures of length {left} and {right}")
        self.left = left
        self.right = right


class EnumerationError(CuratorError):
    """Raised when the collection cannot be enumerated."""


class ResolutionError(CuratorError):
    """Raised when an item's image location cannot be resolved."""


class HashError(CuratorError):
    """Raised when an image cannot be fetched or decoded for hashing."""


class PublishError(CuratorError):
    """Raised when the membership list cannot be published."""
