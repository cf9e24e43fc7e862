"""Remote collaborators: token registry, metadata, and image hashing."""

from image_curator.platforms.alchemy import AlchemyEnumerator
from image_curator.platforms.hashing import SignatureComputer
from image_curator.platforms.metadata import MetadataResolver

__all__ = ["AlchemyEnumerator", "MetadataResolver", "SignatureComputer"]
