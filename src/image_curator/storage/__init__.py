"""Persistence backends: local image cache and the published list."""

from image_curator.storage.cache import ImageCache
from image_curator.storage.gist import GistListStore

__all__ = ["GistListStore", "ImageCache"]
