"""
Image Curator - perceptual-similarity classification of collection images.

Rebuilds, on every run, the list of tokens whose image resembles one of a
small set of reference images, and republishes that list only when it changed.
"""

__version__ = "0.1.0"
__author__ = "Image Curator Contributors"

from image_curator.core.coordinator import CuratorSettings, RunCoordinator
from image_curator.core.signatures import SignatureStore, load_signature_store

__all__ = [
    "CuratorSettings",
    "RunCoordinator",
    "SignatureStore",
    "load_signature_store",
    "__version__",
]
