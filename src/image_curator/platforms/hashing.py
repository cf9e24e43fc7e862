"""Download token images and compute their perceptual signatures."""

import logging
from io import BytesIO
from typing import Optional

import numpy as np
import requests
from PIL import Image

try:
    from imagededup.methods import PHash
    IMAGEDEDUP_AVAILABLE = True
except ImportError:
    IMAGEDEDUP_AVAILABLE = False
    PHash = None

from image_curator.core.errors import HashError
from image_curator.core.signatures import Signature

logger = logging.getLogger(__name__)


class SignatureComputer:
    """Computes 64-bit pHash signatures with imagededup."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 30):
        """
        Initialize the signature computer.

        Args:
            session: Optional requests session for image downloads
            timeout: Request timeout in seconds
        """
        if not IMAGEDEDUP_AVAILABLE:
            raise ImportError(
                "imagededup not installed. Install with: pip install imagededup"
            )
        self.session = session or requests.Session()
        self.timeout = timeout
        self.hasher = PHash(verbose=False)

    def download(self, image_url: str) -> bytes:
        """
        Fetch raw image bytes.

        Raises:
            HashError: If the image cannot be downloaded
        """
        try:
            response = self.session.get(image_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise HashError(f"Could not download image {image_url}: {e}") from e
        return response.content

    def compute_from_bytes(self, data: bytes) -> Signature:
        """
        Decode image bytes and compute their signature.

        Raises:
            HashError: If the bytes cannot be decoded or hashed
        """
        try:
            with Image.open(BytesIO(data)) as img:
                array = np.asarray(img.convert("RGB"))
            hex_hash = self.hasher.encode_image(image_array=array)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise HashError(f"Could not decode image: {e}") from e

        if not hex_hash:
            raise HashError("Perceptual hash could not be computed")
        return Signature.from_hex(hex_hash)

    def compute(self, image_url: str) -> Signature:
        """Download an image and compute its signature."""
        return self.compute_from_bytes(self.download(image_url))
