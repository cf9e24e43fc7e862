"""Local archive of token images."""

import logging
from io import BytesIO
from pathlib import Path
from typing import Set

from PIL import Image

logger = logging.getLogger(__name__)


class ImageCache:
    """Stores one JPEG per token as ``<directory>/<token id>.jpg``."""

    SUFFIX = ".jpg"

    def __init__(self, directory: Path):
        self.directory = directory

    def ensure(self) -> None:
        """Create the cache directory if missing."""
        if not self.directory.exists():
            self.directory.mkdir(parents=True)
            logger.info(f"Created directory: {self.directory}")

    def path_for(self, item_id: str) -> Path:
        return self.directory / f"{item_id}{self.SUFFIX}"

    def exists(self, item_id: str) -> bool:
        return self.path_for(item_id).exists()

    def save(self, item_id: str, image_bytes: bytes) -> None:
        """
        Re-encode image bytes as JPEG and write them to the cache.

        Raises:
            OSError: If the bytes are not a readable image or the write fails
        """
        self.ensure()
        path = self.path_for(item_id)
        try:
            with Image.open(BytesIO(image_bytes)) as img:
                img.convert("RGB").save(path, "JPEG", quality=95)
        except Image.DecompressionBombError as e:
            raise OSError(f"Image for token #{item_id} is too large to cache: {e}") from e
        logger.debug(f"Saved image: {path}")

    def cached_ids(self) -> Set[str]:
        if not self.directory.exists():
            return set()
        return {p.stem for p in self.directory.glob(f"*{self.SUFFIX}")}
