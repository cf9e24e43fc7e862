"""File scanner for discovering reference images in a directory."""

import logging
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)


class ImageScanner:
    """Finds image files that can be hashed into reference signatures."""

    IMAGE_EXTENSIONS = {
        ".jpg",
        ".jpeg",
        ".png",
        ".gif",
        ".bmp",
        ".webp",
        ".tiff",
        ".tif",
    }

    def scan_directory(
        self, directory: Path, recursive: bool = False, skip_hidden: bool = True
    ) -> List[Path]:
        """
        Scan a directory for image files.

        Args:
            directory: Directory path to scan
            recursive: Recursively scan subdirectories
            skip_hidden: Skip hidden files and folders

        Returns:
            Image file paths sorted by path, so signature order is stable

        Raises:
            FileNotFoundError: If directory doesn't exist
            ValueError: If the path is not a directory
        """
        if not directory.exists():
            raise FileNotFoundError(f"Directory not found: {directory}")

        if not directory.is_dir():
            raise ValueError(f"Not a directory: {directory}")

        logger.info(f"Scanning directory: {directory}")

        candidates = directory.rglob("*") if recursive else directory.iterdir()
        images = [
            path
            for path in candidates
            if path.is_file()
            and not path.is_symlink()
            and self._is_image_file(path)
            and not (skip_hidden and self._is_hidden(path, directory))
        ]

        logger.info(f"Found {len(images)} images to process...")
        return sorted(images)

    def _is_image_file(self, file_path: Path) -> bool:
        return file_path.suffix.lower() in self.IMAGE_EXTENSIONS

    @staticmethod
    def _is_hidden(path: Path, root: Path) -> bool:
        return any(part.startswith(".") for part in path.relative_to(root).parts)
