"""Archive images of tokens that are not in the local cache yet."""

import logging
from dataclasses import dataclass, field
from typing import List

from image_curator.core.errors import HashError, ResolutionError
from image_curator.core.interfaces import Enumerator, MetadataResolver, SignatureComputer
from image_curator.storage.cache import ImageCache

logger = logging.getLogger(__name__)


@dataclass
class DownloadReport:
    already_cached: int = 0
    downloaded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class ImageDownloader:
    """Downloads the image of every uncached token in the collection."""

    def __init__(
        self,
        enumerator: Enumerator,
        resolver: MetadataResolver,
        computer: SignatureComputer,
        cache: ImageCache,
    ):
        self.enumerator = enumerator
        self.resolver = resolver
        self.computer = computer
        self.cache = cache

    def run(self) -> DownloadReport:
        report = DownloadReport()
        self.cache.ensure()
        cached = self.cache.cached_ids()
        logger.info(f"Found {len(cached)} images already downloaded.")

        for item in self.enumerator:
            item_id = str(item.id)
            if item_id in cached:
                report.already_cached += 1
                continue

            logger.info(f"- Found new token #{item_id}. Processing...")
            try:
                image_url = self.resolver.resolve(item.token_uri)
                self.cache.save(item_id, self.computer.download(image_url))
            except (ResolutionError, HashError, OSError) as e:
                logger.error(f"  Failed to process token #{item_id}: {e}")
                report.failed.append(item_id)
                continue

            logger.info(f"  Saved {self.cache.path_for(item_id)}")
            report.downloaded.append(item_id)

        if report.downloaded:
            logger.info(f"Successfully downloaded {len(report.downloaded)} new images.")
        else:
            logger.info("No new images to download. The archive is up to date!")
        return report
