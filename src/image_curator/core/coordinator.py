"""
Curator run: rebuild the membership list and republish it when it changed.

The run always starts from an empty set and evaluates every enumerated item.
An item that fails to resolve or hash is skipped for this run only, which
means a previously listed item drops out of the rebuilt list when its
re-evaluation fails. Such drops are reported in ``RunReport.dropped_on_failure``.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

from tqdm import tqdm

from image_curator.core.classifier import DEFAULT_THRESHOLD, ClassificationResult, classify
from image_curator.core.errors import HashError, LengthMismatchError, ResolutionError
from image_curator.core.interfaces import (
    Enumerator,
    ImageCache,
    Item,
    MetadataResolver,
    RemoteListStore,
    SignatureComputer,
)
from image_curator.core.membership import MembershipSet, SetBuilder
from image_curator.core.reconciler import PublishDecision, reconcile
from image_curator.core.signatures import SignatureStore

logger = logging.getLogger(__name__)

# Failures that cost a single item, never the whole run
ITEM_ERRORS = (ResolutionError, HashError, LengthMismatchError)


@dataclass(frozen=True)
class CuratorSettings:
    """Run parameters injected into the coordinator."""

    threshold: int = DEFAULT_THRESHOLD
    workers: int = 1
    dry_run: bool = False
    show_progress: bool = False

    def __post_init__(self) -> None:
        if self.threshold < 0:
            raise ValueError(f"Threshold must be non-negative, got {self.threshold}")
        if self.workers < 1:
            raise ValueError(f"Workers must be at least 1, got {self.workers}")


@dataclass
class RunReport:
    """What a run saw and decided."""

    previous: MembershipSet
    current: MembershipSet
    decision: PublishDecision
    evaluated: int = 0
    results: List[ClassificationResult] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    published: bool = False

    @property
    def matched(self) -> int:
        return len(self.current)

    @property
    def dropped_on_failure(self) -> List[str]:
        """Previously listed ids that were skipped, not found non-matching."""
        return sorted(i for i in self.skipped if i in self.previous)


class RunCoordinator:
    """Drives one full rebuild of the membership list."""

    def __init__(
        self,
        settings: CuratorSettings,
        signature_loader: Callable[[], SignatureStore],
        enumerator: Enumerator,
        resolver: MetadataResolver,
        computer: SignatureComputer,
        remote_store: RemoteListStore,
        cache: Optional[ImageCache] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            settings: Run parameters
            signature_loader: Loads the reference signatures (once per run)
            enumerator: Yields the collection's items
            resolver: Resolves an item's token URI to its image URL
            computer: Downloads images and computes their signatures
            remote_store: Holds the published membership list
            cache: Optional local image cache, written but never read
        """
        self.settings = settings
        self.signature_loader = signature_loader
        self.enumerator = enumerator
        self.resolver = resolver
        self.computer = computer
        self.remote_store = remote_store
        self.cache = cache

    def run(self) -> RunReport:
        """
        Rebuild the list from scratch and publish it if it changed.

        Returns:
            RunReport describing the run

        Raises:
            LoadError: If the reference signatures cannot be loaded
            EnumerationError: If the collection cannot be enumerated
            PublishError: If the changed list cannot be published
        """
        logger.info("Starting curator run...")

        previous = self.remote_store.fetch()
        logger.info(f"Found {len(previous)} tokens on the old list.")

        store = self.signature_loader()
        builder = SetBuilder()

        logger.info("Fetching all tokens from the contract to rebuild the list...")
        outcomes = self._evaluate_all(self._iter_items(), store, builder)

        current = builder.build()
        decision = reconcile(previous, current)
        report = RunReport(previous=previous, current=current, decision=decision)
        for item_id, result in outcomes:
            if result is None:
                report.skipped.append(item_id)
            else:
                report.results.append(result)
        report.evaluated = len(report.results)

        logger.info(
            f"Evaluated {report.evaluated} tokens, skipped {len(report.skipped)}, "
            f"matched {report.matched}."
        )
        if report.dropped_on_failure:
            logger.warning(
                f"{len(report.dropped_on_failure)} previously listed tokens could not "
                f"be re-evaluated and will drop off the list: "
                f"{', '.join(report.dropped_on_failure)}"
            )

        if not decision.changed:
            logger.info("No changes detected. The list is already up to date!")
            return report

        logger.info(
            f"List has changed. Old count: {len(decision.previous_ids)}, "
            f"New count: {len(decision.new_ids)} "
            f"(+{len(decision.added)} / -{len(decision.removed)})."
        )
        if self.settings.dry_run:
            logger.info("Dry run: not publishing the new list.")
            return report

        self.remote_store.publish(current)
        report.published = True
        logger.info("Published the updated list.")
        return report

    def _iter_items(self) -> Iterable[Item]:
        if self.settings.show_progress:
            return tqdm(self.enumerator, desc="Evaluating tokens", unit="token")
        return self.enumerator

    def _evaluate_all(
        self, items: Iterable[Item], store: SignatureStore, builder: SetBuilder
    ) -> List[Tuple[str, Optional[ClassificationResult]]]:
        if self.settings.workers == 1:
            return [self._evaluate(item, store, builder) for item in items]

        with ThreadPoolExecutor(max_workers=self.settings.workers) as pool:
            # map() returns only after every item has been evaluated
            return list(pool.map(lambda item: self._evaluate(item, store, builder), items))

    def _evaluate(
        self, item: Item, store: SignatureStore, builder: SetBuilder
    ) -> Tuple[str, Optional[ClassificationResult]]:
        item_id = str(item.id)
        logger.debug(f"- Evaluating token #{item_id}...")
        try:
            image_url = self.resolver.resolve(item.token_uri)
            image_bytes = self.computer.download(image_url)
            signature = self.computer.compute_from_bytes(image_bytes)
            self._cache_image(item_id, image_bytes)
            result = classify(item_id, signature, store, self.settings.threshold)
        except ITEM_ERRORS as e:
            logger.error(f"  Failed to process token #{item_id}: {e}")
            return item_id, None

        if result.matched:
            builder.record(item_id)
        return item_id, result

    def _cache_image(self, item_id: str, image_bytes: bytes) -> None:
        if self.cache is None or self.cache.exists(item_id):
            return
        try:
            self.cache.save(item_id, image_bytes)
            logger.debug(f"  Saved new image for token #{item_id}")
        except OSError as e:
            logger.warning(f"  Could not cache image for token #{item_id}: {e}")
