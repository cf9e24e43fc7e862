"""Tests for the curator run coordinator."""

import logging
from io import BytesIO
from unittest.mock import MagicMock, Mock, patch

import pytest
from PIL import Image

from image_curator.core.coordinator import CuratorSettings, RunCoordinator
from image_curator.core.errors import EnumerationError, LoadError, PublishError
from image_curator.core.signatures import Signature
from image_curator.platforms.hashing import SignatureComputer

from fakes import (
    FakeComputer,
    FakeEnumerator,
    FakeRemoteStore,
    FakeResolver,
    sig,
    token,
)


def make_coordinator(
    store,
    items,
    signatures,
    previous=None,
    settings=None,
    resolver=None,
    computer=None,
    remote=None,
    cache=None,
):
    remote = remote or FakeRemoteStore(previous)
    coordinator = RunCoordinator(
        settings=settings or CuratorSettings(threshold=5),
        signature_loader=lambda: store,
        enumerator=FakeEnumerator(items),
        resolver=resolver or FakeResolver(),
        computer=computer or FakeComputer(signatures),
        remote_store=remote,
        cache=cache,
    )
    return coordinator, remote


class TestScenarios:
    """End-to-end runs over in-memory collaborators."""

    def test_rematch_and_non_match_leave_list_unchanged(self, store):
        """Item 5 re-matches at distance 3, item 7 is 9 away from everything."""
        coordinator, remote = make_coordinator(
            store,
            items=[token("5"), token("7")],
            signatures={"image-5": sig(3), "image-7": sig(9)},
            previous={"5": True},
        )

        report = coordinator.run()

        assert report.current.to_document() == {"5": True}
        assert report.decision.changed is False
        assert report.published is False
        assert remote.published == []

    def test_bootstrap_publishes_first_match(self, store):
        coordinator, remote = make_coordinator(
            store,
            items=[token("12")],
            signatures={"image-12": sig(0)},
            previous={},
        )

        report = coordinator.run()

        assert report.results[0].matched_name == "poseA"
        assert report.results[0].distance == 0
        assert report.decision.changed is True
        assert report.published is True
        assert remote.published == [{"12": True}]

    def test_failed_resolution_drops_previously_listed_item(self, store):
        coordinator, remote = make_coordinator(
            store,
            items=[token("9")],
            signatures={"image-9": sig(0)},
            previous={"9": True},
            resolver=FakeResolver(failing=["token-9"]),
        )

        report = coordinator.run()

        assert report.skipped == ["9"]
        assert report.dropped_on_failure == ["9"]
        assert len(report.current) == 0
        assert report.decision.changed is True
        assert remote.published == [{}]


class TestItemIsolation:
    """Per-item failures skip only that item."""

    def test_missing_token_uri_is_skipped(self, store):
        coordinator, _ = make_coordinator(
            store,
            items=[token("1", missing_uri=True), token("2")],
            signatures={"image-2": sig(0)},
        )

        report = coordinator.run()

        assert report.skipped == ["1"]
        assert report.current.ids() == ["2"]

    def test_download_failure_is_skipped(self, store):
        coordinator, _ = make_coordinator(
            store,
            items=[token("1"), token("2")],
            signatures={"image-1": sig(0), "image-2": sig(0)},
            computer=FakeComputer({"image-2": sig(0)}, failing=["image-1"]),
        )

        report = coordinator.run()

        assert report.skipped == ["1"]
        assert report.evaluated == 1
        assert report.current.ids() == ["2"]

    def test_wrong_length_signature_is_skipped(self, store):
        coordinator, _ = make_coordinator(
            store,
            items=[token("1"), token("2")],
            signatures={"image-1": Signature("0" * 32), "image-2": sig(1)},
        )

        report = coordinator.run()

        assert report.skipped == ["1"]
        assert report.current.ids() == ["2"]

    def test_oversized_image_is_skipped(self, store, monkeypatch):
        buffer = BytesIO()
        Image.new("RGB", (64, 64)).save(buffer, "PNG")
        session = MagicMock()
        session.get.return_value.content = buffer.getvalue()
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)

        with patch("image_curator.platforms.hashing.IMAGEDEDUP_AVAILABLE", True), \
                patch("image_curator.platforms.hashing.PHash"):
            computer = SignatureComputer(session=session)
            coordinator, remote = make_coordinator(
                store,
                items=[token("1"), token("2")],
                signatures={},
                previous={"1": True},
                computer=computer,
            )
            report = coordinator.run()

        assert report.skipped == ["1", "2"]
        assert report.dropped_on_failure == ["1"]
        assert remote.published == [{}]

    def test_skipped_item_not_previously_listed_is_not_a_drop(self, store):
        coordinator, _ = make_coordinator(
            store,
            items=[token("4")],
            signatures={},
            resolver=FakeResolver(failing=["token-4"]),
        )

        report = coordinator.run()

        assert report.skipped == ["4"]
        assert report.dropped_on_failure == []
        assert report.decision.changed is False

    def test_drop_is_logged_as_warning(self, store, caplog):
        coordinator, _ = make_coordinator(
            store,
            items=[token("9")],
            signatures={},
            previous={"9": True},
            resolver=FakeResolver(failing=["token-9"]),
        )

        with caplog.at_level(logging.WARNING, logger="image_curator"):
            coordinator.run()

        assert "could not be re-evaluated" in caplog.text


class TestFatalErrors:
    """Run-level failures propagate."""

    def test_load_error_aborts_before_enumeration(self):
        enumerator = MagicMock()
        remote = FakeRemoteStore()

        def fail():
            raise LoadError("Signature file not found")

        coordinator = RunCoordinator(
            settings=CuratorSettings(),
            signature_loader=fail,
            enumerator=enumerator,
            resolver=FakeResolver(),
            computer=FakeComputer({}),
            remote_store=remote,
        )

        with pytest.raises(LoadError):
            coordinator.run()

        enumerator.__iter__.assert_not_called()
        assert remote.published == []

    def test_enumeration_error_publishes_nothing(self, store):
        enumerator = MagicMock()
        enumerator.__iter__.side_effect = EnumerationError("ALCHEMY_API_KEY is not set")
        remote = FakeRemoteStore()
        coordinator = RunCoordinator(
            settings=CuratorSettings(),
            signature_loader=lambda: store,
            enumerator=enumerator,
            resolver=FakeResolver(),
            computer=FakeComputer({}),
            remote_store=remote,
        )

        with pytest.raises(EnumerationError):
            coordinator.run()

        assert remote.published == []

    def test_publish_error_surfaces_after_classification(self, store):
        computer = FakeComputer({"image-1": sig(0), "image-2": sig(60)})
        computer.compute_from_bytes = Mock(wraps=computer.compute_from_bytes)
        coordinator, _ = make_coordinator(
            store,
            items=[token("1"), token("2")],
            signatures={},
            computer=computer,
            remote=FakeRemoteStore(fail_publish=True),
        )

        with pytest.raises(PublishError):
            coordinator.run()

        assert computer.compute_from_bytes.call_count == 2


class TestSettings:
    """Settings change how the run behaves."""

    def test_dry_run_does_not_publish(self, store):
        coordinator, remote = make_coordinator(
            store,
            items=[token("12")],
            signatures={"image-12": sig(0)},
            settings=CuratorSettings(dry_run=True),
        )

        report = coordinator.run()

        assert report.decision.changed is True
        assert report.published is False
        assert remote.published == []

    def test_threshold_is_applied(self, store):
        coordinator, _ = make_coordinator(
            store,
            items=[token("1")],
            signatures={"image-1": sig(8)},
            settings=CuratorSettings(threshold=8),
        )

        assert coordinator.run().current.ids() == ["1"]

    def test_parallel_run_matches_sequential_run(self, store):
        items = [token(str(i)) for i in range(40)]
        signatures = {f"image-{i}": sig(i % 12) for i in range(40)}

        sequential, _ = make_coordinator(store, items, signatures)
        parallel, _ = make_coordinator(
            store, items, signatures, settings=CuratorSettings(workers=4)
        )

        assert parallel.run().current == sequential.run().current

    @pytest.mark.parametrize("kwargs", [{"threshold": -1}, {"workers": 0}])
    def test_invalid_settings(self, kwargs):
        with pytest.raises(ValueError):
            CuratorSettings(**kwargs)


class TestImageCache:
    """The cache is written as a side effect and never read."""

    def test_new_images_are_saved(self, store):
        cache = Mock()
        cache.exists.return_value = False
        coordinator, _ = make_coordinator(
            store, [token("1")], {"image-1": sig(30)}, cache=cache
        )

        coordinator.run()

        cache.save.assert_called_once_with("1", b"image-1")

    def test_existing_images_are_not_rewritten(self, store):
        cache = Mock()
        cache.exists.return_value = True
        coordinator, _ = make_coordinator(
            store, [token("1")], {"image-1": sig(0)}, cache=cache
        )

        coordinator.run()

        cache.save.assert_not_called()

    def test_image_is_cached_even_when_item_is_skipped(self, store):
        cache = Mock()
        cache.exists.return_value = False
        coordinator, _ = make_coordinator(
            store, [token("1")], {"image-1": Signature("0" * 32)}, cache=cache
        )

        report = coordinator.run()

        assert report.skipped == ["1"]
        cache.save.assert_called_once_with("1", b"image-1")

    def test_cache_failure_does_not_skip_item(self, store):
        cache = Mock()
        cache.exists.return_value = False
        cache.save.side_effect = OSError("disk full")
        coordinator, _ = make_coordinator(
            store, [token("1")], {"image-1": sig(0)}, cache=cache
        )

        report = coordinator.run()

        assert report.current.ids() == ["1"]
        assert report.skipped == []
