"""Tests for the image archive downloader."""

from unittest.mock import MagicMock

from image_curator.core.downloader import ImageDownloader

from fakes import FakeComputer, FakeEnumerator, FakeResolver, token


def make_cache(cached=()):
    cache = MagicMock()
    cache.cached_ids.return_value = set(cached)
    return cache


def test_downloads_only_uncached_tokens():
    cache = make_cache(cached=["1"])
    downloader = ImageDownloader(
        enumerator=FakeEnumerator([token("1"), token("2")]),
        resolver=FakeResolver(),
        computer=FakeComputer({}),
        cache=cache,
    )

    report = downloader.run()

    assert report.already_cached == 1
    assert report.downloaded == ["2"]
    cache.ensure.assert_called_once()
    cache.save.assert_called_once_with("2", b"image-2")


def test_failures_are_isolated():
    cache = make_cache()
    cache.save.side_effect = [OSError("cannot identify image file"), None]
    downloader = ImageDownloader(
        enumerator=FakeEnumerator(
            [token("1", missing_uri=True), token("2"), token("3"), token("4")]
        ),
        resolver=FakeResolver(),
        computer=FakeComputer({}, failing=["image-2"]),
        cache=cache,
    )

    report = downloader.run()

    assert report.failed == ["1", "2", "3"]
    assert report.downloaded == ["4"]
