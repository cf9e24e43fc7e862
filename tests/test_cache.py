"""Tests for the local image cache."""

from io import BytesIO

import pytest
from PIL import Image

from image_curator.storage.cache import ImageCache


def png_bytes() -> bytes:
    buffer = BytesIO()
    Image.new("RGBA", (32, 32), color=(10, 20, 30, 128)).save(buffer, "PNG")
    return buffer.getvalue()


def test_ensure_creates_directory(tmp_path):
    cache = ImageCache(tmp_path / "minted-images")

    cache.ensure()
    cache.ensure()

    assert cache.directory.is_dir()


def test_save_writes_jpeg(tmp_path):
    cache = ImageCache(tmp_path / "minted-images")

    cache.save("29", png_bytes())

    assert cache.exists("29")
    with Image.open(cache.path_for("29")) as img:
        assert img.format == "JPEG"
        assert img.size == (32, 32)


def test_cached_ids(tmp_path):
    cache = ImageCache(tmp_path)
    assert cache.cached_ids() == set()

    cache.save("1", png_bytes())
    cache.save("7", png_bytes())
    (tmp_path / "notes.txt").write_text("ignored")

    assert cache.cached_ids() == {"1", "7"}


def test_missing_directory_has_no_ids(tmp_path):
    assert ImageCache(tmp_path / "nope").cached_ids() == set()


def test_invalid_bytes_raise_os_error(tmp_path):
    cache = ImageCache(tmp_path)

    with pytest.raises(OSError):
        cache.save("1", b"garbage")

    assert not cache.exists("1")


def test_oversized_image_raises_os_error(tmp_path, monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    cache = ImageCache(tmp_path)

    with pytest.raises(OSError, match="too large"):
        cache.save("29", png_bytes())

    assert not cache.exists("29")
