"""Shared fixtures for curator tests."""

import logging

import pytest

from image_curator.core.signatures import Signature, SignatureStore
from image_curator.utils.logger import PACKAGE_LOGGER


@pytest.fixture(autouse=True)
def reset_package_logger():
    """CLI tests attach handlers to captured streams; drop them afterwards."""
    yield
    logging.getLogger(PACKAGE_LOGGER).handlers.clear()


@pytest.fixture
def store() -> SignatureStore:
    """Two references: poseA is all zeros, poseB is all ones."""
    return SignatureStore([("poseA", Signature("0" * 64)), ("poseB", Signature("1" * 64))])
