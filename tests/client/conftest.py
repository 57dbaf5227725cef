"""Shared fixtures for client tests."""

from collections.abc import Iterator
from pathlib import Path

import pytest

from storysync.client.drafts import PhotoAttachment, StoryDraft
from storysync.client.store import LocalStore

# Minimal JPEG header padded to 1 KB
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * (1024 - 11)


@pytest.fixture
def photo() -> PhotoAttachment:
    """A 1 KB JPEG attachment."""
    return PhotoAttachment(name="photo.jpg", content_type="image/jpeg", data=JPEG_BYTES)


@pytest.fixture
def draft(photo: PhotoAttachment) -> StoryDraft:
    """A valid draft without location."""
    return StoryDraft(description="test", photo=photo)


@pytest.fixture
def store(tmp_path: Path) -> Iterator[LocalStore]:
    """A LocalStore in a temporary directory."""
    s = LocalStore(tmp_path / "store.db")
    yield s
    s.close()
