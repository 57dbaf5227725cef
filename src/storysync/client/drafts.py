"""Locally originated story submissions.

This module provides:
- PhotoAttachment: Binary photo carried by a draft
- StoryDraft: Payload of a story creation request
- PayloadValidationError: Raised before any I/O for an unusable draft

Drafts are stored in the pending log with their photo base64-encoded and
re-materialized as multipart fields when submitted.
"""

from __future__ import annotations

import base64
import binascii
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any


class PayloadValidationError(ValueError):
    """A draft is missing required fields or carries invalid values."""


@dataclass(frozen=True)
class PhotoAttachment:
    """Photo attached to a story draft.

    Attributes:
        name: Original file name.
        content_type: MIME type sent with the multipart field.
        data: Raw image bytes.
    """

    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        """Size of the photo in bytes."""
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path) -> PhotoAttachment:
        """Load a photo from disk, guessing its MIME type from the name."""
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            content_type=content_type or "application/octet-stream",
            data=path.read_bytes(),
        )

    def encode(self) -> str:
        """Encode the photo bytes for storage."""
        return base64.b64encode(self.data).decode("ascii")

    @classmethod
    def decode(cls, name: str, content_type: str, encoded: str) -> PhotoAttachment:
        """Re-materialize a photo from its stored form.

        Raises:
            PayloadValidationError: If the stored data is not valid base64.
        """
        try:
            data = base64.b64decode(encoded.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as e:
            raise PayloadValidationError(f"Corrupt photo data for {name}: {e}") from e
        return cls(name=name, content_type=content_type, data=data)


@dataclass(frozen=True)
class StoryDraft:
    """A story creation request that has not been confirmed by the server.

    Attributes:
        description: Story text (required, non-blank).
        photo: Attached photo (required by the submission endpoint).
        lat: Latitude in decimal degrees, or None.
        lon: Longitude in decimal degrees, or None.
    """

    description: str
    photo: PhotoAttachment | None = None
    lat: float | None = None
    lon: float | None = None

    @property
    def has_location(self) -> bool:
        """True when both coordinates are set."""
        return self.lat is not None and self.lon is not None

    def validate(self) -> None:
        """Check the draft before it touches storage or network.

        Raises:
            PayloadValidationError: If a required field is missing or invalid.
        """
        if not self.description or not self.description.strip():
            raise PayloadValidationError("Please enter a description")
        if self.photo is None or self.photo.size == 0:
            raise PayloadValidationError("Please select or capture a photo")
        if (self.lat is None) != (self.lon is None):
            raise PayloadValidationError("Latitude and longitude must be set together")
        if self.lat is not None and not -90.0 <= self.lat <= 90.0:
            raise PayloadValidationError(f"Latitude out of range: {self.lat}")
        if self.lon is not None and not -180.0 <= self.lon <= 180.0:
            raise PayloadValidationError(f"Longitude out of range: {self.lon}")

    def form_fields(self) -> dict[str, str]:
        """Text fields of the multipart submission."""
        fields = {"description": self.description}
        if self.lat is not None and self.lon is not None:
            fields["lat"] = str(self.lat)
            fields["lon"] = str(self.lon)
        return fields

    def form_files(self) -> dict[str, Any]:
        """File fields of the multipart submission."""
        if self.photo is None:
            return {}
        return {
            "photo": (self.photo.name, self.photo.data, self.photo.content_type),
        }
