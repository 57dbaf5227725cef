"""Tests for story drafts and photo attachments."""

from pathlib import Path

import pytest

from storysync.client.drafts import PayloadValidationError, PhotoAttachment, StoryDraft


class TestPhotoAttachment:
    """Tests for PhotoAttachment."""

    def test_from_path_guesses_type(self, tmp_path: Path) -> None:
        """Should read the file and guess its MIME type."""
        path = tmp_path / "sunset.png"
        path.write_bytes(b"\x89PNG....")

        photo = PhotoAttachment.from_path(path)

        assert photo.name == "sunset.png"
        assert photo.content_type == "image/png"
        assert photo.size == 8

    def test_encode_decode(self, photo: PhotoAttachment) -> None:
        """Should restore the exact bytes from the stored form."""
        restored = PhotoAttachment.decode(photo.name, photo.content_type, photo.encode())
        assert restored == photo

    def test_decode_rejects_corrupt_data(self) -> None:
        """Should raise PayloadValidationError for invalid base64."""
        with pytest.raises(PayloadValidationError):
            PhotoAttachment.decode("x.jpg", "image/jpeg", "not base64!!")


class TestStoryDraftValidation:
    """Tests for StoryDraft.validate()."""

    def test_valid_draft(self, draft: StoryDraft) -> None:
        """Should accept a description with a photo."""
        draft.validate()

    def test_rejects_blank_description(self, photo: PhotoAttachment) -> None:
        """Should require a non-blank description."""
        with pytest.raises(PayloadValidationError, match="description"):
            StoryDraft(description="   ", photo=photo).validate()

    def test_rejects_missing_photo(self) -> None:
        """Should require a photo."""
        with pytest.raises(PayloadValidationError, match="photo"):
            StoryDraft(description="hello").validate()

    def test_rejects_empty_photo(self) -> None:
        """Should reject a zero-byte photo."""
        empty = PhotoAttachment(name="x.jpg", content_type="image/jpeg", data=b"")
        with pytest.raises(PayloadValidationError):
            StoryDraft(description="hello", photo=empty).validate()

    def test_rejects_half_location(self, photo: PhotoAttachment) -> None:
        """Should require both coordinates or neither."""
        with pytest.raises(PayloadValidationError):
            StoryDraft(description="hello", photo=photo, lat=1.0).validate()

    def test_rejects_out_of_range(self, photo: PhotoAttachment) -> None:
        """Should reject coordinates outside valid ranges."""
        with pytest.raises(PayloadValidationError):
            StoryDraft(description="x", photo=photo, lat=91.0, lon=0.0).validate()
        with pytest.raises(PayloadValidationError):
            StoryDraft(description="x", photo=photo, lat=0.0, lon=-181.0).validate()


class TestStoryDraftForm:
    """Tests for multipart form building."""

    def test_fields_without_location(self, draft: StoryDraft) -> None:
        """Should only send the description."""
        assert draft.form_fields() == {"description": "test"}

    def test_fields_with_location(self, photo: PhotoAttachment) -> None:
        """Should send coordinates as strings, including zero."""
        draft = StoryDraft(description="x", photo=photo, lat=0.0, lon=106.8)
        assert draft.form_fields() == {"description": "x", "lat": "0.0", "lon": "106.8"}
        assert draft.has_location

    def test_files(self, draft: StoryDraft, photo: PhotoAttachment) -> None:
        """Should send the photo as the photo field."""
        assert draft.form_files() == {"photo": ("photo.jpg", photo.data, "image/jpeg")}
