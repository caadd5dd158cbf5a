"""Tests for candidate file validation."""

from __future__ import annotations

import pytest

from stowage.errors import ValidationFailed
from stowage.models.config import MB, ValidationPolicy
from stowage.pipeline.validator import Validator, content_type_for, extension_of


def _validator() -> Validator:
    return Validator(ValidationPolicy())


class TestExtension:
    """Extension derivation from the trailing path segment."""

    @pytest.mark.parametrize(
        ("reference", "expected"),
        [
            ("photo.JPG", "jpg"),
            ("/tmp/a.b/photo.png", "png"),
            ("file:///cache/img.webp?x=1", "webp"),
            ("/tmp/a.b/noext", None),
            ("trailingdot.", None),
        ],
    )
    def test_extension_of(self, reference: str, expected: str | None) -> None:
        assert extension_of(reference) == expected

    def test_content_type_for_known_extensions(self) -> None:
        assert content_type_for("jpg") == "image/jpeg"
        assert content_type_for("JPEG") == "image/jpeg"
        assert content_type_for("png") == "image/png"
        assert content_type_for("webp") == "image/webp"
        assert content_type_for("gif") == "image/gif"

    def test_content_type_for_unknown_extension_raises(self) -> None:
        with pytest.raises(ValueError):
            content_type_for("bmp")


class TestValidate:
    """Validator.validate outcomes."""

    def test_accepts_allowed_file(self) -> None:
        # Given: A JPEG within limits
        validator = _validator()

        # When: Validating with declared size and type
        result = validator.validate("photo.jpg", 2 * MB, "image/jpeg")

        # Then: No failure
        assert result is None

    def test_rejects_disallowed_extension(self) -> None:
        # Given: A PDF reference
        validator = _validator()

        # When: Validating
        result = validator.validate("doc.pdf", owner_id="u1")

        # Then: Format failure listing allowed extensions
        assert isinstance(result, ValidationFailed)
        assert result.message == "Invalid file format. Allowed: jpg, jpeg, png, webp, gif"
        assert result.owner_id == "u1"
        assert result.stage == "validate"

    def test_rejects_missing_extension(self) -> None:
        result = _validator().validate("/tmp/cache/capture")
        assert isinstance(result, ValidationFailed)
        assert result.message.startswith("Invalid file format")

    def test_rejects_disallowed_mime_type(self) -> None:
        result = _validator().validate("photo.jpg", 100, "application/pdf")
        assert isinstance(result, ValidationFailed)
        assert result.message == "Invalid MIME type: application/pdf"

    def test_mime_type_is_case_insensitive(self) -> None:
        assert _validator().validate("photo.png", 100, "IMAGE/PNG") is None

    def test_absent_mime_type_is_not_an_error(self) -> None:
        assert _validator().validate("photo.png", 100, None) is None

    def test_rejects_empty_file(self) -> None:
        result = _validator().validate("photo.jpg", 0)
        assert isinstance(result, ValidationFailed)
        assert result.message == "File is empty (0 bytes)"

    def test_rejects_oversized_file_with_readable_sizes(self) -> None:
        # Given: A 20MB declared size against the 10MB default
        validator = _validator()

        # When: Validating
        result = validator.validate("photo.jpg", 20 * MB)

        # Then: Message cites both sizes
        assert isinstance(result, ValidationFailed)
        assert result.message == "File too large (20.00MB). Maximum: 10MB"

    def test_size_exactly_at_ceiling_passes(self) -> None:
        assert _validator().validate("photo.jpg", 10 * MB) is None

    def test_custom_policy_normalizes_extensions(self) -> None:
        # Given: A policy configured with dotted, upper-case extensions
        validator = Validator(ValidationPolicy(allowed_extensions=[".PNG"]))

        # When/Then: Only PNG passes
        assert validator.validate("a.png", 10) is None
        failure = validator.validate("a.jpg", 10)
        assert isinstance(failure, ValidationFailed)
        assert failure.message == "Invalid file format. Allowed: png"
