"""Tests for image utility functions."""

import base64

import pytest

from src.core.image_utils import (
    ImageTooLargeError,
    aspect_to_size,
    image_strip_headers,
    normalize_aspect,
    parse_data_url,
    verify_image,
)


class TestParseDataUrl:
    """Tests for parse_data_url function."""

    def test_parses_png_data_url(self, png_b64: str, png_data_url: str) -> None:
        image = parse_data_url(png_data_url)
        assert image is not None
        assert image.mime_type == "image/png"
        assert image.data_b64 == png_b64
        assert image.data_url == png_data_url

    def test_accepts_other_image_types(self) -> None:
        image = parse_data_url("data:image/webp;base64,aGVsbG8=")
        assert image is not None
        assert image.mime_type == "image/webp"

    def test_strips_surrounding_whitespace(self) -> None:
        image = parse_data_url("  data:image/jpeg;base64,aGVsbG8=\n")
        assert image is not None
        assert image.data_b64 == "aGVsbG8="

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "aGVsbG8=",
            "data:text/plain;base64,aGVsbG8=",
            "data:image/png,aGVsbG8=",
            "data:image/png;base64,",
            "data:image/png;base64,not*base64!",
            "https://example.com/product.png",
        ],
    )
    def test_rejects_invalid_values(self, value: str) -> None:
        assert parse_data_url(value) is None


class TestVerifyImage:
    """Tests for verify_image function."""

    def test_returns_dimensions(self, png_factory) -> None:
        assert verify_image(png_factory(size=(40, 30))) == (40, 30)

    def test_rejects_non_image_bytes(self) -> None:
        payload = base64.b64encode(b"definitely not an image").decode()
        with pytest.raises(ValueError, match="Unreadable image"):
            verify_image(payload)

    def test_rejects_bad_base64(self) -> None:
        with pytest.raises(ValueError):
            verify_image("abc")

    def test_rejects_huge_declared_dimensions(self, oversized_png_b64: str) -> None:
        with pytest.raises(ImageTooLargeError):
            verify_image(oversized_png_b64)


class TestAspect:
    """Tests for aspect ratio helpers."""

    @pytest.mark.parametrize(
        ("requested", "expected"),
        [("9:16", "9:16"), ("16:9", "16:9"), (None, "16:9"), ("1:1", "16:9"), ("", "16:9")],
    )
    def test_normalize_aspect(self, requested, expected) -> None:
        assert normalize_aspect(requested) == expected

    def test_aspect_to_size(self) -> None:
        assert aspect_to_size("9:16") == "1024x1536"
        assert aspect_to_size("16:9") == "1536x1024"
        assert aspect_to_size("4:3") == "1536x1024"


class TestImageStripHeaders:
    """Tests for image_strip_headers function."""

    def test_strips_png_header(self) -> None:
        assert image_strip_headers("data:image/png;base64,iVBORw0KGgo=") == "iVBORw0KGgo="

    def test_strips_any_mime_header(self) -> None:
        assert image_strip_headers("data:image/webp;base64,UklGRg==") == "UklGRg=="

    def test_returns_bare_data_unchanged(self) -> None:
        assert image_strip_headers("iVBORw0KGgo=") == "iVBORw0KGgo="
