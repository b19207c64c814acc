"""Template resolution and data URI tests."""

import pytest

from cert_errors import AssetError
from cert_templates import (
    BUILTIN_BACKGROUNDS,
    GradientPaint,
    ImagePaint,
    TemplateId,
    bytes_to_data_uri,
    decode_data_uri,
    file_to_data_uri,
    resolve_background,
)


class TestResolveBackground:
    def test_custom_without_payload_falls_back(self):
        assert resolve_background("custom", None) == resolve_background("template1", None)

    def test_unknown_identifier_falls_back(self):
        assert resolve_background("template99") == BUILTIN_BACKGROUNDS[TemplateId.TEMPLATE1]
        assert resolve_background(None) == BUILTIN_BACKGROUNDS[TemplateId.TEMPLATE1]

    def test_custom_with_payload(self, blue_uri):
        paint = resolve_background(TemplateId.CUSTOM, blue_uri)
        assert isinstance(paint, ImagePaint)
        assert paint.data_uri == blue_uri

    def test_builtin_ignores_payload(self, blue_uri):
        assert isinstance(resolve_background("template2", blue_uri), GradientPaint)

    @pytest.mark.parametrize("template_id", ["template1", "template2", "template3"])
    def test_stable_descriptors(self, template_id):
        first = resolve_background(template_id)
        second = resolve_background(template_id)
        assert first == second
        assert first.css == second.css

    def test_css(self):
        assert resolve_background("template2").css == "linear-gradient(120deg, #a1c4fd 0%, #c2e9fb 100%)"
        assert len(resolve_background("template3").stops) == 5


class TestDataUri:
    def test_round_trip(self, png_bytes):
        mime, payload = decode_data_uri(bytes_to_data_uri(png_bytes, "image/png"))
        assert mime == "image/png"
        assert payload == png_bytes

    def test_plain_data_uri(self):
        assert decode_data_uri("data:text/plain,hello%20world") == ("text/plain", b"hello world")

    def test_not_a_data_uri(self):
        with pytest.raises(AssetError):
            decode_data_uri("https://example.com/seal.png")

    def test_file_to_data_uri(self, tmp_path, png_bytes):
        path = tmp_path / "seal.png"
        path.write_bytes(png_bytes)
        uri = file_to_data_uri(path)
        assert uri.startswith("data:image/png;base64,")
        assert decode_data_uri(uri)[1] == png_bytes
