"""Renderer tests. Pixel checks sample areas that no text or border overlaps."""

import io

import pytest
from PIL import ImageChops, ImageFont

from cert_compose import Assets, compose
from cert_errors import AssetError
from cert_layout import set_position
from cert_render import canvas_size, parse_css_color, render_gradient, render_tree, wrap_text_to_lines
from cert_templates import BUILTIN_BACKGROUNDS, TemplateId, bytes_to_data_uri


def assert_close(pixel, expected, tolerance=6):
    assert all(abs(a - b) <= tolerance for a, b in zip(pixel, expected)), f"{pixel} != {expected}"


class TestCanvas:
    def test_canvas_size(self):
        assert canvas_size(1) == (800, 566)
        assert canvas_size(2) == (1600, 1132)

    def test_parse_css_color(self):
        assert parse_css_color("#333333") == (51, 51, 51)
        assert parse_css_color("bogus", (1, 2, 3)) == (1, 2, 3)


class TestGradient:
    def test_horizontal_gradient_endpoints(self):
        img = render_gradient(BUILTIN_BACKGROUNDS[TemplateId.TEMPLATE1], (800, 566))
        assert_close(img.getpixel((0, 283)), (246, 211, 101))
        assert_close(img.getpixel((799, 283)), (253, 160, 133))

    def test_angled_gradient_corners(self):
        img = render_gradient(BUILTIN_BACKGROUNDS[TemplateId.TEMPLATE2], (800, 566))
        assert_close(img.getpixel((0, 0)), (161, 196, 253))
        assert_close(img.getpixel((799, 565)), (194, 233, 251))


class TestWrap:
    def test_explicit_newlines_kept(self):
        font = ImageFont.load_default(size=14)
        assert wrap_text_to_lines(font, "one\ntwo", 1000) == ["one", "two"]

    def test_wraps_to_width(self):
        font = ImageFont.load_default(size=14)
        limit = font.getlength("alpha beta") + 1
        lines = wrap_text_to_lines(font, "alpha beta gamma delta", limit)
        assert lines[0] == "alpha beta"
        assert len(lines) >= 2
        assert all(font.getlength(line) <= limit for line in lines)


class TestRenderTree:
    def test_size_follows_scale(self, record, layout):
        tree = compose(record, "template1", layout)
        assert render_tree(tree, scale=1).size == (800, 566)
        assert render_tree(tree, scale=0.5).size == canvas_size(0.5)

    def test_deterministic(self, record, layout, assets):
        tree = compose(record, "template3", layout, assets)
        assert render_tree(tree, scale=1).tobytes() == render_tree(tree, scale=1).tobytes()

    def test_text_is_drawn(self, record, layout):
        plain = compose(record, "template1", layout)
        renamed = compose(record.model_copy(update={"recipient_name": "Someone Else Entirely"}), "template1", layout)
        diff = ImageChops.difference(render_tree(plain, scale=1), render_tree(renamed, scale=1))
        bbox = diff.getbbox()
        assert bbox is not None
        # Recipient name is anchored at 40% height.
        assert bbox[1] < 226 < bbox[3]

    def test_seal_is_drawn(self, record, layout, red_uri):
        tree = compose(record, "template1", layout, Assets(seal=red_uri))
        img = render_tree(tree, scale=1)
        assert_close(img.getpixel((240, 424)), (255, 0, 0), tolerance=2)

    def test_off_canvas_asset(self, record, layout, red_uri):
        moved = set_position(layout, "seal", (-20, 130))
        tree = compose(record, "template1", moved, Assets(seal=red_uri, signature=red_uri))
        assert render_tree(tree, scale=1).size == (800, 566)

    def test_custom_image_background(self, record, layout, blue_uri):
        tree = compose(record, "custom", layout, Assets(custom_template=blue_uri))
        assert_close(render_tree(tree, scale=1).getpixel((100, 300)), (0, 0, 255), tolerance=2)

    def test_custom_pdf_background(self, record, layout):
        pytest.importorskip("fitz")
        from reportlab.pdfgen import canvas

        buffer = io.BytesIO()
        c = canvas.Canvas(buffer, pagesize=(400, 283))
        c.setFillColorRGB(0, 0.5, 0)
        c.rect(0, 0, 400, 283, fill=1, stroke=0)
        c.showPage()
        c.save()
        uri = bytes_to_data_uri(buffer.getvalue(), "application/pdf")

        tree = compose(record, "custom", layout, Assets(custom_template=uri))
        assert_close(render_tree(tree, scale=1).getpixel((100, 300)), (0, 128, 0))

    def test_undecodable_asset(self, record, layout):
        tree = compose(record, "template1", layout, Assets(seal="data:image/png;base64,AAAA"))
        with pytest.raises(AssetError):
            render_tree(tree, scale=1)
