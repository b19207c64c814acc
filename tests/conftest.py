"""
Shared pytest fixtures.

Usage:
    def test_something(record, layout):
        assert record.recipient_name == "John Doe"
"""

from __future__ import annotations

import io

import pytest
from PIL import Image

from cert_compose import Assets
from cert_layout import CertificateRecord, LayoutState, reset_layout
from cert_templates import bytes_to_data_uri

CANONICAL_CSV = (
    "recipientName,courseName,completionDate,issuerName,certificateId,additionalText\n"
    "John Doe,Web Development,2023-05-15,Tech Academy,CERT-1001,"
    "Successfully completed the course with distinction"
)


def make_png(size: tuple[int, int] = (40, 20), color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def record() -> CertificateRecord:
    return CertificateRecord(
        recipient_name="John Doe",
        course_name="Web Development",
        completion_date="2023-05-15",
        issuer_name="Tech Academy",
        certificate_id="CERT-1001",
        additional_text="Successfully completed the course with distinction",
    )


@pytest.fixture
def layout() -> LayoutState:
    return reset_layout()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def red_uri() -> str:
    return bytes_to_data_uri(make_png((40, 40), "red"), "image/png")


@pytest.fixture
def blue_uri() -> str:
    return bytes_to_data_uri(make_png((60, 30), "blue"), "image/png")


@pytest.fixture
def assets(red_uri: str) -> Assets:
    return Assets(signature=red_uri, seal=red_uri)


@pytest.fixture
def fake_rasterizer(png_bytes: bytes):
    """Rasterizer stand-in that records every tree it is asked to draw."""
    calls = []

    def rasterizer(tree):
        calls.append(tree)
        return png_bytes

    rasterizer.calls = calls
    return rasterizer


@pytest.fixture
def canonical_csv() -> str:
    return CANONICAL_CSV
