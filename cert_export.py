"""
Export pipeline: composed certificate -> PNG -> (optionally) A4 landscape PDF
-> (for batches) one ZIP archive.

Every record of a batch is composed independently from the shared context and
rasterized by a pure function, so no render surface is shared between records.
Archive entries are always written in record order, and the archive only
leaves this module once every record has succeeded.
"""

from __future__ import annotations

import io
import logging
import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, NamedTuple, Optional, Sequence

from PIL import Image
from pypdf import PdfReader, PdfWriter
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from cert_compose import Assets, VisualTree, compose
from cert_errors import ExportError
from cert_layout import CertificateRecord, LayoutState, reset_layout
from cert_render import render_tree
from cert_settings import get_settings
from cert_templates import TemplateId

logger = logging.getLogger(__name__)

PAGE_SIZE = landscape(A4)

Rasterizer = Callable[[VisualTree], bytes]
ProgressCallback = Callable[[int, int, CertificateRecord], None]


class ExportFormat(str, Enum):
    PNG = "png"
    PDF = "pdf"


ARCHIVE_NAMES = {
    ExportFormat.PNG: "certificates.zip",
    ExportFormat.PDF: "certificates-pdf.zip",
}
MEDIA_TYPES = {
    ExportFormat.PNG: "image/png",
    ExportFormat.PDF: "application/pdf",
}
COMBINED_PDF_NAME = "certificates.pdf"


class Placement(NamedTuple):
    ratio: float
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Artifact:
    filename: str
    data: bytes
    media_type: str


@dataclass(frozen=True)
class BatchJob:
    """Records plus the one template/layout/asset context applied to all of them."""

    records: tuple[CertificateRecord, ...]
    template_id: str = TemplateId.TEMPLATE1.value
    layout: LayoutState = field(default_factory=reset_layout)
    assets: Assets = Assets()

    def compose(self, record: CertificateRecord) -> VisualTree:
        return compose(record, self.template_id, self.layout, self.assets)


def fit_image_on_page(img_w: float, img_h: float, page_w: float, page_h: float) -> Placement:
    """Uniformly scale an image onto a page and centre it. Offsets are from the top-left."""
    ratio = min(page_w / img_w, page_h / img_h)
    width, height = img_w * ratio, img_h * ratio
    return Placement(ratio, (page_w - width) / 2, (page_h - height) / 2, width, height)


def rasterize(tree: VisualTree, scale: float | None = None) -> bytes:
    """Lossless PNG snapshot of a composed certificate."""
    buffer = io.BytesIO()
    render_tree(tree, scale).save(buffer, format="PNG")
    return buffer.getvalue()


def to_pdf(image_bytes: bytes, page_size: tuple[float, float] = PAGE_SIZE) -> bytes:
    page_w, page_h = page_size
    with Image.open(io.BytesIO(image_bytes)) as img:
        img_w, img_h = img.size
    placement = fit_image_on_page(img_w, img_h, page_w, page_h)

    packet = io.BytesIO()
    c = canvas.Canvas(packet, pagesize=(page_w, page_h))
    # reportlab measures y from the bottom edge.
    c.drawImage(
        ImageReader(io.BytesIO(image_bytes)),
        placement.x,
        page_h - placement.y - placement.height,
        width=placement.width,
        height=placement.height,
    )
    c.showPage()
    c.save()
    return packet.getvalue()


def merge_pdfs(documents: Sequence[bytes]) -> bytes:
    writer = PdfWriter()
    for document in documents:
        for page in PdfReader(io.BytesIO(document)).pages:
            writer.add_page(page)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def _safe_name(value: str) -> str:
    cleaned = "".join("_" if ch in '/\\:*?"<>|' or ord(ch) < 32 else ch for ch in value).strip()
    return cleaned or "certificate"


def certificate_filename(record: CertificateRecord, fmt: ExportFormat | str) -> str:
    fmt = ExportFormat(fmt)
    return f"{_safe_name(record.recipient_name)}-certificate.{fmt.value}"


def _unique(name: str, used: dict[str, int]) -> str:
    count = used.get(name, 0) + 1
    used[name] = count
    if count == 1:
        return name
    stem, dot, ext = name.rpartition(".")
    return f"{stem} ({count}).{ext}" if dot else f"{name} ({count})"


def _encode(raster: bytes, fmt: ExportFormat) -> bytes:
    return raster if fmt is ExportFormat.PNG else to_pdf(raster)


def export_single(
    tree: VisualTree,
    record: CertificateRecord,
    fmt: ExportFormat | str = ExportFormat.PNG,
    rasterizer: Rasterizer = rasterize,
) -> Artifact:
    fmt = ExportFormat(fmt)
    try:
        data = _encode(rasterizer(tree), fmt)
    except Exception as exc:
        logger.exception("Error generating %s for %s", fmt.value.upper(), record.recipient_name)
        raise ExportError(f"Failed to generate {fmt.value.upper()} file") from exc
    return Artifact(certificate_filename(record, fmt), data, MEDIA_TYPES[fmt])


def _render_all(
    job: BatchJob,
    fmt: ExportFormat,
    rasterizer: Rasterizer,
    workers: int,
    progress: Optional[ProgressCallback],
):
    """Yield ``(record, payload)`` in record order."""
    total = len(job.records)

    def render_one(record: CertificateRecord) -> bytes:
        return _encode(rasterizer(job.compose(record)), fmt)

    if workers <= 1:
        for index, record in enumerate(job.records):
            payload = render_one(record)
            if progress:
                progress(index + 1, total, record)
            yield record, payload
        return

    pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cert-export")
    try:
        for index, (record, payload) in enumerate(zip(job.records, pool.map(render_one, job.records))):
            if progress:
                progress(index + 1, total, record)
            yield record, payload
    finally:
        pool.shutdown(wait=True, cancel_futures=True)


def export_batch(
    job: BatchJob,
    fmt: ExportFormat | str = ExportFormat.PNG,
    rasterizer: Rasterizer = rasterize,
    workers: int | None = None,
    progress: Optional[ProgressCallback] = None,
) -> Artifact:
    """Render every record and package the results into one ZIP archive.

    The first failure aborts the batch with ExportError; nothing collected so
    far is returned.
    """
    fmt = ExportFormat(fmt)
    workers = workers if workers is not None else get_settings().export_workers
    logger.info("Exporting %d certificate(s) as %s", len(job.records), fmt.value.upper())

    buffer = io.BytesIO()
    used: dict[str, int] = {}
    try:
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for record, payload in _render_all(job, fmt, rasterizer, workers, progress):
                zf.writestr(_unique(certificate_filename(record, fmt), used), payload)
    except Exception as exc:
        logger.exception("Error generating %ss", fmt.value.upper())
        raise ExportError(f"Failed to generate {fmt.value.upper()} files") from exc

    return Artifact(ARCHIVE_NAMES[fmt], buffer.getvalue(), "application/zip")


def export_combined_pdf(
    job: BatchJob,
    rasterizer: Rasterizer = rasterize,
    workers: int | None = None,
    progress: Optional[ProgressCallback] = None,
) -> Artifact:
    """One multi-page PDF with a page per record."""
    workers = workers if workers is not None else get_settings().export_workers
    try:
        documents = [payload for _, payload in _render_all(job, ExportFormat.PDF, rasterizer, workers, progress)]
        data = merge_pdfs(documents)
    except Exception as exc:
        logger.exception("Error generating combined PDF")
        raise ExportError("Failed to generate PDF files") from exc
    return Artifact(COMBINED_PDF_NAME, data, "application/pdf")
