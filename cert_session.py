"""
In-memory certificate-making session.

Owns the working record, the template choice, the uploaded assets, the layout
and the editor-only lock/hide flags. Everything it renders goes through
``compose``, so the preview, the editor view and the exports agree.
Nothing is persisted.
"""

from __future__ import annotations

import logging
import random
from datetime import date
from pathlib import Path
from typing import Any, Optional, Sequence

from cert_compose import Assets, VisualTree, apply_editor_overlay, compose
from cert_coords import DESIGN_WIDTH, CanvasTransform, PixelPoint
from cert_export import (
    Artifact,
    BatchJob,
    ExportFormat,
    ProgressCallback,
    Rasterizer,
    export_batch,
    export_combined_pdf,
    export_single,
    rasterize,
)
from cert_layout import (
    CertificateRecord,
    ElementKey,
    Field,
    LayoutState,
    Position,
    element_key,
    field_key,
    reset_layout,
    reset_positions,
    set_font_style,
    set_position,
)
from cert_records import parse_records
from cert_templates import TemplateId, file_to_data_uri, normalize_template_id

logger = logging.getLogger(__name__)


def default_record() -> CertificateRecord:
    return CertificateRecord(
        recipient_name="John Doe",
        course_name="Web Development",
        completion_date=date.today().isoformat(),
        issuer_name="Tech Academy",
        certificate_id=f"CERT-{random.randint(1000, 9999)}",
        additional_text="Successfully completed the course with distinction",
    )


def _payload(value: Optional[str | Path]) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return file_to_data_uri(value)


class CertificateSession:
    def __init__(
        self,
        record: CertificateRecord | None = None,
        layout: LayoutState | None = None,
        container_width: float = DESIGN_WIDTH,
    ) -> None:
        self.record = record if record is not None else default_record()
        self.layout = layout if layout is not None else reset_layout()
        self.template_id = TemplateId.TEMPLATE1
        self.custom_template: Optional[str] = None
        self.signature: Optional[str] = None
        self.seal: Optional[str] = None
        self.transform = CanvasTransform(container_width)
        self.locked: set[ElementKey] = set()
        self.hidden: set[ElementKey] = set()
        self.batch_records: list[CertificateRecord] = []
        self.batch_index = 0

    # -- record / style edits -------------------------------------------------

    def update_field(self, field: str | Field, value: str) -> None:
        key = field_key(field)
        self.record = self.record.model_copy(update={key.attr: str(value)})

    def set_font_style(self, field: str | Field, prop: str, value: Any) -> None:
        self.layout = set_font_style(self.layout, field, prop, value)

    def set_position(self, key: str | ElementKey, position: Position) -> None:
        self.layout = set_position(self.layout, key, position)

    def reset_positions(self) -> None:
        self.layout = reset_positions(self.layout)

    def reset_layout(self) -> None:
        self.layout = reset_layout()

    # -- template and assets --------------------------------------------------

    def select_template(self, template_id: str | TemplateId) -> None:
        self.template_id = normalize_template_id(template_id)

    def set_custom_template(self, payload: Optional[str | Path]) -> None:
        self.custom_template = _payload(payload)
        if self.custom_template is None:
            if self.template_id is TemplateId.CUSTOM:
                self.template_id = TemplateId.TEMPLATE1
        else:
            self.template_id = TemplateId.CUSTOM

    def set_signature(self, payload: Optional[str | Path]) -> None:
        self.signature = _payload(payload)

    def set_seal(self, payload: Optional[str | Path]) -> None:
        self.seal = _payload(payload)

    @property
    def assets(self) -> Assets:
        return Assets(signature=self.signature, seal=self.seal, custom_template=self.custom_template)

    # -- interactive editor ---------------------------------------------------

    def resize_container(self, container_width: float) -> None:
        self.transform.resize(container_width)

    def pixel_position(self, key: str | ElementKey) -> PixelPoint:
        key = element_key(key)
        return self.transform.to_pixel(key.value, self.layout.position(key))

    def move_element(self, key: str | ElementKey, point: PixelPoint | tuple[float, float]) -> bool:
        """Apply a drag that ended at ``point`` (editor pixels). Locked elements stay put."""
        key = element_key(key)
        if key in self.locked:
            return False
        self.set_position(key, self.transform.to_percent(key.value, point))
        return True

    def toggle_lock(self, key: str | ElementKey) -> None:
        self.locked ^= {element_key(key)}

    def toggle_visibility(self, key: str | ElementKey) -> None:
        self.hidden ^= {element_key(key)}

    def unlock_all(self) -> None:
        self.locked.clear()

    def show_all(self) -> None:
        self.hidden.clear()

    # -- composition and export -----------------------------------------------

    def compose(self, record: CertificateRecord | None = None) -> VisualTree:
        return compose(record if record is not None else self.record, self.template_id, self.layout, self.assets)

    def editor_view(self) -> VisualTree:
        return apply_editor_overlay(self.compose(), self.hidden)

    def export(self, fmt: ExportFormat | str = ExportFormat.PNG, rasterizer: Rasterizer = rasterize) -> Artifact:
        return export_single(self.compose(), self.record, fmt, rasterizer)

    def load_batch(self, raw_text: str) -> list[CertificateRecord]:
        """Parse a dataset; on failure the previously loaded batch is cleared."""
        self.batch_records = []
        self.batch_index = 0
        self.batch_records = parse_records(raw_text)
        logger.info("Loaded %d batch record(s)", len(self.batch_records))
        return self.batch_records

    def batch_job(self, records: Sequence[CertificateRecord] | None = None) -> BatchJob:
        return BatchJob(
            records=tuple(records if records is not None else self.batch_records),
            template_id=self.template_id.value,
            layout=self.layout,
            assets=self.assets,
        )

    def preview_batch(self, index: int | None = None) -> VisualTree:
        if not self.batch_records:
            raise IndexError("No batch records loaded.")
        if index is not None:
            self.batch_index = max(0, min(index, len(self.batch_records) - 1))
        return self.compose(self.batch_records[self.batch_index])

    def export_batch(
        self,
        fmt: ExportFormat | str = ExportFormat.PNG,
        rasterizer: Rasterizer = rasterize,
        workers: int | None = None,
        progress: Optional[ProgressCallback] = None,
    ) -> Artifact:
        return export_batch(self.batch_job(), fmt, rasterizer, workers, progress)

    def export_combined_pdf(
        self,
        rasterizer: Rasterizer = rasterize,
        workers: int | None = None,
        progress: Optional[ProgressCallback] = None,
    ) -> Artifact:
        return export_combined_pdf(self.batch_job(), rasterizer, workers, progress)
