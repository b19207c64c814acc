"""
Batch record parsing.

The dataset is comma separated with a required header row. Header columns may
come in any order but must include every name in REQUIRED_FIELDS; extra
columns are carried on the record as extras. Quoted values may contain commas.
The first physical line is always the header.
Any header or row-shape problem rejects the whole dataset.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Iterator, Mapping

from cert_errors import EmptyDatasetError, MalformedCsvError, MissingFieldsError, RowShapeError
from cert_layout import CertificateRecord, Field

REQUIRED_FIELDS: tuple[str, ...] = tuple(field.value for field in Field)

SAMPLE_CSV = (
    "recipientName,courseName,completionDate,issuerName,certificateId,additionalText\n"
    "John Doe,Web Development,2023-05-15,Tech Academy,CERT-1001,"
    "Successfully completed the course with distinction\n"
    "Jane Smith,Data Science,2023-05-20,Tech Academy,CERT-1002,Completed with excellence"
)


def sample_csv() -> str:
    return SAMPLE_CSV


def _is_blank(row: list[str]) -> bool:
    return all(not value.strip() for value in row)


def record_from_mapping(values: Mapping[str, str]) -> CertificateRecord:
    return CertificateRecord.model_validate(dict(values))


def _read_rows(reader) -> Iterator[list[str]]:
    try:
        yield from reader
    except csv.Error as exc:
        raise MalformedCsvError(reader.line_num, str(exc)) from exc


def parse_records(raw_text: str) -> list[CertificateRecord]:
    text = raw_text.lstrip("\ufeff")
    reader = csv.reader(io.StringIO(text, newline=""), skipinitialspace=True)
    rows = _read_rows(reader)

    first = next(rows, None)
    if first is None:
        raise EmptyDatasetError()
    header = [name.strip() for name in first]

    missing = [name for name in REQUIRED_FIELDS if name not in header]
    if missing:
        raise MissingFieldsError(missing)

    records: list[CertificateRecord] = []
    for row in rows:
        if _is_blank(row):
            continue
        values = [value.strip() for value in row]
        if len(values) != len(header):
            raise RowShapeError(reader.line_num, len(values), len(header))
        records.append(record_from_mapping(dict(zip(header, values))))

    if not records:
        raise EmptyDatasetError()
    return records


def load_records(path: Path) -> list[CertificateRecord]:
    with path.open("r", newline="", encoding="utf-8-sig") as f:
        return parse_records(f.read())
