"""CSV record parsing tests."""

import pytest

from cert_errors import (
    EmptyDatasetError,
    MalformedCsvError,
    MissingFieldsError,
    RecordParseError,
    RowShapeError,
)
from cert_records import REQUIRED_FIELDS, load_records, parse_records, sample_csv

HEADER = ",".join(REQUIRED_FIELDS)


class TestParseRecords:
    def test_canonical(self, canonical_csv):
        records = parse_records(canonical_csv)
        assert len(records) == 1
        rec = records[0]
        assert rec.recipient_name == "John Doe"
        assert rec.certificate_id == "CERT-1001"
        assert rec.additional_text == "Successfully completed the course with distinction"

    def test_header_order_is_free(self):
        text = (
            "certificateId,additionalText,recipientName,courseName,completionDate,issuerName\n"
            "C-7,,Ann Lee,Math,2024-02-03,School"
        )
        rec = parse_records(text)[0]
        assert rec.recipient_name == "Ann Lee"
        assert rec.certificate_id == "C-7"
        assert rec.additional_text == ""

    def test_extra_columns_kept(self):
        text = HEADER + ",email\nA,B,2024-01-01,D,E,F,a@example.com"
        rec = parse_records(text)[0]
        assert rec.model_extra == {"email": "a@example.com"}

    def test_values_trimmed(self):
        text = HEADER + "\n  John Doe , Web ,2023-05-15,Tech Academy,CERT-1, \n"
        rec = parse_records(text)[0]
        assert rec.recipient_name == "John Doe"
        assert rec.course_name == "Web"
        assert rec.additional_text == ""

    def test_blank_lines_and_crlf(self):
        text = HEADER + "\r\n\r\nA,B,2024-01-01,D,E,F\r\n\r\nG,H,2024-01-02,J,K,L\r\n"
        records = parse_records(text)
        assert [r.recipient_name for r in records] == ["A", "G"]

    def test_quoted_commas(self):
        text = HEADER + '\n"Doe, John",Web,2023-05-15,"Tech, Inc.",CERT-1,"With honours, and more"'
        rec = parse_records(text)[0]
        assert rec.recipient_name == "Doe, John"
        assert rec.issuer_name == "Tech, Inc."

    def test_byte_order_mark(self, canonical_csv):
        assert parse_records("\ufeff" + canonical_csv)[0].recipient_name == "John Doe"

    def test_sample_csv(self):
        records = parse_records(sample_csv())
        assert [r.recipient_name for r in records] == ["John Doe", "Jane Smith"]


class TestRejections:
    """Any header or shape problem rejects the whole dataset"""

    def test_missing_field(self):
        text = (
            "recipientName,courseName,completionDate,issuerName,additionalText\n"
            "John Doe,Web Development,2023-05-15,Tech Academy,Text"
        )
        with pytest.raises(MissingFieldsError) as info:
            parse_records(text)
        assert info.value.missing == ["certificateId"]
        assert str(info.value) == "Missing required fields: certificateId"

    def test_short_row(self):
        text = HEADER + "\nJohn Doe,Web Development,2023-05-15,Tech Academy,CERT-1001"
        with pytest.raises(RowShapeError) as info:
            parse_records(text)
        assert str(info.value) == "Line 2 has 5 values, but should have 6"

    def test_unquoted_comma_is_rejected(self):
        text = HEADER + "\nA,B,2024-01-01,D,E,F\nDoe, John,B,2024-01-01,D,E,F"
        with pytest.raises(RowShapeError, match="Line 3 has 7 values"):
            parse_records(text)

    def test_line_numbers_count_blank_lines(self):
        text = HEADER + "\nA,B,2024-01-01,D,E,F\n\nG,H"
        with pytest.raises(RowShapeError) as info:
            parse_records(text)
        assert info.value.line_number == 4

    @pytest.mark.parametrize("text", ["", HEADER, HEADER + "\n\n"])
    def test_empty_dataset(self, text):
        with pytest.raises(EmptyDatasetError):
            parse_records(text)

    @pytest.mark.parametrize("text", ["\n" + HEADER + "\nA,B,2024-01-01,D,E,F", "   \n\n"])
    def test_first_line_is_the_header(self, text):
        with pytest.raises(MissingFieldsError) as info:
            parse_records(text)
        assert info.value.missing == list(REQUIRED_FIELDS)

    def test_oversized_field(self):
        text = HEADER + "\nA,B,2024-01-01,D,E," + "x" * 200_000
        with pytest.raises(MalformedCsvError) as info:
            parse_records(text)
        assert info.value.line_number == 2
        assert str(info.value).startswith("Line 2 could not be read: ")
        assert isinstance(info.value, RecordParseError)

    def test_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            parse_records("name\nx")
        assert issubclass(RecordParseError, ValueError)


def test_load_records(tmp_path):
    path = tmp_path / "people.csv"
    path.write_text(sample_csv(), encoding="utf-8-sig")
    assert len(load_records(path)) == 2
