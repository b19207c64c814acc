class CertificateError(Exception):
    """Base class for every recoverable certificate-maker failure."""


class RecordParseError(CertificateError, ValueError):
    pass


class EmptyDatasetError(RecordParseError):
    def __init__(self) -> None:
        super().__init__("CSV must contain a header row and at least one data row")


class MissingFieldsError(RecordParseError):
    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required fields: {', '.join(self.missing)}")


class RowShapeError(RecordParseError):
    def __init__(self, line_number: int, got: int, expected: int) -> None:
        self.line_number = line_number
        self.got = got
        self.expected = expected
        super().__init__(f"Line {line_number} has {got} values, but should have {expected}")


class AssetError(CertificateError, ValueError):
    pass


class ExportError(CertificateError, RuntimeError):
    pass


class MalformedCsvError(RecordParseError):
    def __init__(self, line_number: int, reason: str) -> None:
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Line {line_number} could not be read: {reason}")
