"""Error taxonomy surfaced to callers of the bill analyzer."""

from __future__ import annotations


class BillAnalyzerError(Exception):
    """Base class; ``user_message`` is the single human-readable text shown to users."""

    user_message = "Failed to analyze bill"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.user_message)
        self.detail = detail or self.user_message


class UnsupportedFileError(BillAnalyzerError):
    """The uploaded file is empty, too large, or not an image/PDF the OCR step can read."""

    user_message = "Please upload a PNG, JPG, TIFF or PDF bill (max. 10MB)"


class OCRError(BillAnalyzerError):
    """The OCR collaborator could not produce any text."""

    user_message = "Could not read text from the uploaded bill"


class BillInvariantError(BillAnalyzerError):
    """A completed record broke an invariant. Always a defect in the completion pass."""

    user_message = "Internal error while analyzing bill"

    def __init__(self, detail: str | None = None, issues: list | None = None):
        super().__init__(detail)
        self.issues = issues or []
