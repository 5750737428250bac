"""OCR client abstract base class."""
from __future__ import annotations
from abc import ABC, abstractmethod


class OCRClient(ABC):
    """Abstract base class for OCR collaborators.

    ``recognize`` returns the text of one page image. An empty string is a
    valid result (a page with no text); failure to run at all must raise
    ``OCRError``.
    """

    @abstractmethod
    async def recognize(self, image: bytes) -> str:
        """Recognize text in PNG/JPEG/TIFF image bytes."""
        ...

    @abstractmethod
    def get_engine_name(self) -> str:
        """Return the OCR engine name being used."""
        ...
