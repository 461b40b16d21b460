"""Per-format text extraction with OCR escalation.

Dispatch is on the lower-cased file extension, never on content sniffing.
Scanned PDFs (near-empty text layer) and images go through OCR; Word and
Excel files are read structurally.
"""

import io
import logging
from collections.abc import Callable

import docx
import fitz
import pandas as pd

from config import settings
from errors import FileTooLarge, UnsupportedFormat
from models import ExtractionResult, UploadedFile
from ocr import TesseractOCR

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg"}


class TextExtractor:
    """Extracts text from one uploaded file using a format-specific strategy."""

    def __init__(
        self,
        ocr: TesseractOCR | None = None,
        native_min_chars: int | None = None,
        max_upload_bytes: int | None = None,
    ):
        self.ocr = ocr or TesseractOCR()
        self.native_min_chars = (
            native_min_chars if native_min_chars is not None else settings.NATIVE_TEXT_MIN_CHARS
        )
        self.max_upload_bytes = (
            max_upload_bytes if max_upload_bytes is not None else settings.MAX_UPLOAD_BYTES
        )
        self._strategies: dict[str, Callable[[bytes], tuple[str, str]]] = {
            ".txt": self._extract_txt,
            ".pdf": self._extract_pdf,
            ".png": self._extract_image,
            ".jpg": self._extract_image,
            ".jpeg": self._extract_image,
            ".doc": self._extract_word,
            ".docx": self._extract_word,
            ".xls": self._extract_spreadsheet,
            ".xlsx": self._extract_spreadsheet,
        }

    @property
    def supported_extensions(self) -> frozenset[str]:
        return frozenset(self._strategies)

    def validate(self, file: UploadedFile) -> None:
        """Reject uploads that can never be extracted, before any work starts."""
        if file.extension not in self._strategies:
            raise UnsupportedFormat(f"Unsupported file type: {file.filename}")
        if file.size > self.max_upload_bytes:
            raise FileTooLarge(
                f"File {file.filename} exceeds the {self.max_upload_bytes} byte limit"
            )

    def extract(self, file: UploadedFile) -> ExtractionResult:
        """Extract text from a single file.

        Raises UnsupportedFormat for unknown extensions; any other exception
        means extraction failed for this file only.
        """
        strategy = self._strategies.get(file.extension)
        if strategy is None:
            raise UnsupportedFormat(f"Unsupported file type: {file.filename}")

        text, method = strategy(file.content)
        logger.info(
            "Extracted %s: method=%s size=%d bytes chars=%d",
            file.filename, method, file.size, len(text),
        )
        return ExtractionResult(filename=file.filename, text=text, method=method)

    def _extract_txt(self, content: bytes) -> tuple[str, str]:
        return content.decode("utf-8", errors="replace"), "native"

    def _extract_pdf(self, content: bytes) -> tuple[str, str]:
        with fitz.open(stream=content, filetype="pdf") as doc:
            text = "\n".join(page.get_text() for page in doc)

        if len(text.strip()) > self.native_min_chars:
            return text, "native"

        logger.info(
            "PDF text layer has %d chars (<= %d), escalating to OCR",
            len(text.strip()), self.native_min_chars,
        )
        return self.ocr.recognize_pdf(content), "ocr"

    def _extract_image(self, content: bytes) -> tuple[str, str]:
        return self.ocr.recognize_image(content), "ocr"

    def _extract_word(self, content: bytes) -> tuple[str, str]:
        document = docx.Document(io.BytesIO(content))
        lines = [p.text for p in document.paragraphs]
        for table in document.tables:
            for row in table.rows:
                lines.append(" | ".join(cell.text.strip() for cell in row.cells))
        return "\n".join(lines), "native"

    def _extract_spreadsheet(self, content: bytes) -> tuple[str, str]:
        # sheet_name=None returns every sheet, in workbook order
        sheets = pd.read_excel(io.BytesIO(content), sheet_name=None, header=None, dtype=str)

        lines: list[str] = []
        for df in sheets.values():
            for row in df.itertuples(index=False):
                cells = ["" if pd.isna(cell) else str(cell) for cell in row]
                # Rows are padded to the sheet width
                while cells and not cells[-1].strip():
                    cells.pop()
                if not cells:
                    continue
                lines.append(" | ".join(cells))
        return "\n".join(lines), "native"
