"""Tesseract OCR engine for scanned PDFs and images.

Pages and images are preprocessed in memory before recognition; nothing is
written to disk.
"""

import io
import logging

import fitz
import pytesseract
from PIL import Image

from config import settings
from errors import OCRError
from preprocessing import preprocess

logger = logging.getLogger(__name__)


class TesseractOCR:
    """Synchronous bytes-in, text-out OCR capability."""

    def __init__(
        self,
        language: str | None = None,
        timeout: int | None = None,
        render_zoom: float | None = None,
    ):
        self.language = language or settings.OCR_LANGUAGE
        self.timeout = timeout if timeout is not None else settings.OCR_TIMEOUT_SECONDS
        self.render_zoom = render_zoom if render_zoom is not None else settings.OCR_RENDER_ZOOM

    def recognize_image(self, image_bytes: bytes) -> str:
        """Recognize text in a PNG/JPEG payload."""
        return self._recognize(preprocess(image_bytes))

    def recognize_pdf(self, pdf_bytes: bytes) -> str:
        """Render every page of a PDF and recognize each one in page order."""
        try:
            doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        except Exception as e:
            raise OCRError(f"Cannot open PDF for OCR: {e}") from e

        pages: list[str] = []
        try:
            matrix = fitz.Matrix(self.render_zoom, self.render_zoom)
            for page in doc:
                png = page.get_pixmap(matrix=matrix).tobytes("png")
                pages.append(self._recognize(preprocess(png)).strip())
        finally:
            doc.close()

        logger.info("OCR recognized %d page(s)", len(pages))
        return "\n\n".join(p for p in pages if p)

    def _recognize(self, image_bytes: bytes) -> str:
        try:
            with Image.open(io.BytesIO(image_bytes)) as image:
                return pytesseract.image_to_string(image, lang=self.language, timeout=self.timeout)
        except RuntimeError as e:
            # pytesseract signals its timeout with a bare RuntimeError
            raise OCRError(f"OCR timed out after {self.timeout}s") from e
        except Exception as e:
            raise OCRError(f"OCR failed: {e}") from e
