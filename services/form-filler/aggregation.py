"""Merge per-file extraction results and free text into one document context."""

import logging
from collections.abc import Sequence

from errors import EmptyInput
from models import AggregatedDocument, DocumentSection, ExtractionResult

logger = logging.getLogger(__name__)

FREE_TEXT_LABEL = "ADDITIONAL TEXT"


def aggregate(results: Sequence[ExtractionResult], free_text: str | None = None) -> AggregatedDocument:
    """Build labeled sections in upload order, free text last.

    Raises EmptyInput when no section carries any non-whitespace text.
    """
    sections = [
        DocumentSection(
            label=f"DOCUMENT {index}: {result.filename}",
            source=result.filename,
            text=result.text,
        )
        for index, result in enumerate(results, start=1)
    ]

    if free_text and free_text.strip():
        sections.append(DocumentSection(label=FREE_TEXT_LABEL, text=free_text))

    document = AggregatedDocument(sections=sections)
    if document.is_blank():
        raise EmptyInput("No text could be extracted from the uploaded content")

    logger.info(
        "Aggregated %d section(s), %d chars",
        len(sections), sum(len(s.text) for s in sections),
    )
    return document
