"""Request pipeline from uploaded documents to the flattened form.

Stages run strictly in order. Only per-file text extraction runs concurrently
(one worker thread per file); results are rejoined in upload order.
No bytes are returned unless every stage up to rendering succeeded.
"""

import asyncio
import logging
import time
from collections.abc import Sequence

from aggregation import aggregate
from assets import AssetStore
from errors import BadRequest, NoInput
from form_filler import FormDocument, fill_form
from llm_client import ExtractionClient
from models import ExtractionResult, PipelineResult, UploadedFile
from parsing import normalize_values
from prompts import build_prompt
from renderer import render
from text_extraction import TextExtractor

logger = logging.getLogger(__name__)


class FormFillPipeline:
    """Turns one request's uploads into one flattened, filled PDF."""

    def __init__(self, extractor: TextExtractor, client: ExtractionClient, assets: AssetStore):
        self.extractor = extractor
        self.client = client
        self.assets = assets

    async def run(self, files: Sequence[UploadedFile], free_text: str | None = None) -> PipelineResult:
        start = time.monotonic()

        if not files and not (free_text and free_text.strip()):
            raise NoInput("No files or text supplied")

        for file in files:
            self.extractor.validate(file)

        # gather() returns results in argument order, not completion order
        results = list(await asyncio.gather(
            *(asyncio.to_thread(self._extract_one, file) for file in files)
        ))

        document = aggregate(results, free_text)
        schema = self.assets.schema()
        prompt = build_prompt(schema, document)
        logger.info("Built prompt: %d field(s), %d chars", len(schema), len(prompt))

        answer = await asyncio.to_thread(self.client.extract, prompt)
        values = normalize_values(answer)

        form = FormDocument.open(self.assets.template())
        try:
            report = fill_form(form, values)
            data = render(form)
        finally:
            form.close()

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Pipeline completed in %dms: files=%d filled=%d unfilled=%d",
            elapsed_ms, len(files), len(report.filled), len(report.unfilled),
        )
        return PipelineResult(document=data, report=report, extraction_results=results)

    def _extract_one(self, file: UploadedFile) -> ExtractionResult:
        """Extract one file; a failure yields an empty result, not an abort."""
        try:
            return self.extractor.extract(file)
        except BadRequest:
            raise
        except Exception as e:
            logger.warning("Extraction failed for %s: %s", file.filename, e)
            return ExtractionResult(filename=file.filename, error=str(e))
