"""FastAPI form filler service: documents in, filled and flattened PDF out.

Handles upload decoding and error mapping; the pipeline does the work.
Privacy: no document text, prompt or extracted value is ever logged, and
uploads are processed in memory only.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from assets import AssetStore
from config import settings
from errors import InternalFailure, PipelineError
from llm_client import ExtractionClient
from models import UploadedFile
from pipeline import FormFillPipeline
from text_extraction import TextExtractor

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the pipeline on startup and warm the asset cache."""
    assets = AssetStore()
    app.state.assets = assets
    app.state.client = None
    app.state.pipeline = None

    try:
        assets.schema()
        assets.template()
    except PipelineError as e:
        # Not fatal at startup; requests will fail until the assets exist
        logger.error("Asset warm-up failed: %s", e)

    if not settings.OPENAI_API_KEY:
        logger.info("OPENAI_API_KEY is empty, AI extraction disabled")
    else:
        app.state.client = ExtractionClient()
        app.state.pipeline = FormFillPipeline(TextExtractor(), app.state.client, assets)
        logger.info("Extraction service configured: model=%s", app.state.client.model)

    yield

    if app.state.client is not None:
        app.state.client.close()


app = FastAPI(title="Form Filler", version="1.0.0", lifespan=lifespan)


def get_pipeline(request: Request) -> FormFillPipeline | None:
    return request.app.state.pipeline


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    if isinstance(exc, InternalFailure):
        logger.error("Request failed (%s): %s", type(exc).__name__, exc)
    else:
        logger.warning("Request rejected (%s): %s", type(exc).__name__, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unexpected failure processing request")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.post("/api/process")
async def process(
    files: list[UploadFile] | None = File(default=None),
    text: str | None = Form(default=None),
    pipeline: FormFillPipeline | None = Depends(get_pipeline),
):
    """Extract fields from the uploads and return the filled, flattened form."""
    if pipeline is None:
        return JSONResponse(
            status_code=503,
            content={"detail": "AI extraction is not available - no OPENAI_API_KEY configured"},
        )

    # One byte past the limit is enough to detect an oversized upload
    limit = settings.MAX_UPLOAD_BYTES + 1
    uploads = [
        UploadedFile(filename=f.filename or "upload", content=await f.read(limit))
        for f in files or []
    ]

    # Privacy: log names and byte counts only
    logger.info(
        "Processing request: files=%s text=%d chars",
        [(u.filename, u.size) for u in uploads],
        len(text or ""),
    )

    result = await pipeline.run(uploads, text)

    return Response(
        content=result.document,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{settings.OUTPUT_FILENAME}"',
            "X-Fields-Filled": str(len(result.report.filled)),
            "X-Fields-Unfilled": str(len(result.report.unfilled)),
        },
    )


WRONG_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"]


@app.api_route("/api/process", methods=WRONG_METHODS, include_in_schema=False)
async def process_wrong_method():
    return JSONResponse(status_code=405, content={"detail": "POST only"}, headers={"Allow": "POST"})


@app.get("/health")
async def health(request: Request):
    """Return service status, extraction availability and asset state."""
    client = request.app.state.client
    base = {
        "status": "healthy",
        "extraction_available": client is not None,
        "assets_loaded": request.app.state.assets.loaded,
    }
    if client is not None:
        base["extraction_service"] = client.health()
    return base


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
