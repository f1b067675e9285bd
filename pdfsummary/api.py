"""FastAPI application exposing the summarization pipeline over HTTP.

Routes
------
``POST /api/summarize``  multipart upload, file field ``file``; returns the
                         document summary as ``text/plain``.
``GET  /health``         liveness probe.

Domain errors are translated into status codes by exception handlers:

=====================  ======
UnreadableDocument     422
EmptyDocument          422
ModelError             502
ModelUnavailable       503
=====================  ======

Empty uploads get 400 and oversized uploads 413.  Missing ``file`` fields are
rejected by FastAPI's own request validation (422).
"""

import logging

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from pdfsummary import __version__
from pdfsummary.llm import create_client
from pdfsummary.models import (
    Config,
    ModelError,
    ModelUnavailable,
    UnreadableDocument,
)
from pdfsummary.parser import PdfSplitter
from pdfsummary.pipeline import SummarizationPipeline

logger = logging.getLogger(__name__)


def create_app(
    config: Config | None = None,
    pipeline: SummarizationPipeline | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config:   Runtime configuration; defaults to ``Config()``.
        pipeline: Prebuilt pipeline (tests inject one with a stub client).
                  When omitted, one is built from ``config`` with an
                  ``LMStudioClient`` and a ``PdfSplitter``.
    """
    config = config or Config()
    if pipeline is None:
        pipeline = SummarizationPipeline.from_config(
            config,
            client=create_client(config),
            splitter=PdfSplitter(config.extractor),
        )

    app = FastAPI(title="PDF Page Summarizer", version=__version__)
    app.state.config = config
    app.state.pipeline = pipeline

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.post("/api/summarize", response_class=PlainTextResponse)
    async def summarize(file: UploadFile = File(...)) -> PlainTextResponse:
        name = file.filename or "upload.pdf"
        # Read one byte past the limit to detect oversized uploads.
        data = await file.read(config.max_upload_bytes + 1)
        if not data:
            raise HTTPException(status_code=400, detail="Empty file uploaded")
        if len(data) > config.max_upload_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"Upload exceeds {config.max_upload_bytes:,} bytes",
            )

        logger.info("Received %s (%s bytes)", name, f"{len(data):,}")
        result = await run_in_threadpool(pipeline.summarize_document, data, name=name)
        return PlainTextResponse(result.summary)

    app.add_exception_handler(UnreadableDocument, _unreadable_document)
    app.add_exception_handler(ModelUnavailable, _model_unavailable)
    app.add_exception_handler(ModelError, _model_error)

    return app


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


async def _unreadable_document(request: Request, exc: UnreadableDocument) -> JSONResponse:
    logger.warning("Rejected upload: %s", exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def _model_unavailable(request: Request, exc: ModelUnavailable) -> JSONResponse:
    logger.error("Model unavailable: %s", exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


async def _model_error(request: Request, exc: ModelError) -> JSONResponse:
    logger.error("Model error: %s", exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})
