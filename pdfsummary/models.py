"""Pydantic models, dataclass Config, and exceptions for the summarizer service.

This module only defines the *schema* of the data that flows through the
pipeline (pages, page summaries, the final result), the runtime configuration,
and the exception taxonomy shared by the splitter, the model client, the
pipeline and the HTTP layer.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

Extractor = Literal["pypdf", "docling", "auto"]
"""PDF text extraction strategy used by the document splitter."""

EmptyDocumentPolicy = Literal["error", "summarize"]
"""What the pipeline does with a document that has zero pages."""

# ---------------------------------------------------------------------------
# Pages and summaries
# ---------------------------------------------------------------------------


class Page(BaseModel):
    """One physical PDF page of extracted text.

    ``index`` is zero-based and follows the page order of the source PDF.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    text: str


class PageSummary(BaseModel):
    """The model's summary of a single page (map step output)."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    text: str


class SummaryResult(BaseModel):
    """Output of one pipeline run.

    ``summary`` is the document summary returned by the reduce step.
    ``page_summaries`` holds the map step output in original page order; the
    HTTP layer only returns ``summary``.
    """

    summary: str
    page_summaries: list[PageSummary] = Field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.page_summaries)


# ---------------------------------------------------------------------------
# Config (dataclass — not pydantic; holds runtime settings)
# ---------------------------------------------------------------------------

_DEFAULT_MAX_UPLOAD_BYTES = 20 * 1024 * 1024


@dataclass
class Config:
    """Runtime configuration for the summarizer service.

    All fields correspond to CLI flags.  Model-server settings default to a
    local LM Studio instance.

    Attributes:
        base_url:          OpenAI-compatible API base URL of the inference
                           server, e.g. ``http://localhost:1234/v1`` (LM Studio)
                           or ``http://localhost:11434/v1`` (Ollama).
        model:             Model identifier passed to every completion request.
        api_key:           Credential for the inference server.  ``None`` means
                           the key is read from ``LLM_API_KEY``; if that is also
                           unset the placeholder ``"lm-studio"`` is sent (local
                           servers ignore the value).
        temperature:       Sampling temperature.  Fixed at 0.0 so summaries are
                           reproducible.
        timeout_s:         Seconds before a single model call is abandoned and
                           reported as ``ModelUnavailable``.
        max_output_tokens: Maximum tokens the model may generate per call.
                           ``None`` imposes no limit.
        workers:           Number of per-page model calls issued concurrently.
                           ``1`` processes pages sequentially.
        extractor:         PDF extraction backend: ``pypdf``, ``docling``, or
                           ``auto`` (docling with pypdf fallback).
        empty_document:    ``error`` rejects documents with zero pages;
                           ``summarize`` still runs the final model call with
                           an empty page-summary block.
        max_upload_bytes:  Largest accepted upload; bigger requests get 413.
        host:              Interface the HTTP server binds to.
        port:              Port the HTTP server listens on.
        verbose:           If True, log at DEBUG level (per-page prompt sizes).
        log_file:          Optional path that receives a copy of the log output.
    """

    base_url: str = "http://localhost:1234/v1"
    model: str = "llama-3.2-3b-instruct"
    api_key: str | None = None
    temperature: float = 0.0
    timeout_s: int = 120
    max_output_tokens: int | None = None
    workers: int = 1
    extractor: Extractor = "pypdf"
    empty_document: EmptyDocumentPolicy = "error"
    max_upload_bytes: int = _DEFAULT_MAX_UPLOAD_BYTES
    host: str = "127.0.0.1"
    port: int = 8000
    verbose: bool = False
    log_file: Path | None = None


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class SummarizerError(Exception):
    """Base class for every failure the service reports to its callers."""


class UnreadableDocument(SummarizerError):
    """Raised when the uploaded bytes cannot be read as a PDF."""


class EmptyDocument(UnreadableDocument):
    """Raised when a PDF has no pages and ``empty_document="error"``."""


class ModelUnavailable(SummarizerError):
    """Raised when the inference server cannot be reached or times out."""


class ModelError(SummarizerError):
    """Raised when the inference server answers with an error or an empty completion."""
