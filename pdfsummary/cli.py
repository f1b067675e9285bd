"""Command-line interface for the PDF page summarizer.

Entry point: ``pdf-summarizer`` (configured in ``pyproject.toml``).

Usage:
    pdf-summarizer [options]              # serve the HTTP API (uvicorn)
    pdf-summarizer --file PDF [options]   # summarize one PDF to stdout

Key options:
    --host, --port, --base-url, --model, --timeout, --workers,
    --extractor, --empty-document, --max-upload-mb,
    --verbose/--no-verbose, --log-file, --skip-check.

Model settings default to the ``LLM_BASE_URL``, ``LLM_MODEL`` and
``LLM_API_KEY`` environment variables (a ``.env`` file is honoured).

Before starting (unless ``--skip-check``), the CLI performs a lightweight
reachability check against the root host of the configured ``--base-url``.
"""

import argparse
import logging
import os
import sys
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from pdfsummary.api import create_app
from pdfsummary.llm import create_client
from pdfsummary.log import setup_logging
from pdfsummary.models import Config, SummarizerError
from pdfsummary.parser import PdfSplitter
from pdfsummary.pipeline import SummarizationPipeline

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "http://localhost:1234/v1"
_DEFAULT_MODEL = "llama-3.2-3b-instruct"


def _positive_int(value: str) -> int:
    parsed = int(value)
    if parsed < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return parsed


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments, validate the model server, and run."""
    load_dotenv()

    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file) if args.log_file else None
    setup_logging(verbose=args.verbose, log_file=log_file)

    config = Config(
        base_url=args.base_url,
        model=args.model,
        timeout_s=args.timeout,
        workers=args.workers,
        extractor=args.extractor,
        empty_document=args.empty_document,
        max_upload_bytes=args.max_upload_mb * 1024 * 1024,
        host=args.host,
        port=args.port,
        verbose=args.verbose,
        log_file=log_file,
    )

    if not args.skip_check:
        _check_model_server(config.base_url)

    if args.file:
        _run_single(Path(args.file), config)
    else:
        _serve(config)


# ---------------------------------------------------------------------------
# Single-file mode
# ---------------------------------------------------------------------------


def _run_single(pdf_path: Path, config: Config) -> None:
    """Summarize one local PDF and print the document summary to stdout."""
    if not pdf_path.exists():
        logger.error("File not found: %s", pdf_path)
        sys.exit(1)

    pipeline = SummarizationPipeline.from_config(
        config,
        client=create_client(config),
        splitter=PdfSplitter(config.extractor),
        show_progress=sys.stderr.isatty(),
    )

    logger.info("Processing: %s", pdf_path.name)
    try:
        result = pipeline.summarize_document(pdf_path.read_bytes(), name=pdf_path.name)
    except SummarizerError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        sys.exit(1)

    print(result.summary)


# ---------------------------------------------------------------------------
# Server mode
# ---------------------------------------------------------------------------


def _serve(config: Config) -> None:
    """Run the FastAPI application under uvicorn."""
    app = create_app(config)
    logger.info(
        "Serving on http://%s:%d  model=%s  backend=%s",
        config.host,
        config.port,
        config.model,
        config.base_url,
    )
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level="debug" if config.verbose else "info",
    )


# ---------------------------------------------------------------------------
# Model server health check
# ---------------------------------------------------------------------------


def _check_model_server(base_url: str) -> None:
    """Verify that the inference server (LM Studio, Ollama, ...) is reachable."""
    parsed = urllib.parse.urlparse(base_url)
    health_url = f"{parsed.scheme}://{parsed.netloc}"
    try:
        with urllib.request.urlopen(health_url, timeout=5):
            pass
    except urllib.error.HTTPError:
        # Any HTTP response (4xx/5xx) means the server is up.
        return
    except Exception as exc:
        logger.error("Cannot reach LLM backend at %s\n  Details: %s", health_url, exc)
        sys.exit(1)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdf-summarizer",
        description=(
            "Summarize PDFs page by page with a locally hosted LLM. "
            "Serves POST /api/summarize, or summarizes a single PDF (--file)."
        ),
    )

    parser.add_argument(
        "--file",
        metavar="PDF",
        default=None,
        help="Summarize this PDF, print the result and exit instead of serving.",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Interface for the HTTP server (default: 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the HTTP server (default: 8000).",
    )
    _default_base_url = os.environ.get("LLM_BASE_URL", _DEFAULT_BASE_URL)
    parser.add_argument(
        "--base-url",
        metavar="URL",
        default=_default_base_url,
        help=f"OpenAI-compatible API base URL (default: LLM_BASE_URL env var, currently {_default_base_url!r}).",
    )
    _default_model = os.environ.get("LLM_MODEL", _DEFAULT_MODEL)
    parser.add_argument(
        "--model",
        metavar="MODEL",
        default=_default_model,
        help=f"LLM model identifier (default: LLM_MODEL env var, currently {_default_model!r}).",
    )
    parser.add_argument(
        "--timeout",
        metavar="S",
        type=_positive_int,
        default=120,
        help="Per-call LLM timeout in seconds (default: 120).",
    )
    parser.add_argument(
        "--workers",
        metavar="N",
        type=_positive_int,
        default=1,
        help="Concurrent per-page LLM calls (default: 1, sequential).",
    )
    parser.add_argument(
        "--extractor",
        choices=["pypdf", "docling", "auto"],
        default="pypdf",
        help="PDF extraction backend (default: pypdf).",
    )
    parser.add_argument(
        "--empty-document",
        choices=["error", "summarize"],
        default="error",
        help=(
            "Handling of PDFs with no pages: reject them (error) or still "
            "request a document summary (summarize). Default: error."
        ),
    )
    parser.add_argument(
        "--max-upload-mb",
        metavar="N",
        type=_positive_int,
        default=20,
        help="Largest accepted upload in MiB (default: 20).",
    )
    parser.add_argument(
        "--verbose",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Enable DEBUG-level logging (default: off).",
    )
    parser.add_argument(
        "--log-file",
        metavar="FILE",
        default=None,
        help="Also write log output to FILE.",
    )
    parser.add_argument(
        "--skip-check",
        action="store_true",
        default=False,
        help="Do not check that the LLM backend is reachable before starting.",
    )

    return parser


if __name__ == "__main__":
    main()
