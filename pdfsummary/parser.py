"""PDF page splitter — thin wrapper around pypdf and docling.

``PdfSplitter.split_pages`` turns raw upload bytes into an ordered list of
``Page`` objects, one per physical page.  Pages without extractable text are
kept with ``text=""`` so page indices always match the source PDF.
"""

import logging
import threading
from io import BytesIO

from docling.datamodel.base_models import DocumentStream
from docling.document_converter import DocumentConverter
from pypdf import PdfReader

from pdfsummary.models import Extractor, Page, UnreadableDocument

logger = logging.getLogger(__name__)

_DOCLING_LOCK = threading.Lock()


class PdfSplitter:
    """Split PDF bytes into pages using the configured extraction backend.

    Args:
        extractor: ``pypdf`` (default, fast text layer extraction),
                   ``docling`` (layout-aware markdown per page), or ``auto``
                   (docling with pypdf fallback).
    """

    def __init__(self, extractor: Extractor = "pypdf") -> None:
        self.extractor = extractor

    def split_pages(self, data: bytes, name: str = "upload.pdf") -> list[Page]:
        """Return the pages of the PDF in ``data``, in page order.

        Raises:
            UnreadableDocument: if ``data`` is empty or cannot be parsed as a PDF.
        """
        if not data:
            raise UnreadableDocument(f"{name}: document is empty")

        logger.info(
            "Running %s extraction on: %s (%s bytes)",
            self.extractor,
            name,
            f"{len(data):,}",
        )
        if self.extractor == "docling":
            with _DOCLING_LOCK:
                pages = _split_with_docling(data, name)
        elif self.extractor == "pypdf":
            pages = _split_with_pypdf(data, name)
        else:
            pages = _split_with_fallback(data, name)

        logger.info(
            "Extraction complete: %d pages, %s chars",
            len(pages),
            f"{sum(len(p.text) for p in pages):,}",
        )
        return pages


def _split_with_fallback(data: bytes, name: str) -> list[Page]:
    """Run docling, then fall back to pypdf page extraction on failure."""
    try:
        # Docling parsing is not always thread-safe under concurrent requests.
        with _DOCLING_LOCK:
            return _split_with_docling(data, name)
    except UnreadableDocument as docling_exc:
        logger.warning(
            "Docling parse failed for %s; attempting pypdf fallback: %s",
            name,
            docling_exc,
        )
        try:
            return _split_with_pypdf(data, name)
        except UnreadableDocument as fallback_exc:
            root_cause = docling_exc.__cause__ or docling_exc
            raise UnreadableDocument(
                f"Failed to read {name}: docling and pypdf fallback failed ({fallback_exc})"
            ) from root_cause


def _split_with_pypdf(data: bytes, name: str) -> list[Page]:
    """Extract the text layer of every page with pypdf.

    Raises:
        UnreadableDocument: wrapping any exception raised by pypdf.
    """
    try:
        reader = PdfReader(BytesIO(data))
        if reader.is_encrypted:
            # Many PDFs are "encrypted" with an empty user password.
            reader.decrypt("")
        return [
            Page(index=i, text=(page.extract_text() or "").strip())
            for i, page in enumerate(reader.pages)
        ]
    except Exception as e:
        raise UnreadableDocument(f"Failed to read {name}: {e}") from e


def _split_with_docling(data: bytes, name: str) -> list[Page]:
    """Convert ``data`` with docling and export each page as markdown.

    Raises:
        UnreadableDocument: wrapping any exception raised by docling.
    """
    try:
        converter = DocumentConverter()
        result = converter.convert(DocumentStream(name=name, stream=BytesIO(data)))
        document = result.document
        # docling numbers pages from 1
        return [
            Page(index=i, text=document.export_to_markdown(page_no=page_no).strip())
            for i, page_no in enumerate(sorted(document.pages))
        ]
    except Exception as e:
        raise UnreadableDocument(f"Failed to read {name}: {e}") from e
