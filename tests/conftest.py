"""Shared pytest fixtures for the pdfsummary test suite."""

import logging
import threading
from io import BytesIO

import pytest
from pypdf import PdfWriter

from pdfsummary.models import Page


# ---------------------------------------------------------------------------
# Logger isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_pdfsummary_logger():
    """Clear the pdfsummary logger between tests.

    Tests that call ``main()`` trigger ``setup_logging()``, which attaches
    handlers and sets ``propagate=False``.  Without this fixture the state
    leaks into subsequent tests and breaks ``caplog`` capture.
    """
    logger = logging.getLogger("pdfsummary")
    for h in logger.handlers[:]:
        try:
            h.close()
        except Exception:
            pass
        logger.removeHandler(h)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    yield
    for h in logger.handlers[:]:
        try:
            h.close()
        except Exception:
            pass
        logger.removeHandler(h)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Stubs
# ---------------------------------------------------------------------------


def echo(prompt: str) -> str:
    """Deterministic stand-in for a model completion."""
    return f"echo({prompt})"


class EchoClient:
    """Model client stub that records every prompt and echoes it back."""

    def __init__(self, reply=echo) -> None:
        self.reply = reply
        self.prompts: list[str] = []
        self._lock = threading.Lock()

    def complete(self, prompt: str) -> str:
        with self._lock:
            self.prompts.append(prompt)
        return self.reply(prompt)


class StubSplitter:
    """Document splitter stub returning a fixed list of page texts."""

    def __init__(self, texts: list[str]) -> None:
        self.texts = texts
        self.calls: list[bytes] = []

    def split_pages(self, data: bytes, name: str = "upload.pdf") -> list[Page]:
        self.calls.append(data)
        return [Page(index=i, text=t) for i, t in enumerate(self.texts)]


@pytest.fixture
def echo_client() -> EchoClient:
    return EchoClient()


# ---------------------------------------------------------------------------
# PDFs
# ---------------------------------------------------------------------------


def make_blank_pdf(pages: int) -> bytes:
    """Build an in-memory PDF with ``pages`` blank US-letter pages."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    buf = BytesIO()
    writer.write(buf)
    return buf.getvalue()


@pytest.fixture
def three_page_pdf() -> bytes:
    return make_blank_pdf(3)
