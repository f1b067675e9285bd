"""Per-document orchestration — two-pass (map, then reduce) summarization.

Map: one LLM call per page, ``"Summarize this page: " + page text``.
Reduce: one more call over the page summaries joined by newlines in page
order, ``"Summarize the whole document: " + joined``.

A document with N pages costs exactly N + 1 model calls.  Per-page calls do
not depend on each other and may run on a thread pool (``workers > 1``); the
reduce call only starts once every page summary is in.  Any failure aborts
the whole document and no partial summary is returned.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Protocol, Sequence

from tqdm.auto import tqdm

from pdfsummary.models import (
    Config,
    EmptyDocument,
    EmptyDocumentPolicy,
    Page,
    PageSummary,
    SummaryResult,
)
from pdfsummary.prompts import build_document_prompt, build_page_prompt

logger = logging.getLogger(__name__)


class ModelClient(Protocol):
    """Anything that turns a prompt into a completion (see ``llm.LMStudioClient``)."""

    def complete(self, prompt: str) -> str: ...


class DocumentSplitter(Protocol):
    """Anything that turns PDF bytes into ordered pages (see ``parser.PdfSplitter``)."""

    def split_pages(self, data: bytes, name: str = ...) -> list[Page]: ...


class SummarizationPipeline:
    """Summarize documents with an injected model client and splitter.

    Args:
        client:         Model client used for every map and reduce call.
        splitter:       Document splitter used by ``summarize_document``.
        workers:        Maximum concurrent per-page calls; ``1`` is sequential.
        empty_document: ``"error"`` raises ``EmptyDocument`` for zero pages
                        before any model call; ``"summarize"`` still issues the
                        reduce call with an empty page-summary block.
        show_progress:  Display a tqdm bar over the map step.
    """

    def __init__(
        self,
        client: ModelClient,
        splitter: DocumentSplitter,
        workers: int = 1,
        empty_document: EmptyDocumentPolicy = "error",
        show_progress: bool = False,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.client = client
        self.splitter = splitter
        self.workers = workers
        self.empty_document = empty_document
        self.show_progress = show_progress

    @classmethod
    def from_config(
        cls,
        config: Config,
        client: ModelClient,
        splitter: DocumentSplitter,
        show_progress: bool = False,
    ) -> "SummarizationPipeline":
        return cls(
            client=client,
            splitter=splitter,
            workers=config.workers,
            empty_document=config.empty_document,
            show_progress=show_progress,
        )

    def summarize_document(self, data: bytes, name: str = "upload.pdf") -> SummaryResult:
        """Split ``data`` into pages and summarize them.

        Raises:
            UnreadableDocument: from the splitter, before any model call.
            EmptyDocument:      zero pages and ``empty_document="error"``.
            ModelUnavailable:   a model call could not reach the server.
            ModelError:         a model call returned an error or empty text.
        """
        pages = self.splitter.split_pages(data, name=name)
        return self.summarize_pages(pages)

    def summarize_pages(self, pages: Sequence[Page]) -> SummaryResult:
        """Run the map and reduce passes over ``pages`` (given in page order)."""
        if not pages and self.empty_document == "error":
            raise EmptyDocument("Document has no pages to summarize")

        logger.info("Summarizing %d pages (workers=%d)", len(pages), self.workers)
        t0 = time.monotonic()

        page_summaries = self._map_pages(pages)
        prompt = build_document_prompt([s.text for s in page_summaries])
        logger.debug("Document prompt: %s chars", f"{len(prompt):,}")
        summary = self.client.complete(prompt)

        logger.info(
            "Document summary ready (%.1fs, %s chars)",
            time.monotonic() - t0,
            f"{len(summary):,}",
        )
        return SummaryResult(summary=summary, page_summaries=page_summaries)

    # ------------------------------------------------------------------
    # Map step
    # ------------------------------------------------------------------

    def _summarize_page(self, page: Page) -> PageSummary:
        prompt = build_page_prompt(page.text)
        logger.debug("Page %d prompt: %s chars", page.index, f"{len(prompt):,}")
        return PageSummary(index=page.index, text=self.client.complete(prompt))

    def _map_pages(self, pages: Sequence[Page]) -> list[PageSummary]:
        """Summarize every page; the result list follows the input order."""
        results: list[PageSummary | None] = [None] * len(pages)

        with tqdm(
            total=len(pages),
            desc="Summarize",
            unit="page",
            disable=not self.show_progress,
            leave=False,
        ) as progress:
            if self.workers == 1 or len(pages) <= 1:
                for pos, page in enumerate(pages):
                    results[pos] = self._summarize_page(page)
                    progress.update(1)
            else:
                self._map_concurrently(pages, results, progress)

        return [r for r in results if r is not None]

    def _map_concurrently(
        self,
        pages: Sequence[Page],
        results: list[PageSummary | None],
        progress,
    ) -> None:
        executor = ThreadPoolExecutor(
            max_workers=min(self.workers, len(pages)),
            thread_name_prefix="page",
        )
        try:
            futures_to_pos = {
                executor.submit(self._summarize_page, page): pos
                for pos, page in enumerate(pages)
            }
            for future in as_completed(futures_to_pos):
                pos = futures_to_pos[future]
                try:
                    results[pos] = future.result()
                except Exception as exc:
                    logger.error("Page %d failed: %s", pages[pos].index, exc)
                    raise
                progress.update(1)
        finally:
            # Drop queued pages after a failure; in-flight calls run to completion.
            executor.shutdown(wait=True, cancel_futures=True)
