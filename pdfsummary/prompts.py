"""Prompt builders for the two summarization passes.

Both prompts are a fixed instruction followed directly by the text to
summarize.  Page summaries are joined with single newlines, in page order.
"""

from typing import Sequence

PAGE_PROMPT = "Summarize this page: "
DOCUMENT_PROMPT = "Summarize the whole document: "


def build_page_prompt(page_text: str) -> str:
    """Prompt for the per-page (map) call."""
    return PAGE_PROMPT + page_text


def build_document_prompt(page_summaries: Sequence[str]) -> str:
    """Prompt for the final (reduce) call.

    Args:
        page_summaries: Per-page summaries in original page order.  An empty
            sequence yields the bare instruction.
    """
    return DOCUMENT_PROMPT + "\n".join(page_summaries)
