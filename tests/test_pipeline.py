"""Tests for pdfsummary/pipeline.py — map/reduce orchestration (stubbed model)."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from conftest import EchoClient, StubSplitter, echo
from pdfsummary.models import (
    Config,
    EmptyDocument,
    ModelError,
    ModelUnavailable,
    Page,
    SummaryResult,
    UnreadableDocument,
)
from pdfsummary.pipeline import SummarizationPipeline


def _pages(*texts: str) -> list[Page]:
    return [Page(index=i, text=t) for i, t in enumerate(texts)]


def _pipeline(client, texts=(), **kwargs) -> SummarizationPipeline:
    return SummarizationPipeline(client, StubSplitter(list(texts)), **kwargs)


# ---------------------------------------------------------------------------
# Call count and prompt contract
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("n_pages", [1, 2, 5])
def test_issues_one_call_per_page_plus_one(echo_client, n_pages):
    pipeline = _pipeline(echo_client)
    pipeline.summarize_pages(_pages(*[f"p{i}" for i in range(n_pages)]))
    assert len(echo_client.prompts) == n_pages + 1


def test_two_page_document_with_echo_client(echo_client):
    pipeline = _pipeline(echo_client)
    result = pipeline.summarize_pages(_pages("A", "B"))

    page_a = echo("Summarize this page: A")
    page_b = echo("Summarize this page: B")
    final_prompt = "Summarize the whole document: " + page_a + "\n" + page_b

    assert echo_client.prompts == [
        "Summarize this page: A",
        "Summarize this page: B",
        final_prompt,
    ]
    assert [s.text for s in result.page_summaries] == [page_a, page_b]
    assert result.summary == echo(final_prompt)


def test_result_carries_page_indices(echo_client):
    result = _pipeline(echo_client).summarize_pages(_pages("x", "y", "z"))
    assert isinstance(result, SummaryResult)
    assert [s.index for s in result.page_summaries] == [0, 1, 2]
    assert result.page_count == 3


def test_reduce_call_is_last(echo_client):
    _pipeline(echo_client).summarize_pages(_pages("a", "b", "c"))
    assert echo_client.prompts[-1].startswith("Summarize the whole document: ")
    assert all(p.startswith("Summarize this page: ") for p in echo_client.prompts[:-1])


def test_identical_input_gives_identical_output(echo_client):
    pipeline = _pipeline(echo_client)
    first = pipeline.summarize_pages(_pages("same", "text"))
    second = pipeline.summarize_pages(_pages("same", "text"))
    assert first == second


# ---------------------------------------------------------------------------
# Zero pages
# ---------------------------------------------------------------------------


def test_empty_document_raises_by_default(echo_client):
    with pytest.raises(EmptyDocument):
        _pipeline(echo_client).summarize_pages([])
    assert echo_client.prompts == []


def test_empty_document_is_an_unreadable_document(echo_client):
    with pytest.raises(UnreadableDocument):
        _pipeline(echo_client).summarize_pages([])


def test_empty_document_summarize_policy_makes_one_reduce_call(echo_client):
    pipeline = _pipeline(echo_client, empty_document="summarize")
    result = pipeline.summarize_pages([])

    assert echo_client.prompts == ["Summarize the whole document: "]
    assert result.summary == echo("Summarize the whole document: ")
    assert result.page_summaries == []


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


def test_concurrent_map_preserves_page_order_in_reduce_prompt():
    """Earlier pages finish last; the reduce prompt still follows page order."""
    delays = {"Summarize this page: p0": 0.15, "Summarize this page: p1": 0.05}

    def slow_reply(prompt: str) -> str:
        time.sleep(delays.get(prompt, 0.0))
        return prompt.removeprefix("Summarize this page: ").upper()

    client = EchoClient(reply=slow_reply)
    pipeline = _pipeline(client, workers=3)
    pipeline.summarize_pages(_pages("p0", "p1", "p2"))

    assert client.prompts[-1] == "Summarize the whole document: P0\nP1\nP2"
    assert len(client.prompts) == 4


def test_concurrent_map_runs_calls_in_parallel():
    barrier = threading.Barrier(2, timeout=5)

    def reply(prompt: str) -> str:
        if prompt.startswith("Summarize this page: "):
            barrier.wait()  # deadlocks (BrokenBarrierError) if calls are sequential
        return "ok"

    pipeline = _pipeline(EchoClient(reply=reply), workers=2)
    result = pipeline.summarize_pages(_pages("a", "b"))
    assert result.summary == "ok"


def test_workers_must_be_positive(echo_client):
    with pytest.raises(ValueError):
        _pipeline(echo_client, workers=0)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


def test_model_unavailable_on_page_aborts_without_reduce_call():
    client = MagicMock()
    client.complete.side_effect = [
        "summary of A",
        ModelUnavailable("connection refused"),
        "summary of C",
        "final",
    ]
    pipeline = _pipeline(client)

    with pytest.raises(ModelUnavailable, match="connection refused"):
        pipeline.summarize_pages(_pages("A", "B", "C"))

    assert client.complete.call_count == 2


def test_model_error_on_reduce_call_surfaces():
    def reply(prompt: str) -> str:
        if prompt.startswith("Summarize the whole document: "):
            raise ModelError("HTTP 500")
        return "page"

    with pytest.raises(ModelError):
        _pipeline(EchoClient(reply=reply)).summarize_pages(_pages("A"))


def test_concurrent_failure_surfaces_and_skips_reduce():
    def reply(prompt: str) -> str:
        if prompt == "Summarize this page: bad":
            raise ModelUnavailable("timed out")
        return "fine"

    client = EchoClient(reply=reply)
    pipeline = _pipeline(client, workers=4)

    with pytest.raises(ModelUnavailable):
        pipeline.summarize_pages(_pages("ok", "bad", "ok", "ok"))

    assert not any(p.startswith("Summarize the whole document") for p in client.prompts)


def test_concurrent_failure_is_logged(caplog):
    def reply(prompt: str) -> str:
        raise ModelError("boom")

    with caplog.at_level("ERROR", logger="pdfsummary.pipeline"):
        with pytest.raises(ModelError):
            _pipeline(EchoClient(reply=reply), workers=2).summarize_pages(_pages("a", "b"))

    assert any("failed" in r.message for r in caplog.records)


# ---------------------------------------------------------------------------
# summarize_document
# ---------------------------------------------------------------------------


def test_summarize_document_splits_then_summarizes(echo_client):
    splitter = StubSplitter(["A", "B"])
    pipeline = SummarizationPipeline(echo_client, splitter)

    result = pipeline.summarize_document(b"%PDF-1.4 fake")

    assert splitter.calls == [b"%PDF-1.4 fake"]
    assert len(echo_client.prompts) == 3
    assert result.summary.startswith("echo(Summarize the whole document: ")


def test_unreadable_document_aborts_before_any_model_call(echo_client):
    splitter = MagicMock()
    splitter.split_pages.side_effect = UnreadableDocument("not a PDF")
    pipeline = SummarizationPipeline(echo_client, splitter)

    with pytest.raises(UnreadableDocument):
        pipeline.summarize_document(b"garbage")

    assert echo_client.prompts == []


def test_summarize_document_forwards_name(echo_client):
    splitter = MagicMock()
    splitter.split_pages.return_value = _pages("A")
    pipeline = SummarizationPipeline(echo_client, splitter)

    pipeline.summarize_document(b"data", name="report.pdf")

    splitter.split_pages.assert_called_once_with(b"data", name="report.pdf")


# ---------------------------------------------------------------------------
# from_config
# ---------------------------------------------------------------------------


def test_from_config_copies_settings(echo_client):
    config = Config(workers=4, empty_document="summarize")
    pipeline = SummarizationPipeline.from_config(config, echo_client, StubSplitter([]))
    assert pipeline.workers == 4
    assert pipeline.empty_document == "summarize"
    assert pipeline.show_progress is False


def test_logs_start_and_completion(echo_client, caplog):
    with caplog.at_level("INFO", logger="pdfsummary.pipeline"):
        _pipeline(echo_client).summarize_pages(_pages("a", "b"))

    messages = [r.message for r in caplog.records]
    assert any("Summarizing 2 pages" in m for m in messages)
    assert any("Document summary ready" in m for m in messages)
