"""Tests for rubric batch indexing and indexing jobs."""

import asyncio
from collections import Counter

import pytest

from search_builder.engine import Corpus, Document
from search_builder.errors import IndexingCancelledError
from search_builder.models import IndexJobStatus
from search_builder.services import (
    RubricIndexingJob,
    RubricIndexStore,
    ScoreResult,
    build_rubric_index,
    index_rubric,
)
from search_builder.services.retry import MAX_RETRIES


def expected_score(text: str) -> float:
    return (len(text) % 10) / 10


class FakeOracle:
    """Deterministic scorer that records calls and in-flight concurrency.

    ``failures`` maps a document text to how many times its call fails
    before succeeding (``-1`` fails forever).
    """

    def __init__(self, failures: dict[str, int] | None = None, delay: float = 0.0):
        self.failures = failures or {}
        self.delay = delay
        self.calls: Counter[str] = Counter()
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, query, text, criteria) -> ScoreResult:
        self.calls[text] += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            allowed = self.failures.get(text, 0)
            if allowed == -1 or self.calls[text] <= allowed:
                raise ConnectionError(f"oracle unavailable for {text!r}")
            return ScoreResult(
                total_score=expected_score(text),
                per_criterion_scores={c.label: 0.5 for c in criteria},
            )
        finally:
            self.in_flight -= 1


class TestBuildRubricIndex:
    @pytest.mark.asyncio
    async def test_one_score_per_document(self, rubric, make_corpus):
        corpus = make_corpus("notes", 25)
        index = await build_rubric_index(rubric, corpus, FakeOracle(), initial_delay=0)

        assert index.rubric_id == rubric.id
        assert index.corpus_id == "notes"
        assert index.document_count == 25
        assert len(index.scores) == 25
        assert index.failed_documents == 0
        for doc in corpus.documents:
            score = index.get(doc.id)
            assert score.total_score == pytest.approx(expected_score(doc.text))
            assert score.per_criterion_scores == {"relevant": 0.5, "concise": 0.5}

    @pytest.mark.asyncio
    async def test_concurrency_cap_does_not_change_scores(self, rubric, make_corpus):
        corpus = make_corpus("notes", 30)
        serial = await build_rubric_index(rubric, corpus, FakeOracle(), concurrency_cap=1)
        parallel = await build_rubric_index(rubric, corpus, FakeOracle(), concurrency_cap=50)
        assert serial.scores == parallel.scores
        assert serial.document_count == parallel.document_count == 30

    @pytest.mark.asyncio
    async def test_in_flight_calls_never_exceed_cap(self, rubric, make_corpus):
        oracle = FakeOracle(delay=0.001)
        await build_rubric_index(rubric, make_corpus("notes", 20), oracle, concurrency_cap=3)
        assert oracle.max_in_flight == 3

    @pytest.mark.asyncio
    async def test_blank_documents_are_not_sent(self, rubric):
        corpus = Corpus(
            id="mixed",
            name="Mixed",
            documents=[
                Document(id="empty", text=""),
                Document(id="blank", text="   \n"),
                Document(id="real", text="real text"),
            ],
        )
        oracle = FakeOracle()
        index = await build_rubric_index(rubric, corpus, oracle)

        assert set(oracle.calls) == {"real text"}
        assert index.get("empty").total_score == 0
        assert index.get("blank").total_score == 0
        assert index.document_count == 3
        assert index.failed_documents == 0

    @pytest.mark.asyncio
    async def test_retries_then_zero_fallback(self, rubric):
        corpus = Corpus(
            id="flaky",
            name="Flaky",
            documents=[
                Document(id="recovers", text="recovers after retries"),
                Document(id="broken", text="never recovers"),
                Document(id="fine", text="fine"),
            ],
        )
        oracle = FakeOracle(
            failures={
                "recovers after retries": MAX_RETRIES,
                "never recovers": MAX_RETRIES + 1,
            }
        )
        index = await build_rubric_index(
            rubric, corpus, oracle, max_retries=MAX_RETRIES, initial_delay=0
        )

        assert index.get("recovers").total_score == pytest.approx(
            expected_score("recovers after retries")
        )
        assert index.get("broken").total_score == 0
        assert index.get("broken").per_criterion_scores == {}
        assert oracle.calls["never recovers"] == MAX_RETRIES + 1
        assert index.failed_documents == 1
        assert len(index.scores) == 3

    @pytest.mark.asyncio
    async def test_progress_is_monotonic(self, rubric, make_corpus):
        corpus = make_corpus("notes", 12)
        seen: list[tuple[int, int, str]] = []

        await build_rubric_index(
            rubric,
            corpus,
            FakeOracle(delay=0.001),
            concurrency_cap=4,
            on_progress=lambda done, total, name: seen.append((done, total, name)),
        )

        assert [done for done, _, _ in seen] == list(range(1, 13))
        assert {(total, name) for _, total, name in seen} == {(12, "Notes")}

    @pytest.mark.asyncio
    async def test_async_progress_callback(self, rubric, make_corpus):
        seen: list[int] = []

        async def on_progress(done, total, name):
            seen.append(done)

        await build_rubric_index(rubric, make_corpus("notes", 3), FakeOracle(), on_progress=on_progress)
        assert seen == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_empty_corpus(self, rubric):
        index = await build_rubric_index(rubric, Corpus(id="none", name="None"), FakeOracle())
        assert index.document_count == 0
        assert index.scores == {}

    @pytest.mark.asyncio
    async def test_invalid_cap(self, rubric, make_corpus):
        with pytest.raises(ValueError):
            await build_rubric_index(rubric, make_corpus("notes", 2), FakeOracle(), concurrency_cap=0)

    @pytest.mark.asyncio
    async def test_scores_are_clamped(self, rubric):
        async def generous(query, text, criteria):
            return ScoreResult(total_score=1.7, per_criterion_scores={"relevant": -0.2})

        corpus = Corpus(id="c", name="C", documents=[Document(id="a", text="text")])
        index = await build_rubric_index(rubric, corpus, generous)
        assert index.get("a").total_score == 1.0
        assert index.get("a").per_criterion_scores == {"relevant": 0.0}

    @pytest.mark.asyncio
    async def test_slow_call_times_out_to_zero(self, rubric):
        calls: Counter[str] = Counter()

        async def oracle(query, text, criteria):
            calls[text] += 1
            if text == "slow":
                await asyncio.sleep(1)
            return ScoreResult(total_score=0.8)

        corpus = Corpus(
            id="mixed",
            name="Mixed",
            documents=[Document(id="slow", text="slow"), Document(id="quick", text="quick")],
        )
        index = await build_rubric_index(
            rubric, corpus, oracle, max_retries=1, initial_delay=0, timeout=0.01
        )

        assert index.get("slow").total_score == 0
        assert index.get("quick").total_score == pytest.approx(0.8)
        assert index.failed_documents == 1
        assert calls["slow"] == 2

    @pytest.mark.asyncio
    async def test_progress_error_stops_all_workers(self, rubric, make_corpus):
        oracle = FakeOracle(delay=0.01)

        def on_progress(done, total, name):
            raise RuntimeError("progress sink closed")

        with pytest.raises(RuntimeError, match="progress sink closed"):
            await build_rubric_index(
                rubric, make_corpus("notes", 10), oracle, concurrency_cap=2, on_progress=on_progress
            )

        calls_at_failure = sum(oracle.calls.values())
        await asyncio.sleep(0.05)
        assert sum(oracle.calls.values()) == calls_at_failure
        assert oracle.in_flight == 0


class TestRubricIndexingJob:
    @pytest.mark.asyncio
    async def test_completes_and_stores_indexes(self, rubric, make_corpus):
        store = RubricIndexStore()
        created = []
        job = RubricIndexingJob(
            rubric,
            [make_corpus("alpha", 3), make_corpus("beta", 2)],
            FakeOracle(),
            on_index_created=created.append,
            store=store,
        )
        assert job.status == IndexJobStatus.PENDING

        indexes = await job.run()

        assert job.status == IndexJobStatus.COMPLETED
        assert [index.corpus_id for index in indexes] == ["alpha", "beta"]
        assert created == indexes
        assert store.get(rubric.id, "beta") is indexes[1]
        assert job.completed_corpora == job.total_corpora == 2
        assert job.progress == (2, 2, "Beta")
        assert job.error is None

    @pytest.mark.asyncio
    async def test_skips_unready_and_empty_corpora(self, rubric, make_corpus):
        job = RubricIndexingJob(
            rubric,
            [
                make_corpus("loading", 3, is_ready=False),
                Corpus(id="empty", name="Empty"),
                make_corpus("ready", 2),
            ],
            FakeOracle(),
        )
        assert job.total_corpora == 1
        indexes = await job.run()
        assert [index.corpus_id for index in indexes] == ["ready"]

    @pytest.mark.asyncio
    async def test_cancel_between_corpora(self, rubric, make_corpus):
        corpora = [make_corpus("alpha", 3), make_corpus("beta", 3), make_corpus("gamma", 3)]
        oracle = FakeOracle()
        job = RubricIndexingJob(rubric, corpora, oracle)
        # Cancel once the first corpus is done; the second never starts
        job.on_index_created = lambda index: job.cancel()

        with pytest.raises(IndexingCancelledError):
            await job.run()

        assert job.status == IndexJobStatus.CANCELLED
        assert job.cancel_requested
        assert [index.corpus_id for index in job.indexes] == ["alpha"]
        assert len(job.indexes[0].scores) == 3
        assert sum(oracle.calls.values()) == 3

    @pytest.mark.asyncio
    async def test_failure_marks_job_failed(self, rubric, make_corpus):
        def explode(done, total, name):
            raise RuntimeError("progress sink down")

        job = RubricIndexingJob(
            rubric, [make_corpus("alpha", 2)], FakeOracle(), concurrency_cap=1, on_progress=explode
        )
        with pytest.raises(RuntimeError, match="progress sink down"):
            await job.run()
        assert job.status == IndexJobStatus.FAILED
        assert job.error == "progress sink down"

    @pytest.mark.asyncio
    async def test_cannot_run_twice(self, rubric, make_corpus):
        job = RubricIndexingJob(rubric, [make_corpus("alpha", 1)], FakeOracle())
        await job.run()
        with pytest.raises(RuntimeError):
            await job.run()

    @pytest.mark.asyncio
    async def test_index_rubric(self, rubric, make_corpus):
        indexes = await index_rubric(
            rubric, [make_corpus("alpha", 4), make_corpus("beta", 5)], FakeOracle(), concurrency_cap=2
        )
        assert [index.document_count for index in indexes] == [4, 5]
