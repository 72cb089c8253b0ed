"""Tests for rubric reranking of search results."""

import asyncio

import pytest

from search_builder.engine import Corpus, Document, RankedHit, rerank_with_rubric, search_with_rubric
from search_builder.errors import InvalidWeightError, ScoringError, SearchError, SearchErrorCode
from search_builder.models import DocumentScore, HybridTrace, RubricIndex, ScoringMethod
from search_builder.services import ScoreResult

SEMANTIC_HITS = [RankedHit("d1", 0.9), RankedHit("d2", 0.5), RankedHit("d3", 0.1)]


def make_index(corpus_id: str, rubric_id: str, totals: dict[str, float]) -> RubricIndex:
    return RubricIndex(
        rubric_id=rubric_id,
        corpus_id=corpus_id,
        scores={
            doc_id: DocumentScore(total_score=total, per_criterion_scores={"relevant": total})
            for doc_id, total in totals.items()
        },
        document_count=len(totals),
    )


class FakeScorer:
    """Live scorer keyed by document text; texts in ``broken`` raise."""

    def __init__(self, totals: dict[str, float], broken: set[str] | None = None):
        self.totals = totals
        self.broken = broken or set()
        self.calls: list[tuple[str, str]] = []

    async def score(self, query, text, criteria) -> ScoreResult:
        self.calls.append((query, text))
        if text in self.broken:
            raise ScoringError("HTTP 503")
        return ScoreResult(
            total_score=self.totals[text],
            per_criterion_scores={c.label: self.totals[text] for c in criteria},
        )


class TestRerankWithRubric:
    @pytest.mark.asyncio
    async def test_uses_precomputed_index(self, pets_corpus, rubric):
        index = make_index("pets", rubric.id, {"d1": 0.0, "d2": 1.0, "d3": 0.5})
        results, trace = await rerank_with_rubric(
            SEMANTIC_HITS, pets_corpus, "semantic", rubric, weight=0.5, rubric_index=index
        )

        assert [r.id for r in results] == ["d2", "d1", "d3"]
        d2 = results[0]
        assert d2.score == pytest.approx(0.75)
        assert d2.retrieval_score == pytest.approx(0.5)
        assert d2.rubric_score == 1.0
        assert d2.original_rank == 2
        assert d2.question_scores == {"relevant": 1.0}

        assert trace.rubric_id == rubric.id
        assert trace.rubric_name == rubric.name
        assert trace.criteria_count == 2
        assert trace.scoring_method == ScoringMethod.AVERAGE
        assert trace.weight == 0.5
        assert trace.results_scored == 3
        assert [entry.id for entry in trace.top_results] == ["d2", "d1", "d3"]
        assert trace.top_results[0].combined_score == pytest.approx(0.75)

    @pytest.mark.asyncio
    async def test_live_scoring_without_index(self, pets_corpus, rubric):
        scorer = FakeScorer({"cats are great": 0.2, "dogs are great": 0.9, "cats and dogs": 0.4})
        results, _ = await rerank_with_rubric(
            SEMANTIC_HITS, pets_corpus, "semantic", rubric, query="pets", weight=1.0, scorer=scorer
        )
        assert [r.id for r in results] == ["d2", "d3", "d1"]
        assert {query for query, _ in scorer.calls} == {"pets"}
        assert len(scorer.calls) == 3

    @pytest.mark.asyncio
    async def test_index_hits_are_not_rescored(self, pets_corpus, rubric):
        index = make_index("pets", rubric.id, {"d1": 0.1, "d2": 0.2, "d3": 0.3})
        scorer = FakeScorer({})
        await rerank_with_rubric(
            SEMANTIC_HITS, pets_corpus, "semantic", rubric, rubric_index=index, scorer=scorer
        )
        assert scorer.calls == []

    @pytest.mark.asyncio
    async def test_failed_live_score_keeps_retrieval_score(self, pets_corpus, rubric):
        scorer = FakeScorer(
            {"cats are great": 0.0, "cats and dogs": 0.0}, broken={"dogs are great"}
        )
        results, _ = await rerank_with_rubric(
            SEMANTIC_HITS, pets_corpus, "semantic", rubric, weight=0.5, scorer=scorer, initial_delay=0
        )
        d2 = next(r for r in results if r.id == "d2")
        assert d2.score == pytest.approx(0.5)
        assert d2.rubric_score == 0.0
        assert d2.question_scores is None
        # d1: 0.45, d2 unscored at 0.5, d3: 0.05
        assert [r.id for r in results] == ["d2", "d1", "d3"]

    @pytest.mark.asyncio
    async def test_live_score_is_retried(self, pets_corpus, rubric):
        scorer = FakeScorer({"cats are great": 0.0, "dogs are great": 1.0, "cats and dogs": 0.0})
        original_score = scorer.score
        failures = {"dogs are great": 1}

        async def flaky_score(query, text, criteria):
            if failures.get(text, 0) > 0:
                failures[text] -= 1
                scorer.calls.append((query, text))
                raise ScoringError("HTTP 503")
            return await original_score(query, text, criteria)

        scorer.score = flaky_score
        results, _ = await rerank_with_rubric(
            SEMANTIC_HITS, pets_corpus, "semantic", rubric, weight=0.5, scorer=scorer,
            max_retries=2, initial_delay=0,
        )
        d2 = next(r for r in results if r.id == "d2")
        assert d2.rubric_score == 1.0
        assert d2.score == pytest.approx(0.75)
        assert [text for _, text in scorer.calls].count("dogs are great") == 2

    @pytest.mark.asyncio
    async def test_slow_live_score_times_out(self, pets_corpus, rubric):
        class SlowScorer(FakeScorer):
            async def score(self, query, text, criteria):
                if text == "dogs are great":
                    self.calls.append((query, text))
                    await asyncio.sleep(1)
                return await super().score(query, text, criteria)

        scorer = SlowScorer({"cats are great": 0.0, "cats and dogs": 0.0})
        results, _ = await rerank_with_rubric(
            SEMANTIC_HITS, pets_corpus, "semantic", rubric, weight=0.5, scorer=scorer,
            max_retries=1, initial_delay=0, timeout=0.01,
        )
        d2 = next(r for r in results if r.id == "d2")
        assert d2.rubric_score == 0.0
        assert d2.score == pytest.approx(0.5)
        assert [text for _, text in scorer.calls].count("dogs are great") == 2

    @pytest.mark.asyncio
    async def test_without_any_rubric_source_order_is_kept(self, pets_corpus, rubric):
        results, _ = await rerank_with_rubric(SEMANTIC_HITS, pets_corpus, "semantic", rubric)
        assert [r.id for r in results] == ["d1", "d2", "d3"]
        assert [r.original_rank for r in results] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_weight_zero_keeps_retrieval_order(self, pets_corpus, rubric):
        index = make_index("pets", rubric.id, {"d1": 0.0, "d2": 0.5, "d3": 1.0})
        results, _ = await rerank_with_rubric(
            SEMANTIC_HITS, pets_corpus, "semantic", rubric, weight=0.0, rubric_index=index
        )
        assert [r.id for r in results] == ["d1", "d2", "d3"]

    @pytest.mark.asyncio
    async def test_keyword_scores_are_normalized(self, pets_corpus, rubric):
        results, _ = await rerank_with_rubric(
            [RankedHit("d1", 4.0)], pets_corpus, "keyword", rubric, weight=0.0
        )
        assert results[0].retrieval_score == pytest.approx(0.4)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("weight", [-0.5, 1.1])
    async def test_invalid_weight_fails_before_scoring(self, pets_corpus, rubric, weight):
        scorer = FakeScorer({})
        with pytest.raises(InvalidWeightError):
            await rerank_with_rubric(
                SEMANTIC_HITS, pets_corpus, "semantic", rubric, weight=weight, scorer=scorer
            )
        assert scorer.calls == []

    @pytest.mark.asyncio
    async def test_index_for_another_corpus(self, pets_corpus, rubric):
        index = make_index("elsewhere", rubric.id, {"d1": 1.0})
        with pytest.raises(SearchError) as exc_info:
            await rerank_with_rubric(
                SEMANTIC_HITS, pets_corpus, "semantic", rubric, rubric_index=index
            )
        assert exc_info.value.code == SearchErrorCode.SEARCH_FAILED

    @pytest.mark.asyncio
    async def test_trace_keeps_top_five(self, rubric):
        corpus = Corpus(
            id="many",
            name="Many",
            documents=[Document(id=f"doc-{i}", text=f"text {i}") for i in range(8)],
        )
        hits = [RankedHit(f"doc-{i}", 1 - i / 10) for i in range(8)]
        results, trace = await rerank_with_rubric(hits, corpus, "semantic", rubric, limit=6)
        assert len(results) == 6
        assert trace.results_scored == 6
        assert [entry.rank for entry in trace.top_results] == [1, 2, 3, 4, 5]


class TestSearchWithRubric:
    @pytest.mark.asyncio
    async def test_hybrid_search_reranked(self, pets_corpus, pets_handles, rubric):
        index = make_index("pets", rubric.id, {"d1": 0.0, "d2": 1.0, "d3": 0.0})
        results, trace = await search_with_rubric(
            "hybrid", "cats", 2, pets_corpus, pets_handles, rubric, weight=1.0, rubric_index=index
        )

        # d2 was last by retrieval but wins on rubric; d1 and d3 tie and keep retrieval order
        assert [r.id for r in results] == ["d2", "d1"]
        assert results[0].original_rank == 3
        assert isinstance(trace, HybridTrace)
        assert trace.rubric_scoring is not None
        assert trace.rubric_scoring.results_scored == 2
        assert trace.model_dump(by_alias=True)["rubricScoring"]["rubricId"] == rubric.id

    @pytest.mark.asyncio
    async def test_search_errors_propagate(self, pets_corpus, rubric):
        with pytest.raises(SearchError) as exc_info:
            await search_with_rubric("keyword", "cats", 5, pets_corpus, None, rubric)
        assert exc_info.value.code == SearchErrorCode.NOT_READY

    @pytest.mark.asyncio
    async def test_invalid_weight_before_search(self, rubric):
        # No corpus at all: the weight check must come first
        with pytest.raises(InvalidWeightError):
            await search_with_rubric("keyword", "cats", 5, None, None, rubric, weight=3)
