"""Shared fixtures for search-builder tests."""

import pytest

from search_builder.engine import Corpus, Document, EngineRegistry
from search_builder.models import Rubric, RubricCriterion


@pytest.fixture
def pets_corpus() -> Corpus:
    return Corpus(
        id="pets",
        name="Pets",
        documents=[
            Document(id="d1", text="cats are great"),
            Document(id="d2", text="dogs are great"),
            Document(id="d3", text="cats and dogs"),
        ],
    )


@pytest.fixture
def registry() -> EngineRegistry:
    return EngineRegistry()


@pytest.fixture
def pets_handles(registry, pets_corpus):
    return registry.build(pets_corpus)


@pytest.fixture
def rubric() -> Rubric:
    return Rubric(
        id="rubric-1",
        name="Helpful answers",
        criteria=[
            RubricCriterion(label="relevant", question="Does the text answer the question?"),
            RubricCriterion(label="concise", question="Is the text short and to the point?"),
        ],
    )


@pytest.fixture
def make_corpus():
    """Factory for corpora of ``count`` documents with distinct texts."""

    def _make(corpus_id: str, count: int, is_ready: bool = True) -> Corpus:
        return Corpus(
            id=corpus_id,
            name=corpus_id.title(),
            documents=[
                Document(id=f"{corpus_id}-{i}", text=f"document number {i} " + "x" * i)
                for i in range(count)
            ],
            is_ready=is_ready,
        )

    return _make
