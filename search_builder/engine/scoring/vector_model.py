"""TF-IDF vector space model for semantic search.

This module projects documents and queries into sparse, L2-normalized TF-IDF
vectors:
- Smoothed IDF: ``idf(t) = ln((N + 1) / (df(t) + 1)) + 1``
- Term frequency: ``tf(t) = count(t) / len(tokens)``
- Similarity is the dot product, which equals cosine similarity because
  every vector is already unit length (or zero)
"""

import logging
import math
from collections import Counter
from collections.abc import Sequence

from ..core.document import Document, RankedHit
from .text import prepare_text

logger = logging.getLogger(__name__)

# Sparse vector: vocabulary index → weight. Absent indices are zero.
SparseVector = dict[int, float]


class TfidfModel:
    """Vocabulary and IDF table fitted on a tokenized document set."""

    def __init__(self) -> None:
        self.vocabulary: dict[str, int] = {}
        self.idf: list[float] = []
        self.document_count = 0

    def fit(self, tokenized_documents: Sequence[Sequence[str]]) -> "TfidfModel":
        """Build the vocabulary and smoothed IDF table.

        Terms are numbered in order of first appearance.
        """
        vocabulary: dict[str, int] = {}
        document_frequency: list[int] = []
        for tokens in tokenized_documents:
            for term in dict.fromkeys(tokens):
                position = vocabulary.get(term)
                if position is None:
                    vocabulary[term] = len(document_frequency)
                    document_frequency.append(1)
                else:
                    document_frequency[position] += 1

        n = len(tokenized_documents)
        self.vocabulary = vocabulary
        self.idf = [math.log((n + 1) / (df + 1)) + 1.0 for df in document_frequency]
        self.document_count = n
        return self

    def transform(self, tokens: Sequence[str]) -> SparseVector:
        """Project tokens into an L2-normalized TF-IDF vector.

        Out-of-vocabulary tokens contribute nothing. Empty input, or input made
        only of unknown terms, yields the zero vector.
        """
        if not tokens:
            return {}

        total = len(tokens)
        vector: SparseVector = {}
        for term, count in Counter(tokens).items():
            position = self.vocabulary.get(term)
            if position is None:
                continue
            vector[position] = (count / total) * self.idf[position]

        norm = math.sqrt(sum(weight * weight for weight in vector.values()))
        if norm == 0:
            return {}
        return {position: weight / norm for position, weight in vector.items()}

    def to_dense(self, vector: SparseVector) -> list[float]:
        """Expand a sparse vector to a list the size of the vocabulary."""
        dense = [0.0] * len(self.vocabulary)
        for position, weight in vector.items():
            dense[position] = weight
        return dense


def similarity(a: SparseVector, b: SparseVector) -> float:
    """Dot product of two sparse vectors (cosine for normalized vectors)."""
    if len(a) > len(b):
        a, b = b, a
    return sum(weight * b.get(position, 0.0) for position, weight in a.items())


class VectorIndex:
    """Documents projected through a fitted ``TfidfModel``.

    Built once and read-only afterwards.
    """

    def __init__(self, documents: Sequence[Document]):
        tokenized = [prepare_text(_document_text(doc)) for doc in documents]
        self.model = TfidfModel().fit(tokenized)
        self.document_ids: list[str] = [doc.id for doc in documents]
        self.vectors: list[SparseVector] = [self.model.transform(tokens) for tokens in tokenized]

    def __len__(self) -> int:
        return len(self.document_ids)

    def search(self, query: str, limit: int) -> list[RankedHit]:
        """Rank every document by similarity to the query.

        Zero-similarity documents are still returned, after all positive ones,
        so an all-OOV query ranks the corpus in its original order with score 0.

        Args:
            query: Raw query text.
            limit: Maximum number of hits to return.

        Returns:
            Hits sorted by descending similarity; ties keep corpus order.
        """
        if limit <= 0:
            return []

        query_vector = self.model.transform(prepare_text(query))
        scored = [
            (position, similarity(query_vector, vector))
            for position, vector in enumerate(self.vectors)
        ]
        scored.sort(key=lambda item: (-item[1], item[0]))

        logger.debug(f"Semantic search '{query}': {len(query_vector)} query terms in vocabulary")
        return [
            RankedHit(document_id=self.document_ids[position], score=score)
            for position, score in scored[:limit]
        ]


def _document_text(doc: Document) -> str:
    if doc.title:
        return f"{doc.title}\n{doc.text}"
    return doc.text


def build_vector_model(documents: Sequence[Document]) -> VectorIndex:
    """Fit a TF-IDF model on ``documents`` and index their vectors."""
    index = VectorIndex(documents)
    logger.info(
        f"Vector model built: {len(index)} documents, {len(index.model.vocabulary)} terms"
    )
    return index
