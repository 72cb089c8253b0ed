"""Lexical (keyword) index for the search engine.

This module provides BM25 keyword ranking over two fields:
- Title and body are tokenized with the shared preparation pipeline
- Field term frequencies are length-normalized per field, then weighted
  (title counts double) and saturated once, BM25F-style
- Only documents matching at least one query term are returned
"""

import logging
import math
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from ..core.document import Document, RankedHit
from .constants import BM25_B, BM25_K1, BODY_WEIGHT, TITLE_WEIGHT
from .text import prepare_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _FieldStats:
    """Per-document term counts for one field."""

    counts: Counter
    length: int


class LexicalIndex:
    """Inverted term index answering ranked keyword queries.

    Built once from a document list and read-only afterwards, so a single
    instance can serve concurrent queries.
    """

    def __init__(
        self,
        documents: Sequence[Document],
        k1: float = BM25_K1,
        b: float = BM25_B,
        title_weight: float = TITLE_WEIGHT,
        body_weight: float = BODY_WEIGHT,
    ):
        self.k1 = k1
        self.b = b
        self.title_weight = title_weight
        self.body_weight = body_weight

        self.document_ids: list[str] = [doc.id for doc in documents]
        self._titles: list[_FieldStats] = []
        self._bodies: list[_FieldStats] = []
        # term → indices of documents containing it in any field
        self._postings: dict[str, list[int]] = {}

        for position, doc in enumerate(documents):
            title_tokens = prepare_text(doc.title)
            body_tokens = prepare_text(doc.text)
            self._titles.append(_FieldStats(Counter(title_tokens), len(title_tokens)))
            self._bodies.append(_FieldStats(Counter(body_tokens), len(body_tokens)))
            for term in set(title_tokens) | set(body_tokens):
                self._postings.setdefault(term, []).append(position)

        n = len(self.document_ids)
        self._avg_title_length = sum(f.length for f in self._titles) / n if n else 0.0
        self._avg_body_length = sum(f.length for f in self._bodies) / n if n else 0.0

    def __len__(self) -> int:
        return len(self.document_ids)

    @property
    def vocabulary_size(self) -> int:
        return len(self._postings)

    def idf(self, term: str) -> float:
        """BM25 inverse document frequency (Lucene variant, never negative)."""
        df = len(self._postings.get(term, ()))
        n = len(self.document_ids)
        return math.log(1.0 + (n - df + 0.5) / (df + 0.5))

    def _normalized_tf(self, stats: _FieldStats, term: str, avg_length: float) -> float:
        tf = stats.counts.get(term, 0)
        if tf == 0:
            return 0.0
        if avg_length <= 0:
            return float(tf)
        return tf / (1.0 - self.b + self.b * stats.length / avg_length)

    def score_document(self, position: int, terms: Sequence[str]) -> float:
        """BM25F score of the document at ``position`` for prepared query terms."""
        score = 0.0
        for term in terms:
            weighted_tf = self.title_weight * self._normalized_tf(
                self._titles[position], term, self._avg_title_length
            ) + self.body_weight * self._normalized_tf(
                self._bodies[position], term, self._avg_body_length
            )
            if weighted_tf > 0:
                score += self.idf(term) * weighted_tf * (self.k1 + 1) / (weighted_tf + self.k1)
        return score

    def search(self, query: str, limit: int) -> list[RankedHit]:
        """Rank documents for a free-text query.

        Args:
            query: Raw query text.
            limit: Maximum number of hits to return.

        Returns:
            Hits sorted by descending BM25 score; ties keep corpus order.
        """
        if limit <= 0:
            return []

        # Repeated query terms count once
        terms = list(dict.fromkeys(prepare_text(query)))
        candidates: set[int] = set()
        for term in terms:
            candidates.update(self._postings.get(term, ()))

        scored = [(position, self.score_document(position, terms)) for position in candidates]
        scored.sort(key=lambda item: (-item[1], item[0]))

        logger.debug(f"Keyword search '{query}': {len(scored)} matching documents")
        return [
            RankedHit(document_id=self.document_ids[position], score=score)
            for position, score in scored[:limit]
        ]


def build_lexical_index(documents: Sequence[Document]) -> LexicalIndex:
    """Build a keyword index over ``documents``."""
    index = LexicalIndex(documents)
    logger.info(
        f"Lexical index built: {len(index)} documents, {index.vocabulary_size} terms"
    )
    return index
