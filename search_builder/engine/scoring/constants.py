"""Scoring constants for the search-builder engines.

This module contains the constants shared by the retrieval engines:
- Stop words for text preparation
- BM25 field weights and saturation parameters
- Reciprocal Rank Fusion constant
- Trace sizes
"""

# ---------------------------------------------------------------------------
# Stop words: dropped by the text-preparation pipeline before indexing and
# querying, so both engines see the same token stream.
# ---------------------------------------------------------------------------
STOP_WORDS = frozenset(
    {
        # Articles, auxiliaries, modals
        "a",
        "an",
        "the",
        "is",
        "are",
        "was",
        "were",
        "be",
        "been",
        "being",
        "have",
        "has",
        "had",
        "do",
        "does",
        "did",
        "will",
        "would",
        "could",
        "should",
        "may",
        "might",
        "shall",
        "can",
        # Prepositions
        "to",
        "of",
        "in",
        "for",
        "on",
        "with",
        "at",
        "by",
        "from",
        "as",
        "into",
        "through",
        "during",
        "before",
        "after",
        "above",
        "below",
        "between",
        "out",
        "off",
        "over",
        "under",
        # Adverbs and conjunctions
        "then",
        "once",
        "here",
        "there",
        "when",
        "where",
        "why",
        "how",
        "so",
        "than",
        "too",
        "very",
        "just",
        "because",
        "but",
        "and",
        "or",
        "if",
        "nor",
        # Pronouns and determiners
        "he",
        "she",
        "it",
        "its",
        "they",
        "them",
        "what",
        "which",
        "who",
        "whom",
        "this",
        "that",
        "these",
        "those",
        "my",
        "your",
        "his",
        "her",
        "our",
        "their",
    }
)


# ---------------------------------------------------------------------------
# BM25 parameters
# ---------------------------------------------------------------------------
BM25_K1 = 1.2
BM25_B = 0.75
# Field weights applied to term frequency before saturation.
# Titles are short and usually name the topic, so a title hit counts double.
TITLE_WEIGHT = 2.0
BODY_WEIGHT = 1.0


# ---------------------------------------------------------------------------
# Reciprocal Rank Fusion
# ---------------------------------------------------------------------------
# k=60 is the standard from Cormack+ 2009. Higher k flattens the difference
# between ranks far down the list.
RRF_K = 60


# ---------------------------------------------------------------------------
# Trace sizes
# ---------------------------------------------------------------------------
TRACE_TOP_N = 10
RUBRIC_TRACE_TOP_N = 5
