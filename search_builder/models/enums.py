"""Enumeration types for the search-builder core."""

from enum import StrEnum


class SearchMode(StrEnum):
    """Retrieval strategy for a query."""

    KEYWORD = "keyword"  # BM25 over title + body
    SEMANTIC = "semantic"  # TF-IDF cosine similarity
    HYBRID = "hybrid"  # RRF of keyword + semantic


class ScoringMethod(StrEnum):
    """How the oracle aggregates per-criterion scores into a total.

    The hosted scorer only averages criteria today.
    """

    AVERAGE = "average"


class IndexJobStatus(StrEnum):
    """Status of a rubric indexing job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FeedbackRating(StrEnum):
    """User verdict on a search result."""

    UP = "up"  # helpful
    DOWN = "down"  # not helpful


class GenerationJobState(StrEnum):
    """State of a remote scorer-generation job, as reported by the scorer API."""

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    DONE = "DONE"
    ERROR = "ERROR"
    CANCELLED = "CANCELLED"
