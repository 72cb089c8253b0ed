"""Exception types raised by the search-builder core."""

from enum import StrEnum
from typing import Any


class SearchErrorCode(StrEnum):
    """Why a search could not be served."""

    NO_CORPUS = "NO_CORPUS"
    NOT_READY = "NOT_READY"
    SEARCH_FAILED = "SEARCH_FAILED"


class CorpusErrorCode(StrEnum):
    """Why a corpus could not be indexed."""

    LOAD_FAILED = "LOAD_FAILED"
    PARSE_FAILED = "PARSE_FAILED"
    INVALID_DATA = "INVALID_DATA"


class SearchError(Exception):
    """A search request failed.

    ``NOT_READY`` means an engine the requested mode needs has not been built
    for the corpus. It is never reported as an empty result list.
    """

    def __init__(self, message: str, code: SearchErrorCode, details: Any = None):
        super().__init__(message)
        self.code = code
        self.details = details


class CorpusError(Exception):
    """A corpus could not be turned into search engines."""

    def __init__(self, message: str, code: CorpusErrorCode, details: Any = None):
        super().__init__(message)
        self.code = code
        self.details = details


class InvalidWeightError(ValueError):
    """Rubric weight outside [0, 1]."""


class ScoringError(RuntimeError):
    """The external scoring oracle failed or returned garbage."""


class IndexingCancelledError(RuntimeError):
    """A rubric indexing job was cancelled between corpora."""
