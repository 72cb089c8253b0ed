"""Text preparation shared by the lexical and vector engines.

Both engines index and query through ``prepare_text`` so that a term means the
same thing to BM25 and to TF-IDF.
"""

import re

from .constants import STOP_WORDS
from .stemmer import stem_token

_WHITESPACE_RE = re.compile(r"\s+")
_NON_WORD_RE = re.compile(r"[^\w]+")


def tokenize(text: str) -> list[str]:
    """Lowercase, collapse whitespace and split on non-word characters."""
    cleaned = _WHITESPACE_RE.sub(" ", text.lower()).strip()
    return [token for token in _NON_WORD_RE.split(cleaned) if token]


def remove_stop_words(tokens: list[str]) -> list[str]:
    return [token for token in tokens if token not in STOP_WORDS]


def prepare_text(text: str | None) -> list[str]:
    """Run the full preparation pipeline on a piece of text.

    lowercase → collapse whitespace → tokenize → drop stop words → stem

    Args:
        text: Raw document or query text. ``None`` is treated as empty.

    Returns:
        The list of index terms, in text order, duplicates kept.
    """
    if not text:
        return []
    return [stem_token(token) for token in remove_stop_words(tokenize(text))]
