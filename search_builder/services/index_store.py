"""In-memory store of built rubric indexes."""

import logging
from collections.abc import Iterator

from ..models.rubric import RubricIndex

logger = logging.getLogger(__name__)


class RubricIndexStore:
    """Rubric indexes keyed by (rubric ID, corpus ID).

    Adding an index for a pair that already has one replaces it; indexes are
    superseded, never patched.
    """

    def __init__(self) -> None:
        self._indexes: dict[tuple[str, str], RubricIndex] = {}

    def add(self, index: RubricIndex) -> None:
        key = (index.rubric_id, index.corpus_id)
        if key in self._indexes:
            logger.info(f"Replacing rubric index for rubric '{index.rubric_id}' / corpus '{index.corpus_id}'")
        self._indexes[key] = index

    def get(self, rubric_id: str, corpus_id: str) -> RubricIndex | None:
        return self._indexes.get((rubric_id, corpus_id))

    def remove_rubric(self, rubric_id: str) -> int:
        """Drop every index built for ``rubric_id``. Returns how many were removed."""
        keys = [key for key in self._indexes if key[0] == rubric_id]
        for key in keys:
            del self._indexes[key]
        return len(keys)

    def __iter__(self) -> Iterator[RubricIndex]:
        return iter(list(self._indexes.values()))

    def __len__(self) -> int:
        return len(self._indexes)
