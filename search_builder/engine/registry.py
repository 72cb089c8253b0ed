"""Per-corpus engine handles.

Engines are built once per corpus and shared read-only afterwards. The
registry only ever replaces a corpus's whole ``EngineHandles`` entry, so
queries running against the previous handles are unaffected by a rebuild.
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from .core.document import Corpus
from .scoring.lexical_index import LexicalIndex, build_lexical_index
from .scoring.vector_model import VectorIndex, build_vector_model

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineHandles:
    """Engines built for one corpus. Either may be missing."""

    corpus_id: str
    lexical: LexicalIndex | None = None
    vector: VectorIndex | None = None


class EngineRegistry:
    """Corpus ID → engine handles.

    Single writer during the build phase; readers only call ``get``.
    """

    def __init__(self) -> None:
        self._handles: dict[str, EngineHandles] = {}

    def build(self, corpus: Corpus, lexical: bool = True, vector: bool = True) -> EngineHandles:
        """Build engines for ``corpus`` and register them, replacing older ones."""
        handles = EngineHandles(
            corpus_id=corpus.id,
            lexical=build_lexical_index(corpus.documents) if lexical else None,
            vector=build_vector_model(corpus.documents) if vector else None,
        )
        self._handles[corpus.id] = handles
        logger.info(f"Engines registered for corpus '{corpus.id}' ({len(corpus)} documents)")
        return handles

    def get(self, corpus_id: str) -> EngineHandles | None:
        return self._handles.get(corpus_id)

    def drop(self, corpus_id: str) -> bool:
        return self._handles.pop(corpus_id, None) is not None

    def __contains__(self, corpus_id: str) -> bool:
        return corpus_id in self._handles

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._handles))

    def __len__(self) -> int:
        return len(self._handles)
