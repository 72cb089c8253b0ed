"""Document data structures for the search engines.

This module contains the core data structures for representing documents,
corpora, and ranked retrieval hits.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from ...errors import CorpusError, CorpusErrorCode


@dataclass(frozen=True)
class Document:
    """A searchable document.

    Attributes:
        id: Unique identifier within its corpus
        text: Body text
        title: Optional title (weighted higher by the lexical engine)
        url: Optional source URL
    """

    id: str
    text: str
    title: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class Corpus:
    """An ordered, immutable set of documents that engines are built from.

    Engines are keyed by corpus id and never updated in place. To change the
    documents, derive a new corpus with ``with_documents`` (or
    ``dataclasses.replace``) and build new engines from it.

    Attributes:
        id: Corpus identifier
        name: Display name (used in progress reports)
        documents: Documents in corpus order (any sequence is stored as a tuple)
        is_ready: Whether the corpus finished loading and may be indexed
    """

    id: str
    name: str
    documents: tuple[Document, ...] = ()
    is_ready: bool = True
    _by_id: dict[str, Document] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "documents", tuple(self.documents))
        for doc in self.documents:
            if doc.id in self._by_id:
                raise CorpusError(
                    f"Duplicate document id '{doc.id}' in corpus '{self.id}'",
                    CorpusErrorCode.INVALID_DATA,
                    details={"document_id": doc.id},
                )
            self._by_id[doc.id] = doc

    def get(self, document_id: str) -> Document | None:
        return self._by_id.get(document_id)

    def with_documents(self, documents: Sequence[Document]) -> "Corpus":
        """Same corpus id and name with a new document list."""
        return replace(self, documents=tuple(documents))

    def __len__(self) -> int:
        return len(self.documents)


@dataclass(frozen=True)
class RankedHit:
    """A document id with a strategy-specific score.

    The score scale depends on the engine that produced it (BM25 magnitude,
    cosine similarity, or an RRF sum) and must be normalized before being
    compared across strategies.
    """

    document_id: str
    score: float
