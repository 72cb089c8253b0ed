"""Rubric batch indexing.

Scores every document of a corpus against a rubric through the external
scoring oracle and assembles a ``RubricIndex`` for reuse at query time:

- At most ``concurrency_cap`` scoring calls are in flight. A fixed pool of
  workers pulls the next pending document as soon as one finishes, so a slow
  call never holds up a whole batch.
- Every call goes through ``retry_with_backoff``. A document that still fails
  gets a zero score; one bad document never fails the corpus.
- Empty or whitespace-only documents get a zero score without a call.
- Progress is reported after every finished document with a monotonically
  increasing ``completed`` count.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import UTC, datetime

from ..config import settings
from ..engine.core.document import Corpus, Document
from ..engine.scoring.normalization import normalize_rubric_score
from ..errors import IndexingCancelledError
from ..models.enums import IndexJobStatus
from ..models.rubric import DocumentScore, Rubric, RubricIndex
from .index_store import RubricIndexStore
from .retry import retry_with_backoff
from .scoring_client import ScoreFunc, ScoreResult

logger = logging.getLogger(__name__)

# on_progress(completed, total, corpus_name); may be sync or async
ProgressCallback = Callable[[int, int, str], Awaitable[None] | None]
IndexCreatedCallback = Callable[[RubricIndex], None]


def _to_document_score(result: ScoreResult) -> DocumentScore:
    return DocumentScore(
        total_score=normalize_rubric_score(result.total_score),
        per_criterion_scores={
            label: normalize_rubric_score(score)
            for label, score in result.per_criterion_scores.items()
        },
    )


async def _notify(on_progress: ProgressCallback | None, completed: int, total: int, name: str) -> None:
    if on_progress is None:
        return
    outcome = on_progress(completed, total, name)
    if inspect.isawaitable(outcome):
        await outcome


async def build_rubric_index(
    rubric: Rubric,
    corpus: Corpus,
    score_one: ScoreFunc,
    concurrency_cap: int | None = None,
    max_retries: int | None = None,
    initial_delay: float | None = None,
    timeout: float | None = None,
    on_progress: ProgressCallback | None = None,
) -> RubricIndex:
    """Score every document of ``corpus`` against ``rubric``.

    Args:
        rubric: Rubric whose criteria are sent to the oracle.
        corpus: Corpus to score; its document list is only read.
        score_one: ``score_one(query, text, criteria)`` oracle call.
        concurrency_cap: Maximum in-flight calls (default from settings).
        max_retries: Retries per document after the first failure.
        initial_delay: Backoff before the first retry, in seconds.
        timeout: Optional per-call timeout, in seconds.
        on_progress: ``(completed, total, corpus_name)`` callback.

    Returns:
        A complete ``RubricIndex`` with one score per document.
    """
    cap = concurrency_cap if concurrency_cap is not None else settings.rubric_index_concurrency
    if cap < 1:
        raise ValueError(f"concurrency_cap must be at least 1, got {cap}")
    retries = max_retries if max_retries is not None else settings.rubric_index_max_retries
    delay = (
        initial_delay if initial_delay is not None else settings.rubric_index_initial_delay_seconds
    )

    documents: Sequence[Document] = list(corpus.documents)
    total = len(documents)
    criteria = list(rubric.criteria)

    logger.info(
        f"Building rubric index: rubric '{rubric.name}' ({rubric.id}), corpus '{corpus.name}' "
        f"({corpus.id}), {total} documents, concurrency {cap}"
    )

    pending: asyncio.Queue[Document] = asyncio.Queue()
    for doc in documents:
        pending.put_nowait(doc)

    # Each document ID is written exactly once, by the worker that scored it
    scores: dict[str, DocumentScore] = {}
    completed = 0
    failed = 0

    async def score_document(doc: Document) -> DocumentScore | None:
        if not doc.text or not doc.text.strip():
            return DocumentScore.zero()
        try:
            result = await retry_with_backoff(
                lambda: score_one("", doc.text, criteria),
                max_retries=retries,
                initial_delay=delay,
                timeout=timeout,
                description=f"Scoring document {doc.id}",
            )
        except Exception as e:
            logger.warning(f"Document {doc.id} scored 0 after exhausting retries: {e!r}")
            return None
        return _to_document_score(result)

    async def worker() -> None:
        nonlocal completed, failed
        while True:
            try:
                doc = pending.get_nowait()
            except asyncio.QueueEmpty:
                return
            score = await score_document(doc)
            if score is None:
                failed += 1
                score = DocumentScore.zero()
            scores[doc.id] = score
            # No await between increment and notify, so counts arrive in order
            completed += 1
            await _notify(on_progress, completed, total, corpus.name)

    workers = [asyncio.create_task(worker()) for _ in range(min(cap, total))]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        # A failed or cancelled build must not leave workers calling the oracle
        for task in workers:
            task.cancel()
        # Collect every worker's outcome so no exception goes unretrieved
        await asyncio.gather(*workers, return_exceptions=True)
        raise

    index = RubricIndex(
        rubric_id=rubric.id,
        corpus_id=corpus.id,
        scores=scores,
        created_at=datetime.now(UTC),
        document_count=total,
        failed_documents=failed,
    )
    logger.info(
        f"Rubric index built: rubric {rubric.id}, corpus {corpus.id}, "
        f"{len(scores)} documents scored, {failed} failed"
    )
    return index


class RubricIndexingJob:
    """Indexes one rubric across several corpora, one corpus at a time.

    ``PENDING → RUNNING → COMPLETED``, or ``FAILED`` / ``CANCELLED``.
    ``cancel()`` is honoured between corpora: the corpus being scored is
    finished first, so no half-built index is ever handed out.
    """

    def __init__(
        self,
        rubric: Rubric,
        corpora: Sequence[Corpus],
        score_one: ScoreFunc,
        concurrency_cap: int | None = None,
        max_retries: int | None = None,
        initial_delay: float | None = None,
        timeout: float | None = None,
        on_progress: ProgressCallback | None = None,
        on_index_created: IndexCreatedCallback | None = None,
        store: RubricIndexStore | None = None,
    ):
        self.rubric = rubric
        # Only ready, non-empty corpora are indexed
        self.corpora = [c for c in corpora if c.is_ready and c.documents]
        self.score_one = score_one
        self.concurrency_cap = concurrency_cap
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.on_progress = on_progress
        self.on_index_created = on_index_created
        self.store = store

        self.status = IndexJobStatus.PENDING
        self.indexes: list[RubricIndex] = []
        self.progress: tuple[int, int, str] | None = None
        self.error: str | None = None
        self._cancel_requested = False

    @property
    def total_corpora(self) -> int:
        return len(self.corpora)

    @property
    def completed_corpora(self) -> int:
        return len(self.indexes)

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    def cancel(self) -> None:
        """Stop before the next corpus starts."""
        self._cancel_requested = True

    async def _track_progress(self, completed: int, total: int, corpus_name: str) -> None:
        self.progress = (completed, total, corpus_name)
        await _notify(self.on_progress, completed, total, corpus_name)

    async def run(self) -> list[RubricIndex]:
        """Index every ready corpus.

        Returns:
            One ``RubricIndex`` per indexed corpus, in corpus order.

        Raises:
            IndexingCancelledError: ``cancel()`` was called before all corpora
                were done. Indexes finished so far stay on ``self.indexes``.
            RuntimeError: The job was already run.
        """
        if self.status is not IndexJobStatus.PENDING:
            raise RuntimeError(f"Indexing job for rubric {self.rubric.id} already {self.status}")

        self.status = IndexJobStatus.RUNNING
        logger.info(
            f"Starting rubric indexing: rubric '{self.rubric.name}' ({self.rubric.id}), "
            f"{self.total_corpora} corpora"
        )

        try:
            for corpus in self.corpora:
                if self._cancel_requested:
                    raise IndexingCancelledError(
                        f"Indexing of rubric {self.rubric.id} cancelled after "
                        f"{self.completed_corpora} of {self.total_corpora} corpora"
                    )
                index = await build_rubric_index(
                    self.rubric,
                    corpus,
                    self.score_one,
                    concurrency_cap=self.concurrency_cap,
                    max_retries=self.max_retries,
                    initial_delay=self.initial_delay,
                    timeout=self.timeout,
                    on_progress=self._track_progress,
                )
                self.indexes.append(index)
                if self.store is not None:
                    self.store.add(index)
                if self.on_index_created is not None:
                    self.on_index_created(index)
                logger.info(
                    f"Rubric {self.rubric.id}: {self.completed_corpora} of "
                    f"{self.total_corpora} corpora indexed"
                )
        except IndexingCancelledError as e:
            self.status = IndexJobStatus.CANCELLED
            self.error = str(e)
            logger.info(str(e))
            raise
        except asyncio.CancelledError:
            self.status = IndexJobStatus.CANCELLED
            self.error = "Task cancelled"
            raise
        except Exception as e:
            self.status = IndexJobStatus.FAILED
            self.error = str(e)
            logger.error(f"Rubric indexing failed for rubric {self.rubric.id}: {e!r}")
            raise

        self.status = IndexJobStatus.COMPLETED
        logger.info(
            f"Rubric indexing completed: rubric '{self.rubric.name}', "
            f"{self.completed_corpora} corpora indexed"
        )
        return list(self.indexes)


async def index_rubric(
    rubric: Rubric,
    corpora: Sequence[Corpus],
    score_one: ScoreFunc,
    concurrency_cap: int | None = None,
    on_progress: ProgressCallback | None = None,
    **options,
) -> list[RubricIndex]:
    """Build a rubric index for every ready corpus.

    Convenience wrapper around ``RubricIndexingJob``; keep a job object
    instead when you need to cancel it or watch its status.
    """
    job = RubricIndexingJob(
        rubric,
        corpora,
        score_one,
        concurrency_cap=concurrency_cap,
        on_progress=on_progress,
        **options,
    )
    return await job.run()
