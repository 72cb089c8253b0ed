"""Client for the external rubric scoring oracle.

The oracle takes a query, a text and a list of yes/no criteria and returns an
aggregate score plus one score per criterion, all in [0, 1]. Latency and
availability are outside our control; callers that score many documents wrap
``score`` in ``retry_with_backoff``.

The same API also generates scorers: a background job turns good and bad
examples into a question set, and is started, polled and cancelled by id.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, Field, ValidationError

from ..config import settings
from ..errors import ScoringError
from ..models.enums import GenerationJobState
from ..models.feedback import GenerationJobStatus, GenerationStatusMessage, RubricExample
from ..models.rubric import RubricCriterion

logger = logging.getLogger(__name__)


class ScoreResult(BaseModel):
    """Oracle response for one text."""

    total_score: float = Field(default=0.0, description="Aggregate score")
    per_criterion_scores: dict[str, float] = Field(
        default_factory=dict, description="Criterion label → score"
    )


# score_one(query, text, criteria) → ScoreResult
ScoreFunc = Callable[[str, str, Sequence[RubricCriterion]], Awaitable[ScoreResult]]


class ScoringClient(Protocol):
    """Anything that can score a text against rubric criteria."""

    async def score(
        self, query: str, text: str, criteria: Sequence[RubricCriterion]
    ) -> ScoreResult: ...


def parse_score_response(payload: Any) -> ScoreResult:
    """Parse an oracle response body.

    ``question_scores`` may be a list of ``{"label", "score"}`` objects or a
    plain ``label → score`` mapping.

    Raises:
        ScoringError: If the body is not a usable score response.
    """
    if not isinstance(payload, dict):
        raise ScoringError(f"Unexpected scoring response type: {type(payload).__name__}")

    question_scores = payload.get("question_scores") or []
    if isinstance(question_scores, dict):
        per_criterion = dict(question_scores)
    else:
        try:
            per_criterion = {item["label"]: item["score"] for item in question_scores}
        except (KeyError, TypeError) as e:
            raise ScoringError(f"Malformed question_scores in scoring response: {e}") from e

    total = payload.get("total_score")
    try:
        return ScoreResult(
            total_score=0.0 if total is None else total,
            per_criterion_scores=per_criterion,
        )
    except ValidationError as e:
        raise ScoringError(f"Invalid scoring response: {e}") from e


def _parse_status_message(raw: Any) -> GenerationStatusMessage | None:
    """Structured job log lines arrive as JSON strings; anything else is skipped."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    try:
        return GenerationStatusMessage.model_validate(raw)
    except ValidationError:
        return None


def parse_generation_job(payload: Any) -> GenerationJobStatus:
    """Parse a scorer-generation job response.

    Raises:
        ScoringError: If the body is not a usable job response.
    """
    if not isinstance(payload, dict):
        raise ScoringError(f"Unexpected generation job response type: {type(payload).__name__}")

    messages = [_parse_status_message(raw) for raw in payload.get("detailed_status") or []]
    try:
        return GenerationJobStatus(
            job_id=payload.get("job_id"),
            state=payload.get("state"),
            detailed_status=[m for m in messages if m is not None],
            dimensions=payload.get("scoring_spec") or [],
            threshold=payload.get("threshold") or None,
        )
    except ValidationError as e:
        raise ScoringError(f"Invalid generation job response: {e}") from e


class PiScoringClient:
    """HTTP client for the hosted scoring system.

    Scores texts against rubric criteria, and runs scorer-generation jobs
    that build a question set from good and bad examples.

    Usage:
        async with PiScoringClient(api_key="...") as client:
            result = await client.score("", text, rubric.criteria)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            api_key: Scoring API key (defaults to settings).
            base_url: API base URL (defaults to settings).
            timeout: Request timeout in seconds (defaults to settings).
            http_client: Optional shared ``httpx.AsyncClient``; it is not
                closed by ``aclose`` when supplied by the caller.
        """
        self.api_key = api_key if api_key is not None else settings.scoring_api_key
        self.base_url = (base_url or settings.scoring_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.scoring_timeout_seconds
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _request(
        self, method: str, path: str, body: dict | None = None, allow_text: bool = False
    ) -> Any:
        """Send one API request and return the decoded body.

        Raises:
            ScoringError: Missing API key, transport error, non-2xx status, or
                a body that is not JSON (unless ``allow_text``).
        """
        if not self.api_key:
            raise ScoringError("Scoring API key not configured")

        try:
            response = await self._get_client().request(
                method,
                f"{self.base_url}{path}",
                json=body,
                headers={"x-api-key": self.api_key, "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise ScoringError(f"Scoring request failed: {e!r}") from e

        if not 200 <= response.status_code < 300:
            raise ScoringError(f"HTTP {response.status_code}: {response.text[:200]}")

        try:
            return response.json()
        except ValueError as e:
            if allow_text:
                return response.text
            raise ScoringError(f"Scoring response is not JSON: {e}") from e

    async def score(
        self, query: str, text: str, criteria: Sequence[RubricCriterion]
    ) -> ScoreResult:
        """Score ``text`` against ``criteria``.

        Raises:
            ScoringError: Missing API key, transport error, non-2xx status, or
                an unparseable body.
        """
        body = {
            "llm_input": query,
            "llm_output": text,
            "scoring_spec": [{"label": c.label, "question": c.question} for c in criteria],
        }
        return parse_score_response(await self._request("POST", "/scoring_system/score", body))

    async def start_generation_job(
        self,
        application_description: str,
        good_examples: Sequence[RubricExample],
        bad_examples: Sequence[RubricExample],
        num_questions: int | None = None,
    ) -> GenerationJobStatus:
        """Start generating a scorer from labelled examples.

        Good examples are sent with score 1, bad ones with score 0.

        Returns:
            The new job's initial status (usually ``QUEUED``).
        """
        examples = [
            {"llm_input": ex.llm_input, "llm_output": ex.llm_output, "score": 1}
            for ex in good_examples
        ] + [
            {"llm_input": ex.llm_input, "llm_output": ex.llm_output, "score": 0}
            for ex in bad_examples
        ]
        body = {
            "application_description": application_description,
            "examples": examples,
            "preference_examples": [],
            "existing_questions": [],
            "num_questions": num_questions or settings.generation_num_questions,
        }
        logger.info(
            f"Starting scorer generation: {len(good_examples)} good, "
            f"{len(bad_examples)} bad examples"
        )
        job = parse_generation_job(await self._request("POST", "/scoring_system/generate", body))
        logger.info(f"Scorer generation job {job.job_id} started ({job.state})")
        return job

    async def get_generation_job(self, job_id: str) -> GenerationJobStatus:
        return parse_generation_job(
            await self._request("GET", f"/scoring_system/generate/{job_id}")
        )

    async def cancel_generation_job(self, job_id: str) -> str:
        """Cancel a generation job. Returns the API's confirmation message."""
        result = await self._request(
            "DELETE", f"/scoring_system/generate/{job_id}", allow_text=True
        )
        logger.info(f"Scorer generation job {job_id} cancelled")
        return result if isinstance(result, str) else json.dumps(result)

    async def wait_for_generation_job(
        self,
        job_id: str,
        poll_interval: float | None = None,
        timeout: float | None = None,
        on_status: Callable[[GenerationJobStatus], None] | None = None,
    ) -> GenerationJobStatus:
        """Poll a generation job until it finishes.

        Args:
            job_id: Job to watch.
            poll_interval: Seconds between polls (default from settings).
            timeout: Give up after this many seconds (``TimeoutError``).
            on_status: Called with every fetched status.

        Returns:
            The final status, ``DONE`` or ``CANCELLED``.

        Raises:
            ScoringError: The job ended in ``ERROR``.
        """
        interval = (
            poll_interval if poll_interval is not None else settings.generation_poll_interval_seconds
        )

        async def poll() -> GenerationJobStatus:
            while True:
                status = await self.get_generation_job(job_id)
                if on_status is not None:
                    on_status(status)
                if status.is_finished:
                    return status
                await asyncio.sleep(interval)

        status = await asyncio.wait_for(poll(), timeout)
        if status.state is GenerationJobState.ERROR:
            raise ScoringError(f"Scorer generation job {job_id} failed")
        return status

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "PiScoringClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
