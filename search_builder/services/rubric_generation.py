"""Rubric criteria from user feedback.

An OpenAI-compatible chat completions API turns rated, commented search
results into yes/no evaluation criteria:
- ``generate_criteria_from_feedback`` makes one criterion per comment, for a
  new rubric. A comment that fails to convert is logged and skipped.
- ``integrate_feedback`` makes one new criterion for an existing rubric and
  rejects it if it duplicates a criterion the rubric already has.
"""

import json
import logging
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import settings
from ..errors import ScoringError
from ..models.enums import FeedbackRating
from ..models.feedback import FeedbackExample
from ..models.rubric import RubricCriterion

logger = logging.getLogger(__name__)

_CRITERION_FORMAT = """Respond with ONLY a JSON object in this exact format:
{
  "label": "Short label (2-4 words)",
  "question": "Clear yes/no evaluation question"
}"""


def criterion_prompt(example: FeedbackExample) -> str:
    """Prompt that turns one comment into a general evaluation question."""
    goal = (
        "whether this positive behavior is present"
        if example.rating is FeedbackRating.UP
        else "whether this negative behavior is avoided"
    )
    return f"""Convert this feedback on a search result into an evaluation question.
The question must work for ANY query, not just this example.

Feedback: "{example.feedback}"
Query: {example.query}

Result (for understanding its structure only):
{example.result}

Rules:
1. Keep the exact requirement from the feedback; add no qualifiers or extra criteria.
2. Refer to structure, format or approach, never to this result's specific content.
3. Only rephrase the statement as a question.

Example: feedback "it should be a table" becomes "Is the response formatted as a table?",
not "Is the response about activities formatted as a table?".

Write a question that evaluates {goal}.

{_CRITERION_FORMAT}"""


def integration_prompt(existing: Sequence[RubricCriterion], example: FeedbackExample) -> str:
    """Prompt for one new criterion that complements ``existing``."""
    if existing:
        listed = "\n".join(f"{i}. {c.label}: {c.question}" for i, c in enumerate(existing, start=1))
    else:
        listed = "None yet"
    verdict = (
        "Helpful (thumbs up)" if example.rating is FeedbackRating.UP else "Not helpful (thumbs down)"
    )
    return f"""You are helping to build a search result evaluation rubric from user feedback.

EXISTING RUBRIC CRITERIA:
{listed}

NEW FEEDBACK:
Query: "{example.query}"
Result: "{example.result}"
Rating: {verdict}
User feedback: "{example.feedback}"

Generate ONE new evaluation criterion capturing what the user cares about. It must be:
1. A clear question that can be used to evaluate search results
2. Different from every existing criterion
3. Focused on the aspect named in the feedback
4. Applicable to other search results, not just this one

{_CRITERION_FORMAT}"""


def parse_criterion(content: str | None) -> RubricCriterion:
    """Parse a model reply into a criterion.

    Raises:
        ScoringError: Empty reply, invalid JSON, or missing label/question.
    """
    if not content or not content.strip():
        raise ScoringError("No content in completion response")
    try:
        data = json.loads(content.strip())
    except ValueError as e:
        raise ScoringError(f"Completion is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise ScoringError("Completion is not a JSON object")
    try:
        return RubricCriterion(label=data.get("label") or "", question=data.get("question") or "")
    except ValidationError as e:
        raise ScoringError("Completion is missing a label or question") from e


def _normalize(text: str) -> str:
    return " ".join(text.lower().split()).rstrip("?.! ")


def is_duplicate(criterion: RubricCriterion, existing: Sequence[RubricCriterion]) -> bool:
    """Same label or same question as an existing criterion, ignoring case and spacing."""
    label = _normalize(criterion.label)
    question = _normalize(criterion.question)
    return any(
        _normalize(c.label) == label or _normalize(c.question) == question for c in existing
    )


class FeedbackRubricGenerator:
    """Chat-completions client that writes rubric criteria from feedback.

    Usage:
        async with FeedbackRubricGenerator(api_key="...") as generator:
            criteria = await generator.generate_criteria_from_feedback(examples)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
        criteria_model: str | None = None,
        integration_model: str | None = None,
    ):
        """Initialize the generator.

        Args:
            api_key: Completion API key (defaults to settings).
            base_url: API base URL (defaults to settings).
            timeout: Request timeout in seconds (defaults to settings).
            http_client: Optional shared ``httpx.AsyncClient``; not closed by
                ``aclose`` when supplied by the caller.
            criteria_model: Model for new-rubric criteria.
            integration_model: Model for adding a criterion to a rubric.
        """
        self.api_key = api_key if api_key is not None else settings.completion_api_key
        self.base_url = (base_url or settings.completion_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.completion_timeout_seconds
        self.criteria_model = criteria_model or settings.criteria_model
        self.integration_model = integration_model or settings.integration_model
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _complete(self, prompt: str, model: str) -> str | None:
        """Run one JSON-mode chat completion and return the message content.

        Raises:
            ScoringError: Missing API key, transport error, non-2xx status, or
                an unparseable body.
        """
        if not self.api_key:
            raise ScoringError("Completion API key not configured")

        body = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": settings.criteria_temperature,
            "response_format": {"type": "json_object"},
        }
        try:
            response = await self._get_client().post(
                f"{self.base_url}/chat/completions",
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise ScoringError(f"Completion request failed: {e!r}") from e

        if not 200 <= response.status_code < 300:
            raise ScoringError(f"HTTP {response.status_code}: {response.text[:200]}")

        try:
            payload: Any = response.json()
            return payload["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ScoringError(f"Malformed completion response: {e!r}") from e

    async def generate_criteria_from_feedback(
        self, examples: Sequence[FeedbackExample]
    ) -> list[RubricCriterion]:
        """One criterion per commented example, in example order.

        Examples without a comment are ignored. A comment whose conversion
        fails is logged and skipped.

        Raises:
            ValueError: No example carries a comment.
            ScoringError: Not a single criterion could be generated.
        """
        commented = [ex for ex in examples if ex.feedback and ex.feedback.strip()]
        if not commented:
            raise ValueError("No feedback provided in examples")

        logger.info(f"Generating rubric criteria from {len(commented)} feedback items")
        criteria: list[RubricCriterion] = []
        for example in commented:
            try:
                content = await self._complete(criterion_prompt(example), self.criteria_model)
                criterion = parse_criterion(content)
            except ScoringError as e:
                logger.warning(f"Skipping feedback '{example.feedback[:60]}': {e}")
                continue
            criteria.append(criterion)
            logger.debug(f"Generated criterion '{criterion.label}'")

        if not criteria:
            raise ScoringError("Failed to generate any criteria from feedback")
        logger.info(f"Generated {len(criteria)} of {len(commented)} criteria")
        return criteria

    async def integrate_feedback(
        self, existing: Sequence[RubricCriterion], example: FeedbackExample
    ) -> RubricCriterion:
        """Generate one new criterion for a rubric that already has ``existing``.

        Raises:
            ScoringError: The call failed, or the model returned a criterion
                the rubric already has.
        """
        logger.info(f"Integrating feedback into rubric with {len(existing)} criteria")
        content = await self._complete(integration_prompt(existing, example), self.integration_model)
        criterion = parse_criterion(content)
        if is_duplicate(criterion, existing):
            raise ScoringError(f"Generated criterion '{criterion.label}' duplicates an existing one")
        return criterion

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FeedbackRubricGenerator":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
