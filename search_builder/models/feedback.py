"""Feedback and scorer-generation models.

Rubrics are built from user feedback in two ways:
- An LLM turns rated, commented results into criteria (one per comment)
- The hosted scorer generates a full question set from good and bad examples
  in a background job that is started, polled and cancelled by id
"""

from typing import Literal

from pydantic import BaseModel, Field

from .enums import FeedbackRating, GenerationJobState
from .rubric import RubricCriterion


class FeedbackExample(BaseModel):
    """A rated search result with the user's comment."""

    query: str = Field(..., description="Query the result was returned for")
    result: str = Field(..., description="Result text the user rated")
    rating: FeedbackRating = Field(..., description="Thumbs up or down")
    feedback: str = Field(default="", description="Free-text comment")


class RubricExample(BaseModel):
    """An input/output pair used to train a generated scorer."""

    llm_input: str = Field(default="", description="Query or prompt")
    llm_output: str = Field(..., description="Response text")


class GenerationStatusMessage(BaseModel):
    """One structured log line of a generation job.

    ``user`` messages may be shown to people; ``system`` messages are for
    debugging only.
    """

    target: Literal["user", "system"]
    message: str
    completion: float | None = Field(default=None, ge=0, le=1, description="Progress 0-1")


class GenerationJobStatus(BaseModel):
    """Snapshot of a scorer-generation job."""

    job_id: str
    state: GenerationJobState
    detailed_status: list[GenerationStatusMessage] = Field(default_factory=list)
    dimensions: list[RubricCriterion] = Field(
        default_factory=list, description="Generated criteria (filled once DONE)"
    )
    threshold: float | None = None

    @property
    def is_finished(self) -> bool:
        return self.state in (
            GenerationJobState.DONE,
            GenerationJobState.ERROR,
            GenerationJobState.CANCELLED,
        )

    @property
    def completion(self) -> float | None:
        """Latest progress reported to the user, if any."""
        for status in reversed(self.detailed_status):
            if status.target == "user" and status.completion is not None:
                return status.completion
        return None
