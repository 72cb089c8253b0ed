"""Search result models returned to callers."""

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    """A document resolved from a ranked hit.

    ``score`` is the raw retrieval score for plain searches and the combined
    score after rubric reranking.
    """

    id: str = Field(..., description="Document ID")
    text: str = Field(..., description="Document text")
    title: str | None = Field(default=None, description="Document title")
    url: str | None = Field(default=None, description="Document URL")
    score: float = Field(..., description="Ranking score")
    retrieval_score: float | None = Field(
        default=None, description="Normalized retrieval score (rubric reranking only)"
    )
    rubric_score: float | None = Field(
        default=None, description="Rubric score (rubric reranking only)"
    )
    question_scores: dict[str, float] | None = Field(
        default=None, description="Per-criterion rubric scores"
    )
    original_rank: int | None = Field(
        default=None, ge=1, description="1-based rank before rubric reranking"
    )
