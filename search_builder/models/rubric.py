"""Rubric and rubric index models."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RubricCriterion(BaseModel):
    """A yes/no evaluation question."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., min_length=1, description="Short criterion name")
    question: str = Field(..., min_length=1, description="Natural-language yes/no question")


class Rubric(BaseModel):
    """A named set of evaluation criteria.

    Criteria are ordered for display only; the scorer treats them as a set.
    Changing the criteria means a new rubric id for indexing purposes.
    """

    id: str = Field(..., description="Rubric ID")
    name: str = Field(..., description="Rubric name")
    criteria: list[RubricCriterion] = Field(default_factory=list, description="Evaluation criteria")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    training_count: int = Field(default=0, ge=0, description="Rated results used to build it")


class DocumentScore(BaseModel):
    """Rubric score of one document."""

    model_config = ConfigDict(frozen=True)

    total_score: float = Field(default=0.0, ge=0, le=1, description="Aggregate rubric score")
    per_criterion_scores: dict[str, float] = Field(
        default_factory=dict, description="Criterion label → score"
    )

    @classmethod
    def zero(cls) -> "DocumentScore":
        return cls(total_score=0.0, per_criterion_scores={})


class RubricIndex(BaseModel):
    """Precomputed rubric scores for every document of one corpus.

    Only ever built complete: ``scores`` holds exactly ``document_count``
    entries. A new index supersedes an old one; indexes are never patched.
    """

    model_config = ConfigDict(frozen=True)

    rubric_id: str = Field(..., description="Rubric this index was built for")
    corpus_id: str = Field(..., description="Corpus this index covers")
    scores: dict[str, DocumentScore] = Field(
        default_factory=dict, description="Document ID → rubric score"
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    document_count: int = Field(..., ge=0, description="Corpus size at build time")
    failed_documents: int = Field(
        default=0, ge=0, description="Documents that fell back to a zero score"
    )

    @model_validator(mode="after")
    def _check_complete(self) -> "RubricIndex":
        if len(self.scores) != self.document_count:
            raise ValueError(
                f"Rubric index has {len(self.scores)} scores for {self.document_count} documents"
            )
        return self

    def get(self, document_id: str) -> DocumentScore | None:
        return self.scores.get(document_id)
