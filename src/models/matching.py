"""Match weights and results produced by the scoring engine."""

from __future__ import annotations

from pydantic import Field

from src.models.preferences import CamelModel


class MatchingWeights(CamelModel):
    """Relative importance of each scoring dimension.

    The nine weights should sum to 1.0 so the final score stays in 0-100;
    the engine does not enforce it.
    """

    course_overlap: float
    time_compatibility: float
    content_type_match: float
    difficulty_level_match: float
    learning_style_match: float
    academic_year_match: float
    environment_match: float
    personality_match: float
    goal_alignment: float

    def total(self) -> float:
        return sum(self.model_dump().values())


DEFAULT_MATCHING_WEIGHTS = MatchingWeights(
    course_overlap=0.30,  # shared classes
    time_compatibility=0.20,  # can actually meet
    content_type_match=0.15,
    difficulty_level_match=0.12,
    learning_style_match=0.10,
    academic_year_match=0.05,
    environment_match=0.04,
    personality_match=0.02,
    goal_alignment=0.02,
)


class MatchBreakdown(CamelModel):
    """Per-dimension sub-scores as integer percentages."""

    course_overlap: int = Field(ge=0, le=100)
    time_compatibility: int = Field(ge=0, le=100)
    learning_style_match: int = Field(ge=0, le=100)
    academic_year_match: int = Field(ge=0, le=100)
    environment_match: int = Field(ge=0, le=100)
    personality_match: int = Field(ge=0, le=100)
    goal_alignment: int = Field(ge=0, le=100)
    content_type_match: int = Field(ge=0, le=100)
    difficulty_level_match: int = Field(ge=0, le=100)


class MatchScore(CamelModel):
    """Scored candidate returned by the matcher."""

    user_id: str
    score: int
    breakdown: MatchBreakdown
    shared_courses: list[str] = Field(default_factory=list)
    compatibility_reasons: list[str] = Field(default_factory=list)
