"""Study preference records used by the matching engine.

Documents in the store (and JSON request bodies) use camelCase names such as
``studyTimePreferences``; the models expose snake_case attributes and accept
either form.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from src.utils.errors import InvalidPreferencesError


# ── Enums ────────────────────────────────────────────────────────────────

class AcademicYear(str, Enum):
    freshman = "freshman"
    sophomore = "sophomore"
    junior = "junior"
    senior = "senior"
    masters = "masters"
    phd = "phd"
    other = "other"


class StudyTimePreference(str, Enum):
    early_morning = "early-morning"
    morning = "morning"
    afternoon = "afternoon"
    evening = "evening"
    late_night = "late-night"


class StudyEnvironment(str, Enum):
    library = "library"
    cafe = "cafe"
    dorm = "dorm"
    outdoor = "outdoor"
    quiet = "quiet"
    collaborative = "collaborative"


class LearningStyle(str, Enum):
    visual = "visual"
    auditory = "auditory"
    kinesthetic = "kinesthetic"
    reading_writing = "reading-writing"


class SessionContentType(str, Enum):
    textbook_review = "textbook-review"
    midterm_review = "midterm-review"
    final_review = "final-review"
    review_of_week = "review-of-week"
    homework = "homework"
    projects = "projects"
    labs = "labs"


class DifficultyLevel(str, Enum):
    beginner = "beginner"
    medium = "medium"
    advanced = "advanced"
    mock_exam = "mock-exam"


class SessionFrequency(str, Enum):
    daily = "daily"
    several_per_week = "several-per-week"
    weekly = "weekly"
    biweekly = "biweekly"
    flexible = "flexible"


class CommitmentLevel(str, Enum):
    casual = "casual"
    moderate = "moderate"
    serious = "serious"
    intensive = "intensive"


class Weekday(str, Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"


# ── Ordinal tables ───────────────────────────────────────────────────────

# "other" has no position, so it scores neutral against any other year.
ACADEMIC_YEAR_ORDER: tuple[AcademicYear, ...] = (
    AcademicYear.freshman,
    AcademicYear.sophomore,
    AcademicYear.junior,
    AcademicYear.senior,
    AcademicYear.masters,
    AcademicYear.phd,
)

DIFFICULTY_LEVEL_ORDER: tuple[DifficultyLevel, ...] = (
    DifficultyLevel.beginner,
    DifficultyLevel.medium,
    DifficultyLevel.advanced,
    DifficultyLevel.mock_exam,
)


# ── Models ───────────────────────────────────────────────────────────────

class CamelModel(BaseModel):
    """Base model that reads and writes camelCase document keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


_LIST_FIELDS = (
    "courses",
    "study_time_preferences",
    "preferred_study_environments",
    "learning_styles",
    "preferred_content_types",
    "comfortable_difficulty_levels",
    "available_days",
    "study_goals",
    "interests",
)


class UserPreferences(CamelModel):
    """One user's declared matching preferences."""

    # Academic information
    academic_year: AcademicYear | None = None
    major: str | None = None
    courses: list[str] = Field(default_factory=list)

    # Study preferences
    study_time_preferences: list[StudyTimePreference] = Field(default_factory=list)
    preferred_study_environments: list[StudyEnvironment] = Field(default_factory=list)
    learning_styles: list[LearningStyle] = Field(default_factory=list)

    # Session preferences (frequency and commitment are informational only)
    session_frequency: SessionFrequency | None = None
    commitment_level: CommitmentLevel | None = None
    preferred_group_size: int | None = Field(default=None, ge=2, le=10)
    preferred_content_types: list[SessionContentType] = Field(default_factory=list)
    comfortable_difficulty_levels: list[DifficultyLevel] = Field(default_factory=list)

    # Personality, 1-5 scales (1 = introvert / focused, 5 = extrovert / collaborative)
    introvert_extrovert: int | None = Field(default=None, ge=1, le=5)
    focused_collaborative: int | None = Field(default=None, ge=1, le=5)

    # Availability and goals
    available_days: list[Weekday] = Field(default_factory=list)
    time_zone: str | None = None
    study_goals: list[str] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)

    @field_validator(*_LIST_FIELDS, mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("academic_year", "session_frequency", "commitment_level", mode="before")
    @classmethod
    def _blank_as_missing(cls, value: Any) -> Any:
        return None if value == "" else value


class Candidate(CamelModel):
    """A potential study partner: opaque id plus preferences."""

    user_id: str
    preferences: UserPreferences = Field(default_factory=UserPreferences)

    @field_validator("preferences", mode="before")
    @classmethod
    def _none_as_blank(cls, value: Any) -> Any:
        return {} if value is None else value


class CandidateFilters(CamelModel):
    """Hard constraints applied before scoring. Unset keys impose nothing."""

    courses: list[str] | None = None
    academic_year: AcademicYear | None = None
    study_times: list[StudyTimePreference] | None = None
    content_types: list[SessionContentType] | None = None
    difficulty_levels: list[DifficultyLevel] | None = None
    min_group_size: int | None = None
    max_group_size: int | None = None


# ── Parsing ──────────────────────────────────────────────────────────────

def _summarize_errors(exc: ValidationError) -> list[dict]:
    return [
        {
            "loc": ".".join(str(part) for part in err["loc"]),
            "msg": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]


def _validate(model: type[BaseModel], raw: Any, label: str):
    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate({} if raw is None else raw)
    except ValidationError as exc:
        errors = _summarize_errors(exc)
        fields = ", ".join(err["loc"] or "<root>" for err in errors)
        raise InvalidPreferencesError(
            f"Invalid {label}: {fields}", errors
        ) from exc


def parse_preferences(raw: Mapping[str, Any] | UserPreferences | None) -> UserPreferences:
    """Validate a raw preference document.

    Raises:
        InvalidPreferencesError: If any field has the wrong type or value.
    """

    return _validate(UserPreferences, raw, "preferences")


def parse_candidate(raw: Mapping[str, Any] | Candidate) -> Candidate:
    """Validate a ``{"userId", "preferences"}`` candidate record."""

    return _validate(Candidate, raw, "candidate")


def parse_filters(raw: Mapping[str, Any] | CandidateFilters | None) -> CandidateFilters:
    """Validate a filter mapping that uses wire names (``studyTimes``...)."""

    return _validate(CandidateFilters, raw, "filters")


def preferences_from_user_document(doc: Mapping[str, Any]) -> UserPreferences:
    """Build preferences from a ``users/{uid}`` document.

    The academic year and major live on the user profile (``class`` and the
    first entry of ``majors``); everything else comes from the nested
    ``matchingPreferences`` map.

    Raises:
        InvalidPreferencesError: If the map or ``majors`` has the wrong type,
            or any preference field is malformed.
    """

    stored = doc.get("matchingPreferences")
    if stored is not None and not isinstance(stored, Mapping):
        raise InvalidPreferencesError(
            "Invalid preferences: matchingPreferences",
            [{"loc": "matchingPreferences", "msg": "Input should be a valid dictionary", "type": "dict_type"}],
        )
    majors = doc.get("majors")
    if majors is not None and not isinstance(majors, list):
        raise InvalidPreferencesError(
            "Invalid preferences: majors",
            [{"loc": "majors", "msg": "Input should be a valid list", "type": "list_type"}],
        )

    raw = dict(stored or {})
    raw["academicYear"] = doc.get("class")
    raw["major"] = majors[0] if majors else None
    return parse_preferences(raw)
