"""Human-readable labels for preference values used in match explanations."""

from __future__ import annotations

from src.models.preferences import (
    AcademicYear,
    DifficultyLevel,
    LearningStyle,
    SessionContentType,
    StudyEnvironment,
    StudyTimePreference,
)

CONTENT_TYPE_LABELS: dict[SessionContentType, str] = {
    SessionContentType.textbook_review: "textbook review",
    SessionContentType.midterm_review: "midterm review",
    SessionContentType.final_review: "final review",
    SessionContentType.review_of_week: "review of the week",
    SessionContentType.homework: "homework",
    SessionContentType.projects: "projects",
    SessionContentType.labs: "labs",
}

DIFFICULTY_LEVEL_LABELS: dict[DifficultyLevel, str] = {
    DifficultyLevel.beginner: "Beginner",
    DifficultyLevel.medium: "Medium",
    DifficultyLevel.advanced: "Advanced",
    DifficultyLevel.mock_exam: "Mock Exam",
}


def format_time_preference(pref: StudyTimePreference) -> str:
    return pref.value.replace("-", " ", 1)


def format_academic_year(year: AcademicYear) -> str:
    return year.value[:1].upper() + year.value[1:]


def format_learning_style(style: LearningStyle) -> str:
    return style.value.replace("-", "/", 1)


def format_environment(env: StudyEnvironment) -> str:
    return env.value


def format_goal(goal: str) -> str:
    """Goals are free text; only the first hyphen becomes a space."""

    return goal.replace("-", " ", 1)


def format_content_type(content_type: SessionContentType) -> str:
    return CONTENT_TYPE_LABELS.get(content_type, content_type.value)


def format_difficulty_level(level: DifficultyLevel) -> str:
    return DIFFICULTY_LEVEL_LABELS.get(level, level.value)
