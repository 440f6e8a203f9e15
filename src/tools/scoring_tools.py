"""Deterministic scoring utilities for study partner matching.

Nine independent sub-scores (each 0-1) are combined with a weighted sum into
a 0-100 compatibility score. Missing preference data scores neutral (0.5) so
an incomplete profile is never penalized; courses are the exception and
score 0 when either side lists none.
"""

from __future__ import annotations

import math
from typing import Any, Hashable, Iterable, Mapping, Sequence, TypeVar

from src.models.matching import (
    DEFAULT_MATCHING_WEIGHTS,
    MatchBreakdown,
    MatchingWeights,
    MatchScore,
)
from src.models.preferences import (
    ACADEMIC_YEAR_ORDER,
    DIFFICULTY_LEVEL_ORDER,
    AcademicYear,
    Candidate,
    CandidateFilters,
    DifficultyLevel,
    UserPreferences,
    parse_candidate,
    parse_filters,
    parse_preferences,
)
from src.utils.formatting import (
    format_academic_year,
    format_content_type,
    format_difficulty_level,
    format_environment,
    format_goal,
    format_learning_style,
    format_time_preference,
)
from src.utils.logging_config import logger

T = TypeVar("T", bound=Hashable)

NEUTRAL_SCORE = 0.5
REASON_THRESHOLD = 0.6
COURSE_BONUS_PER_SHARED = 0.15
COURSE_BONUS_CAP = 0.30


def shared_items(items1: Iterable[T] | None, items2: Iterable[T] | None) -> list[T]:
    """Return the items of ``items1`` also present in ``items2``.

    Order follows ``items1``; repeated values appear once.
    """

    lookup = set(items2 or ())
    seen: set[T] = set()
    shared: list[T] = []
    for item in items1 or ():
        if item in lookup and item not in seen:
            seen.add(item)
            shared.append(item)
    return shared


def _overlap_ratio(items1: Sequence[T], items2: Sequence[T]) -> float:
    """Shared count over the smaller distinct set, capped at 1.0."""

    shared = shared_items(items1, items2)
    return min(len(shared) / min(len(set(items1)), len(set(items2))), 1.0)


def _to_percent(value: float) -> int:
    # Half-up, so 0.125 becomes 13 rather than banker's 12.
    return int(math.floor(value * 100 + 0.5))


# ============================================================
# DIMENSION SCORERS
# ============================================================

def calculate_course_overlap(
    courses1: Sequence[str] | None, courses2: Sequence[str] | None
) -> float:
    """Jaccard similarity plus a bonus of 0.15 per shared course (max 0.30)."""

    if not courses1 or not courses2:
        return 0.0

    shared = shared_items(courses1, courses2)
    total_unique = len(set(courses1) | set(courses2))

    jaccard = len(shared) / total_unique
    bonus = min(len(shared) * COURSE_BONUS_PER_SHARED, COURSE_BONUS_CAP)
    return min(jaccard + bonus, 1.0)


def calculate_time_compatibility(times1: Sequence | None, times2: Sequence | None) -> float:
    if not times1 or not times2:
        return NEUTRAL_SCORE
    return _overlap_ratio(times1, times2)


def calculate_learning_style_match(styles1: Sequence | None, styles2: Sequence | None) -> float:
    """Shared styles over the LARGER declared set.

    Every other set dimension divides by the smaller set, so this score is
    not symmetric when the two users declare different numbers of styles.
    Kept as observed; it is a candidate bug rather than a deliberate choice.
    """

    if not styles1 or not styles2:
        return NEUTRAL_SCORE

    shared = shared_items(styles1, styles2)
    return len(shared) / max(len(set(styles1)), len(set(styles2)))


def calculate_academic_year_match(
    year1: AcademicYear | None, year2: AcademicYear | None
) -> float:
    """1.0 for the same year, then 0.8 / 0.6 / 0.4 as the years drift apart."""

    if year1 is None or year2 is None:
        return NEUTRAL_SCORE
    if year1 == year2:
        return 1.0
    if year1 not in ACADEMIC_YEAR_ORDER or year2 not in ACADEMIC_YEAR_ORDER:
        return NEUTRAL_SCORE

    distance = abs(ACADEMIC_YEAR_ORDER.index(year1) - ACADEMIC_YEAR_ORDER.index(year2))
    if distance == 1:
        return 0.8
    if distance == 2:
        return 0.6
    return 0.4


def calculate_environment_match(envs1: Sequence | None, envs2: Sequence | None) -> float:
    if not envs1 or not envs2:
        return NEUTRAL_SCORE
    return _overlap_ratio(envs1, envs2)


def calculate_personality_match(
    introvert_extrovert1: int | None,
    introvert_extrovert2: int | None,
    focused_collaborative1: int | None,
    focused_collaborative2: int | None,
) -> float:
    """Average closeness on the two 1-5 personality scales."""

    values = (
        introvert_extrovert1,
        introvert_extrovert2,
        focused_collaborative1,
        focused_collaborative2,
    )
    if any(value is None for value in values):
        return NEUTRAL_SCORE

    intro_extro_match = 1 - abs(introvert_extrovert1 - introvert_extrovert2) / 4
    focus_collab_match = 1 - abs(focused_collaborative1 - focused_collaborative2) / 4
    return (intro_extro_match + focus_collab_match) / 2


def calculate_goal_alignment(goals1: Sequence[str] | None, goals2: Sequence[str] | None) -> float:
    if not goals1 or not goals2:
        return NEUTRAL_SCORE
    return _overlap_ratio(goals1, goals2)


def calculate_content_type_match(types1: Sequence | None, types2: Sequence | None) -> float:
    if not types1 or not types2:
        return NEUTRAL_SCORE
    return _overlap_ratio(types1, types2)


def _level_span(levels: Sequence[DifficultyLevel]) -> tuple[int, int] | None:
    indexes = [DIFFICULTY_LEVEL_ORDER.index(l) for l in levels if l in DIFFICULTY_LEVEL_ORDER]
    if not indexes:
        return None
    return min(indexes), max(indexes)


def calculate_difficulty_level_match(
    levels1: Sequence[DifficultyLevel] | None, levels2: Sequence[DifficultyLevel] | None
) -> float:
    """Overlap ratio when levels are shared, otherwise score by range gap.

    Without a shared level the two comfort ranges are compared on the
    beginner < medium < advanced < mock-exam scale: touching or interleaved
    ranges score 0.6, a one-level gap 0.4, anything wider 0.2.
    """

    if not levels1 or not levels2:
        return NEUTRAL_SCORE

    if shared_items(levels1, levels2):
        return _overlap_ratio(levels1, levels2)

    span1 = _level_span(levels1)
    span2 = _level_span(levels2)
    if span1 is None or span2 is None:
        return NEUTRAL_SCORE

    distance = max(0, max(span1[0], span2[0]) - min(span1[1], span2[1]))
    if distance == 0:
        return 0.6
    if distance == 1:
        return 0.4
    return 0.2


# ============================================================
# MATCH SCORE
# ============================================================

def calculate_dimension_scores(
    user_prefs: UserPreferences, candidate_prefs: UserPreferences
) -> dict[str, float]:
    """Raw 0-1 sub-scores keyed by breakdown field name."""

    return {
        "course_overlap": calculate_course_overlap(
            user_prefs.courses, candidate_prefs.courses
        ),
        "time_compatibility": calculate_time_compatibility(
            user_prefs.study_time_preferences, candidate_prefs.study_time_preferences
        ),
        "learning_style_match": calculate_learning_style_match(
            user_prefs.learning_styles, candidate_prefs.learning_styles
        ),
        "academic_year_match": calculate_academic_year_match(
            user_prefs.academic_year, candidate_prefs.academic_year
        ),
        "environment_match": calculate_environment_match(
            user_prefs.preferred_study_environments,
            candidate_prefs.preferred_study_environments,
        ),
        "personality_match": calculate_personality_match(
            user_prefs.introvert_extrovert,
            candidate_prefs.introvert_extrovert,
            user_prefs.focused_collaborative,
            candidate_prefs.focused_collaborative,
        ),
        "goal_alignment": calculate_goal_alignment(
            user_prefs.study_goals, candidate_prefs.study_goals
        ),
        "content_type_match": calculate_content_type_match(
            user_prefs.preferred_content_types, candidate_prefs.preferred_content_types
        ),
        "difficulty_level_match": calculate_difficulty_level_match(
            user_prefs.comfortable_difficulty_levels,
            candidate_prefs.comfortable_difficulty_levels,
        ),
    }


def calculate_match_score(
    user_prefs: UserPreferences | Mapping[str, Any],
    candidate_prefs: UserPreferences | Mapping[str, Any],
    weights: MatchingWeights = DEFAULT_MATCHING_WEIGHTS,
    candidate_user_id: str = "",
) -> MatchScore:
    """Score one candidate against the requesting user's preferences.

    Raises:
        InvalidPreferencesError: If either preference record is malformed.
    """

    user_prefs = parse_preferences(user_prefs)
    candidate_prefs = parse_preferences(candidate_prefs)
    scores = calculate_dimension_scores(user_prefs, candidate_prefs)

    weighted = (
        scores["course_overlap"] * weights.course_overlap
        + scores["time_compatibility"] * weights.time_compatibility
        + scores["learning_style_match"] * weights.learning_style_match
        + scores["academic_year_match"] * weights.academic_year_match
        + scores["environment_match"] * weights.environment_match
        + scores["personality_match"] * weights.personality_match
        + scores["goal_alignment"] * weights.goal_alignment
        + scores["content_type_match"] * weights.content_type_match
        + scores["difficulty_level_match"] * weights.difficulty_level_match
    )

    shared_courses = shared_items(user_prefs.courses, candidate_prefs.courses)

    return MatchScore(
        user_id=candidate_user_id,
        score=_to_percent(weighted),
        breakdown=MatchBreakdown(
            **{name: _to_percent(value) for name, value in scores.items()}
        ),
        shared_courses=shared_courses,
        compatibility_reasons=generate_compatibility_reasons(
            scores, shared_courses, user_prefs, candidate_prefs
        ),
    )


def generate_compatibility_reasons(
    scores: Mapping[str, float],
    shared_courses: Sequence[str],
    user_prefs: UserPreferences,
    candidate_prefs: UserPreferences,
) -> list[str]:
    """Explain a match in short sentences, most important dimension first.

    Each dimension contributes at most one sentence, naming the first shared
    value in the requesting user's order.
    """

    reasons: list[str] = []

    if len(shared_courses) == 1:
        reasons.append(f"Taking {shared_courses[0]} together")
    elif shared_courses:
        reasons.append(f"{len(shared_courses)} shared courses")

    if scores["content_type_match"] > REASON_THRESHOLD:
        shared = shared_items(
            user_prefs.preferred_content_types, candidate_prefs.preferred_content_types
        )
        if shared:
            reasons.append(f"Both interested in {format_content_type(shared[0])}")

    if scores["difficulty_level_match"] > REASON_THRESHOLD:
        shared = shared_items(
            user_prefs.comfortable_difficulty_levels,
            candidate_prefs.comfortable_difficulty_levels,
        )
        if shared:
            reasons.append(f"Similar skill level: {format_difficulty_level(shared[0])}")

    if scores["time_compatibility"] > REASON_THRESHOLD:
        shared = shared_items(
            user_prefs.study_time_preferences, candidate_prefs.study_time_preferences
        )
        if shared:
            reasons.append(
                f"Both prefer {format_time_preference(shared[0])} study sessions"
            )

    if scores["academic_year_match"] == 1.0 and user_prefs.academic_year is not None:
        reasons.append(f"Both are {format_academic_year(user_prefs.academic_year)}s")

    if scores["learning_style_match"] > REASON_THRESHOLD:
        shared = shared_items(user_prefs.learning_styles, candidate_prefs.learning_styles)
        if shared:
            reasons.append(f"Compatible learning style: {format_learning_style(shared[0])}")

    if scores["environment_match"] > REASON_THRESHOLD:
        shared = shared_items(
            user_prefs.preferred_study_environments,
            candidate_prefs.preferred_study_environments,
        )
        if shared:
            reasons.append(f"Both like studying in {format_environment(shared[0])}s")

    if scores["goal_alignment"] > REASON_THRESHOLD:
        shared = shared_items(user_prefs.study_goals, candidate_prefs.study_goals)
        if shared:
            reasons.append(f"Similar goals: {format_goal(shared[0])}")

    return reasons


# ============================================================
# RANKING AND FILTERING
# ============================================================

def find_best_matches(
    user_prefs: UserPreferences | Mapping[str, Any],
    candidates: Iterable[Candidate | Mapping[str, Any]],
    min_score: int = 30,
    limit: int = 20,
    weights: MatchingWeights = DEFAULT_MATCHING_WEIGHTS,
) -> list[MatchScore]:
    """Score every candidate and return the best ones, highest first.

    Candidates scoring below ``min_score`` are dropped. Equal scores keep
    their input order. At most ``limit`` results are returned.
    """

    user_prefs = parse_preferences(user_prefs)
    parsed = [parse_candidate(candidate) for candidate in candidates]

    scored = [
        calculate_match_score(user_prefs, candidate.preferences, weights, candidate.user_id)
        for candidate in parsed
    ]
    kept = [match for match in scored if match.score >= min_score]

    # sorted() is stable, including with reverse=True.
    ranked = sorted(kept, key=lambda match: match.score, reverse=True)[: max(limit, 0)]

    logger.debug(
        "find_best_matches candidates=%s above_threshold=%s returned=%s",
        len(parsed),
        len(kept),
        len(ranked),
    )
    return ranked


def _satisfies_filters(prefs: UserPreferences, filters: CandidateFilters) -> bool:
    if filters.courses and not shared_items(filters.courses, prefs.courses):
        return False

    if filters.academic_year is not None and prefs.academic_year != filters.academic_year:
        return False

    if filters.study_times and not shared_items(
        filters.study_times, prefs.study_time_preferences
    ):
        return False

    if filters.content_types and not shared_items(
        filters.content_types, prefs.preferred_content_types
    ):
        return False

    if filters.difficulty_levels and not shared_items(
        filters.difficulty_levels, prefs.comfortable_difficulty_levels
    ):
        return False

    # A candidate without a preferred group size is never excluded.
    group_size = prefs.preferred_group_size
    if group_size is not None:
        if filters.min_group_size is not None and group_size < filters.min_group_size:
            return False
        if filters.max_group_size is not None and group_size > filters.max_group_size:
            return False

    return True


def filter_candidates_by_preferences(
    candidates: Iterable[Candidate | Mapping[str, Any]],
    filters: CandidateFilters | Mapping[str, Any] | None,
) -> list:
    """Keep candidates that satisfy every filter that is set.

    List filters match when the candidate shares ANY value with them. The
    returned items are the input objects themselves, in input order.
    """

    filters = parse_filters(filters)
    candidates = list(candidates)

    kept = [
        candidate
        for candidate in candidates
        if _satisfies_filters(parse_candidate(candidate).preferences, filters)
    ]

    logger.debug(
        "filter_candidates_by_preferences input=%s kept=%s",
        len(candidates),
        len(kept),
    )
    return kept
