"""Shared LangGraph state definitions.

Graph state is a TypedDict so it stays explicit, serializable, and
consistent across graph nodes. Preference records travel through the state
as camelCase JSON dicts and are validated into models inside each node.
"""

from __future__ import annotations

from typing import TypedDict

JsonDict = dict[str, object]
JsonList = list[JsonDict]


class MatchingState(TypedDict, total=False):
    """State for the matching graph.

    Fields are optional at runtime because nodes populate them progressively.
    """

    # Identifies the requesting user.
    user_id: str
    # Hard filters in wire form (courses, academicYear, studyTimes, ...).
    filters: JsonDict
    # Single-course shortcut, merged into filters["courses"].
    course: str
    # Threshold and cap passed to find_best_matches.
    min_score: int
    limit: int
    # Requesting user's validated preferences.
    user_preferences: JsonDict
    # [{"userId", "preferences"}] for every candidate with valid preferences.
    candidates: JsonList
    # Display fields (fullName, email, class, majors) keyed by user id.
    profiles: dict[str, JsonDict]
    # Candidates that passed the hard filters.
    filtered_candidates: JsonList
    # Ranked MatchScore dicts.
    scored_matches: JsonList
    # Matches joined with display fields, returned to the caller.
    final_matches: JsonList
    # Number of candidate documents skipped because they failed validation.
    skipped_candidates: int
    # Error string if any node fails.
    error: str
    # Response metadata for observability.
    response_metadata: JsonDict
