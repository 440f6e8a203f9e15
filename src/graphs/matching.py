"""Matching graph: load preferences, pre-filter, score and rank study partners."""

from __future__ import annotations

from langgraph.graph import StateGraph

from src.config import config
from src.graphs.base_graph import BaseGraph
from src.models.preferences import preferences_from_user_document
from src.state import MatchingState
from src.tools.firestore_tools import (
    get_candidate_documents,
    get_user_document,
    profile_fields,
)
from src.tools.scoring_tools import filter_candidates_by_preferences, find_best_matches
from src.utils.errors import FirestoreUnavailableError, InvalidPreferencesError
from src.utils.logging_config import logger


def _with_state(state: MatchingState, **updates) -> MatchingState:
    """Return a new state dict with updates applied."""

    return {**state, **updates}


def _int_or_default(value, default: int) -> int:
    return default if value is None else int(value)


class MatchingGraph(BaseGraph):
    """Deterministic study partner matching over the preference store."""

    name = "matching"

    def build_graph(self) -> StateGraph:
        graph = StateGraph(MatchingState)

        graph.add_node("fetch_user_preferences", self.node_fetch_user_preferences)
        graph.add_node("query_candidates", self.node_query_candidates)
        graph.add_node("filter_candidates", self.node_filter_candidates)
        graph.add_node("score_matches", self.node_score_matches)
        graph.add_node("finalize_response", self.node_finalize_response)

        graph.set_entry_point("fetch_user_preferences")
        graph.add_edge("fetch_user_preferences", "query_candidates")
        graph.add_edge("query_candidates", "filter_candidates")
        graph.add_edge("filter_candidates", "score_matches")
        graph.add_edge("score_matches", "finalize_response")
        graph.set_finish_point("finalize_response")

        return graph

    def node_fetch_user_preferences(self, state: MatchingState) -> MatchingState:
        """Load and validate the requesting user's preferences."""

        try:
            self._log_node_execution("fetch_user_preferences", state)
            user_id = state.get("user_id")
            if not user_id:
                return _with_state(state, error="user_id is required")

            user_doc = get_user_document(user_id)
            if user_doc is None:
                return _with_state(state, error=f"User not found: {user_id}")

            prefs = preferences_from_user_document(user_doc)
            return _with_state(
                state,
                user_preferences=prefs.model_dump(mode="json", by_alias=True),
            )
        except InvalidPreferencesError as exc:
            self._log_node_error("fetch_user_preferences", exc)
            return _with_state(
                state,
                error=f"Your matching preferences are invalid ({exc}). Update them to see matches.",
            )
        except FirestoreUnavailableError as exc:
            self._log_node_error("fetch_user_preferences", exc)
            return _with_state(
                state,
                error="Preference store unavailable. Returning empty matches.",
            )

    def node_query_candidates(self, state: MatchingState) -> MatchingState:
        """Load every other user with courses; skip records that fail validation."""

        if state.get("error"):
            return state

        try:
            self._log_node_execution("query_candidates", state)
            docs = get_candidate_documents(
                exclude_user_id=state["user_id"], limit=config.MAX_CANDIDATES
            )
        except FirestoreUnavailableError as exc:
            self._log_node_error("query_candidates", exc)
            return _with_state(
                state,
                error="Failed to query candidates. Returning empty matches.",
                candidates=[],
            )

        candidates: list[dict] = []
        profiles: dict[str, dict] = {}
        skipped = 0
        for doc in docs:
            uid = str(doc.get("uid", ""))
            try:
                prefs = preferences_from_user_document(doc)
            except InvalidPreferencesError as exc:
                skipped += 1
                logger.warning("Skipping candidate %s with invalid preferences: %s", uid, exc)
                continue
            candidates.append(
                {"userId": uid, "preferences": prefs.model_dump(mode="json", by_alias=True)}
            )
            profiles[uid] = profile_fields(doc)

        return _with_state(
            state, candidates=candidates, profiles=profiles, skipped_candidates=skipped
        )

    def node_filter_candidates(self, state: MatchingState) -> MatchingState:
        """Apply the request's hard filters before scoring.

        The ``course`` shortcut is its own pass, so it narrows whatever
        ``filters`` already selected.
        """

        if state.get("error"):
            return state

        self._log_node_execution("filter_candidates", state)
        try:
            filtered = filter_candidates_by_preferences(
                state.get("candidates", []), state.get("filters") or {}
            )
            if state.get("course"):
                filtered = filter_candidates_by_preferences(
                    filtered, {"courses": [state["course"]]}
                )
        except InvalidPreferencesError as exc:
            self._log_node_error("filter_candidates", exc)
            return _with_state(
                state, error=f"Invalid filters: {exc}", filtered_candidates=[]
            )

        return _with_state(state, filtered_candidates=filtered)

    def node_score_matches(self, state: MatchingState) -> MatchingState:
        """Score, threshold and rank the filtered candidates."""

        if state.get("error"):
            return state

        try:
            self._log_node_execution("score_matches", state)
            matches = find_best_matches(
                state["user_preferences"],
                state.get("filtered_candidates", []),
                min_score=_int_or_default(state.get("min_score"), config.MATCH_MIN_SCORE),
                limit=_int_or_default(state.get("limit"), config.MATCH_LIMIT),
            )
            return _with_state(
                state,
                scored_matches=[
                    match.model_dump(mode="json", by_alias=True) for match in matches
                ],
            )
        except Exception as exc:
            self._log_node_error("score_matches", exc)
            return _with_state(
                state,
                error="Scoring failed. Returning empty matches.",
                scored_matches=[],
            )

    def node_finalize_response(self, state: MatchingState) -> MatchingState:
        """Join display fields onto matches and build response metadata."""

        if state.get("error"):
            return _with_state(
                state,
                final_matches=[],
                response_metadata={
                    "success": False,
                    "error": state.get("error"),
                    "total_candidates": len(state.get("candidates", [])),
                    "filtered_count": 0,
                    "match_count": 0,
                },
            )

        profiles = state.get("profiles", {})
        final_matches = [
            {**match, "user": {"uid": match["userId"], **profiles.get(match["userId"], {})}}
            for match in state.get("scored_matches", [])
        ]

        metadata = {
            "success": True,
            "error": None,
            "total_candidates": len(state.get("candidates", [])),
            "skipped_candidates": state.get("skipped_candidates", 0),
            "filtered_count": len(state.get("filtered_candidates", [])),
            "match_count": len(final_matches),
        }

        return _with_state(
            state, final_matches=final_matches, response_metadata=metadata
        )


def create_matching_graph() -> MatchingGraph:
    """Build the matching graph for server usage."""

    return MatchingGraph(timeout=config.GRAPH_TIMEOUT)
