"""
Unit tests for ranking (find_best_matches) and hard pre-filtering
(filter_candidates_by_preferences).
"""

import copy

import pytest

from src.models.preferences import Candidate, CandidateFilters
from src.tools.scoring_tools import filter_candidates_by_preferences, find_best_matches
from src.utils.errors import InvalidPreferencesError


def _candidate(user_id: str, **preferences) -> dict:
    return {"userId": user_id, "preferences": preferences}


@pytest.fixture
def population(full_preferences, opposite_preferences):
    """Five candidates with clearly separated scores against full_preferences."""
    return [
        _candidate("empty"),  # 35
        _candidate("opposite", **opposite_preferences),  # 4
        _candidate("twin", **full_preferences),  # 100
        _candidate("classmate", courses=["CS61A", "CS70"]),  # 65
        _candidate("one-course", courses=["CS61A"]),  # below twin and classmate
    ]


class TestFindBestMatches:
    def test_sorted_descending(self, full_preferences, population):
        matches = find_best_matches(full_preferences, population, min_score=0)
        scores = [match.score for match in matches]
        assert scores == sorted(scores, reverse=True)
        assert matches[0].user_id == "twin"

    def test_drops_candidates_below_min_score(self, full_preferences, population):
        matches = find_best_matches(full_preferences, population)
        ids = [match.user_id for match in matches]
        assert "opposite" not in ids
        assert all(match.score >= 30 for match in matches)

    def test_min_score_zero_keeps_everyone(self, full_preferences, population):
        matches = find_best_matches(full_preferences, population, min_score=0)
        assert len(matches) == len(population)

    def test_min_score_zero_still_capped_by_limit(self, full_preferences, population):
        matches = find_best_matches(full_preferences, population, min_score=0, limit=2)
        assert [match.user_id for match in matches] == ["twin", "classmate"]

    def test_limit_zero_returns_nothing(self, full_preferences, population):
        assert find_best_matches(full_preferences, population, limit=0) == []

    def test_negative_limit_returns_nothing(self, full_preferences, population):
        assert find_best_matches(full_preferences, population, limit=-3) == []

    def test_ties_keep_input_order(self, full_preferences):
        """Two equal scores given as [B, A] must come back as [B, A]."""
        candidates = [
            _candidate("B", courses=["CS61A"]),
            _candidate("A", courses=["CS61A"]),
        ]
        matches = find_best_matches(full_preferences, candidates, min_score=0)
        assert matches[0].score == matches[1].score
        assert [match.user_id for match in matches] == ["B", "A"]

    def test_ties_keep_input_order_behind_higher_score(self, full_preferences):
        candidates = [
            _candidate("B", courses=["CS61A"]),
            _candidate("top", **full_preferences),
            _candidate("A", courses=["CS61A"]),
        ]
        matches = find_best_matches(full_preferences, candidates, min_score=0)
        assert [match.user_id for match in matches] == ["top", "B", "A"]

    def test_does_not_mutate_candidates(self, full_preferences, population):
        before = copy.deepcopy(population)
        find_best_matches(full_preferences, population)
        assert population == before

    def test_accepts_candidate_models(self, full_preferences):
        candidates = [Candidate(user_id="twin", preferences=full_preferences)]
        matches = find_best_matches(full_preferences, candidates)
        assert matches[0].user_id == "twin"
        assert matches[0].score == 100

    def test_identical_calls_identical_output(self, full_preferences, population):
        first = find_best_matches(full_preferences, population, min_score=0)
        second = find_best_matches(full_preferences, population, min_score=0)
        assert [m.model_dump_json() for m in first] == [m.model_dump_json() for m in second]

    def test_empty_population(self, full_preferences):
        assert find_best_matches(full_preferences, []) == []

    def test_invalid_candidate_raises(self, full_preferences):
        with pytest.raises(InvalidPreferencesError):
            find_best_matches(full_preferences, [_candidate("bad", courses="CS61A")])


class TestFilterCandidates:
    @pytest.fixture
    def candidates(self):
        return [
            _candidate(
                "alice",
                academicYear="junior",
                courses=["CS61A", "CS70"],
                studyTimePreferences=["morning"],
                preferredContentTypes=["homework"],
                comfortableDifficultyLevels=["beginner"],
                preferredGroupSize=3,
            ),
            _candidate(
                "bob",
                academicYear="senior",
                courses=["CS170"],
                studyTimePreferences=["evening", "late-night"],
                preferredContentTypes=["final-review"],
                comfortableDifficultyLevels=["advanced"],
                preferredGroupSize=8,
            ),
            _candidate("carol", courses=["CS70"]),
        ]

    @staticmethod
    def _ids(candidates):
        return [c["userId"] for c in candidates]

    def test_no_filters_is_identity(self, candidates):
        result = filter_candidates_by_preferences(candidates, {})
        assert result == candidates
        assert all(a is b for a, b in zip(result, candidates))

    def test_none_filters_is_identity(self, candidates):
        assert filter_candidates_by_preferences(candidates, None) == candidates

    def test_courses_match_any(self, candidates):
        result = filter_candidates_by_preferences(candidates, {"courses": ["CS70", "CS999"]})
        assert self._ids(result) == ["alice", "carol"]

    def test_empty_course_filter_imposes_nothing(self, candidates):
        result = filter_candidates_by_preferences(candidates, {"courses": []})
        assert self._ids(result) == ["alice", "bob", "carol"]

    def test_academic_year_exact(self, candidates):
        result = filter_candidates_by_preferences(candidates, {"academicYear": "senior"})
        assert self._ids(result) == ["bob"]

    def test_study_times_match_any(self, candidates):
        result = filter_candidates_by_preferences(
            candidates, {"studyTimes": ["late-night", "afternoon"]}
        )
        assert self._ids(result) == ["bob"]

    def test_content_types(self, candidates):
        result = filter_candidates_by_preferences(candidates, {"contentTypes": ["homework"]})
        assert self._ids(result) == ["alice"]

    def test_difficulty_levels(self, candidates):
        result = filter_candidates_by_preferences(
            candidates, {"difficultyLevels": ["advanced", "mock-exam"]}
        )
        assert self._ids(result) == ["bob"]

    def test_group_size_bounds(self, candidates):
        result = filter_candidates_by_preferences(
            candidates, {"minGroupSize": 4, "maxGroupSize": 10}
        )
        # carol has no preferred size and is never excluded by it
        assert self._ids(result) == ["bob", "carol"]

    def test_max_group_size(self, candidates):
        result = filter_candidates_by_preferences(candidates, {"maxGroupSize": 5})
        assert self._ids(result) == ["alice", "carol"]

    def test_filters_combine_with_and(self, candidates):
        result = filter_candidates_by_preferences(
            candidates, {"courses": ["CS70"], "academicYear": "junior"}
        )
        assert self._ids(result) == ["alice"]

    def test_accepts_filter_model(self, candidates):
        filters = CandidateFilters(courses=["CS170"])
        assert self._ids(filter_candidates_by_preferences(candidates, filters)) == ["bob"]

    def test_invalid_filter_raises(self, candidates):
        with pytest.raises(InvalidPreferencesError):
            filter_candidates_by_preferences(candidates, {"studyTimes": ["midnight"]})
