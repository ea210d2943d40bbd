"""Unit tests for compatibility scoring."""

import itertools

import pytest

from mentormatch.domain.models import AvailabilitySlot, UserProfile
from mentormatch.matching.scoring import (
    SCORE_WEIGHTS,
    availability_score,
    calculate_score,
    expertise_score,
    interaction_score,
    mentee_needs,
    normalize_tags,
    overlap_ratio,
    priority_score,
    round_half_up,
)


def profile(user_id="u", **fields) -> UserProfile:
    return UserProfile(id=user_id, **fields)


def slots(*days):
    return [AvailabilitySlot(day=day) for day in days]


class TestHelpers:
    """Tests for tag normalisation, overlap and rounding."""

    def test_normalize_tags_trims_lowercases_and_drops_empties(self):
        assert normalize_tags(["  Python ", "", "ML", None]) == ["python", "ml"]

    def test_normalize_tags_accepts_comma_separated_string(self):
        assert normalize_tags("Data, ML ,,") == ["data", "ml"]

    def test_normalize_tags_empty_inputs(self):
        assert normalize_tags(None) == []
        assert normalize_tags([]) == []
        assert normalize_tags("") == []

    def test_overlap_ratio_both_empty_is_neutral(self):
        assert overlap_ratio([], []) == 0.5

    def test_overlap_ratio_one_side_empty(self):
        assert overlap_ratio(["a"], []) == 0.25
        assert overlap_ratio([], ["a"]) == 0.25

    def test_overlap_ratio_is_jaccard_with_set_semantics(self):
        assert overlap_ratio(["a", "b", "b"], ["b", "c"]) == pytest.approx(1 / 3)
        assert overlap_ratio(["a"], ["a"]) == 1.0
        assert overlap_ratio(["a"], ["b"]) == 0.0

    @pytest.mark.parametrize(
        "value,expected",
        [(32.5, 33), (0.5, 1), (2.5, 3), (49.0, 49), (33.33, 33), (66.67, 67), (0.0, 0)],
    )
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_weights_sum_to_one(self):
        assert sum(SCORE_WEIGHTS.values()) == pytest.approx(1.0)


class TestExpertiseScore:
    def test_partial_overlap(self):
        mentor = profile(expertise_areas=["python", "ml"])
        mentee = profile(skills=["ml", "data"])
        assert expertise_score(mentor, mentee) == 33

    def test_matching_is_case_and_whitespace_insensitive(self):
        mentor = profile(expertise_areas=["Python ", "ML"])
        mentee = profile(skills=["ml", " python"])
        assert expertise_score(mentor, mentee) == 100

    def test_both_sides_empty(self):
        assert expertise_score(profile(), profile()) == 50

    def test_one_side_empty(self):
        assert expertise_score(profile(expertise_areas=["python"]), profile()) == 25
        assert expertise_score(profile(), profile(skills=["python"])) == 25

    def test_needs_fall_back_to_interests_then_goals(self):
        assert mentee_needs(profile(skills=[], interests=["ML"])) == ["ml"]
        assert mentee_needs(profile(mentoring_goals=["Career"])) == ["career"]
        assert mentee_needs(profile(skills=["Data"], interests=["ml"])) == ["data"]

    def test_interest_fallback_used_in_score(self):
        mentor = profile(expertise_areas=["python", "ml"])
        mentee = profile(interests=["ml"])
        assert expertise_score(mentor, mentee) == 50


class TestAvailabilityScore:
    def test_no_slots_anywhere_is_neutral(self):
        assert availability_score(profile(), profile()) == 60

    def test_day_overlap(self):
        mentor = profile(availability_slots=slots("mon", "wed"))
        mentee = profile(availability_slots=slots("mon"))
        assert availability_score(mentor, mentee) == 50

    def test_one_side_without_slots(self):
        mentor = profile(availability_slots=slots("mon"))
        assert availability_score(mentor, profile()) == 25

    def test_duplicate_days_count_once(self):
        mentor = profile(availability_slots=slots("mon", "mon"))
        mentee = profile(availability_slots=slots("mon"))
        assert availability_score(mentor, mentee) == 100


class TestInteractionScore:
    def test_base_score_without_shared_attributes(self):
        # No program/major; both interest lists empty -> neutral 0.5 * 30 = 15
        assert interaction_score(profile(), profile()) == 45

    def test_same_program_and_major(self):
        mentor = profile(program="CS", major="Math", interests=["chess"])
        mentee = profile(program="CS", major="Math", interests=["go"])
        assert interaction_score(mentor, mentee) == 90

    def test_program_comparison_is_exact(self):
        mentor = profile(program="CS", interests=["chess"])
        mentee = profile(program="cs", interests=["go"])
        assert interaction_score(mentor, mentee) == 30

    def test_capped_at_100(self):
        mentor = profile(program="CS", major="Math", interests=["chess"])
        mentee = profile(program="CS", major="Math", interests=["chess"])
        assert interaction_score(mentor, mentee) == 100


class TestPriorityScore:
    @pytest.mark.parametrize(
        "priority,expected",
        [
            (80, 80),
            (120, 100),
            (-5, 0),
            (72.6, 73),
            ("High", 90),
            ("urgent", 90),
            ("Medium", 60),
            ("low", 35),
            ("someday", 50),
            (None, 50),
        ],
    )
    def test_priority_mapping(self, priority, expected):
        assert priority_score(priority) == expected

    def test_boolean_is_not_numeric(self):
        assert priority_score(True) == 50


class TestCalculateScore:
    def test_worked_example(self):
        mentor = profile(
            "m",
            expertise_areas=["python", "ml"],
            availability_slots=slots("mon", "wed"),
            program="CS",
            interests=["open source"],
        )
        mentee = profile(
            "e",
            skills=["ml", "data"],
            availability_slots=slots("mon"),
            program="CS",
            interests=["open source"],
        )

        result = calculate_score(mentor, mentee)

        assert result.breakdown.expertise == 33
        assert result.breakdown.availability == 50
        assert result.breakdown.interactions == 100
        assert result.breakdown.priority == 50
        # 33*0.5 + 50*0.25 + 100*0.15 + 50*0.1 = 49
        assert result.score == 49

    def test_is_deterministic_and_bounded(self):
        tag_options = [[], ["python"], ["python", "ml"], ["data"]]
        day_options = [[], slots("mon"), slots("mon", "tue")]
        priorities = [None, 0, 100, "high", "low"]

        for expertise, skills, days, priority in itertools.product(
            tag_options, tag_options, day_options, priorities
        ):
            mentor = profile("m", expertise_areas=expertise, availability_slots=days)
            mentee = profile("e", skills=skills, availability_slots=slots("mon"), priority=priority)

            first = calculate_score(mentor, mentee)
            second = calculate_score(mentor, mentee)

            assert first == second
            assert 0 <= first.score <= 100

    def test_perfect_match_scores_high(self):
        mentor = profile(
            "m",
            expertise_areas=["python"],
            availability_slots=slots("mon"),
            program="CS",
            major="SE",
            interests=["chess"],
        )
        mentee = profile(
            "e",
            skills=["python"],
            availability_slots=slots("mon"),
            program="CS",
            major="SE",
            interests=["chess"],
            priority="high",
        )

        result = calculate_score(mentor, mentee)

        # 100*0.5 + 100*0.25 + 100*0.15 + 90*0.1 = 99
        assert result.score == 99
