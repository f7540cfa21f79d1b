"""
Tests for shot_coach/coaching/milestones.py.

What we test
------------
Most tests pin per-shot scores by patching the scorer, so the milestone
rules are checked independently of the scoring formula. One test runs the
real scorer end to end.

detect_milestone():
  - FIRST_PERFECT: first shot of the bean at or above 80.
  - DIALED_IN: three good shots in a row after a window that was not all good.
  - CONSISTENCY: streaks of 3, 5, 10, 15 ... good shots.
  - Precedence FIRST_PERFECT > DIALED_IN > CONSISTENCY.
  - Input order does not matter; an unknown shot is NOT_FOUND.
  - Each shot is scored at most once per call.

find_dial_in_point() / dial_in_status():
  - Shot count up to the first good run; recent average rule.
"""

from __future__ import annotations

import random

import pytest

from shot_coach.coaching import milestones
from shot_coach.coaching.milestones import detect_milestone, dial_in_status, find_dial_in_point
from shot_coach.errors import ErrorKind
from shot_coach.taxonomy.shot_taxonomy import MilestoneType, TastePrimary


@pytest.fixture
def scored(monkeypatch, make_shot):
    """Build a bean history whose shots score exactly as listed (oldest first)."""
    calls: list[int] = []

    def _build(scores: list[int]):
        table = {i + 1: s for i, s in enumerate(scores)}

        def _fake_score(shot, context, thresholds):
            calls.append(shot.shot_id)
            return table[shot.shot_id]

        monkeypatch.setattr(milestones, "calculate_shot_quality_score", _fake_score)
        return [make_shot(shot_id=i + 1, minutes=i) for i in range(len(scores))]

    _build.calls = calls
    return _build


def _type(shots, position: int):
    milestone = detect_milestone(shots[position - 1], shots).value
    return milestone.type if milestone else None


class TestFirstPerfect:
    def test_first_shot_over_80(self, scored):
        shots = scored([50, 85])
        milestone = detect_milestone(shots[1], shots).value
        assert milestone.type == MilestoneType.FIRST_PERFECT
        assert milestone.shot_id == 2
        assert milestone.score == 85
        assert milestone.streak_length is None

    def test_only_the_first_counts(self, scored):
        shots = scored([85, 90])
        assert _type(shots, 1) == MilestoneType.FIRST_PERFECT
        assert _type(shots, 2) is None

    def test_beats_dialed_in(self, scored):
        shots = scored([65, 70, 85])
        assert _type(shots, 3) == MilestoneType.FIRST_PERFECT


class TestDialedIn:
    def test_third_good_shot_of_the_bean(self, scored):
        shots = scored([65, 70, 75])
        assert _type(shots, 3) == MilestoneType.DIALED_IN

    def test_after_a_bad_start(self, scored):
        shots = scored([50, 65, 70, 75])
        assert _type(shots, 4) == MilestoneType.DIALED_IN

    def test_not_repeated_inside_a_run(self, scored):
        shots = scored([65, 70, 75, 70])
        assert _type(shots, 4) is None

    def test_needs_three_shots(self, scored):
        shots = scored([65, 70])
        assert _type(shots, 2) is None


class TestConsistency:
    def test_five_in_a_row(self, scored):
        shots = scored([65, 70, 75, 70, 72])
        milestone = detect_milestone(shots[4], shots).value
        assert milestone.type == MilestoneType.CONSISTENCY
        assert milestone.streak_length == 5

    @pytest.mark.parametrize("position, expected", [(10, 10), (15, 15), (20, 20)])
    def test_multiples_of_five_from_ten(self, scored, position, expected):
        shots = scored([70] * 20)
        milestone = detect_milestone(shots[position - 1], shots).value
        assert milestone.type == MilestoneType.CONSISTENCY
        assert milestone.streak_length == expected

    @pytest.mark.parametrize("position", [4, 6, 7, 11, 12])
    def test_other_streak_lengths(self, scored, position):
        shots = scored([70] * 12)
        assert _type(shots, position) is None

    def test_streak_broken_by_bad_shot(self, scored):
        shots = scored([70, 70, 70, 70, 40])
        assert _type(shots, 5) is None


class TestDetectMilestone:
    def test_input_order_does_not_matter(self, scored):
        shots = scored([50, 65, 70, 75])
        shuffled = shots[:]
        random.Random(7).shuffle(shuffled)
        assert detect_milestone(shots[3], shuffled).value.type == MilestoneType.DIALED_IN

    def test_unknown_shot_not_found(self, scored, make_shot):
        shots = scored([70, 70])
        result = detect_milestone(make_shot(shot_id=99), shots)
        assert not result.is_ok
        assert result.kind == ErrorKind.NOT_FOUND

    def test_each_shot_scored_once(self, scored):
        shots = scored([70] * 10)
        detect_milestone(shots[9], shots)
        assert sorted(scored.calls) == list(range(1, 11))

    def test_real_scores(self, make_shot):
        shots = [
            make_shot(shot_id=i, minutes=i, taste_primary=TastePrimary.PERFECT) for i in range(1, 6)
        ]
        kinds = [detect_milestone(s, shots).value for s in shots]
        assert kinds[0].type == MilestoneType.FIRST_PERFECT
        assert kinds[0].score == 100
        assert kinds[1] is None
        assert kinds[2].type == MilestoneType.DIALED_IN
        assert kinds[3] is None
        assert kinds[4].type == MilestoneType.CONSISTENCY


class TestDialInPoint:
    def test_first_good_run(self, scored):
        assert find_dial_in_point(scored([50, 65, 40, 70, 75, 80])) == 6

    def test_never(self, scored):
        assert find_dial_in_point(scored([70, 70, 40, 70])) is None

    def test_empty(self):
        assert find_dial_in_point([]) is None


class TestDialInStatus:
    def test_dialed_in(self, scored):
        status = dial_in_status(scored([50, 65, 70, 75]))
        assert status.is_dialed_in
        assert status.recent_average == pytest.approx(70.0)
        assert status.shots_considered == 3
        assert status.dial_in_shot_count == 4

    def test_average_too_low(self, scored):
        status = dial_in_status(scored([60, 60, 60]))
        assert not status.is_dialed_in
        assert status.dial_in_shot_count == 3

    def test_one_weak_shot_blocks(self, scored):
        assert not dial_in_status(scored([90, 90, 55])).is_dialed_in

    def test_too_few_shots(self, scored):
        status = dial_in_status(scored([90, 90]))
        assert not status.is_dialed_in
        assert status.recent_average == pytest.approx(90.0)
        assert status.shots_considered == 2
        assert status.dial_in_shot_count is None

    def test_no_shots(self):
        status = dial_in_status([])
        assert not status.is_dialed_in
        assert status.recent_average == 0.0
