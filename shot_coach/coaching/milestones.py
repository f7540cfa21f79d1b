"""
Bean-scoped milestones detected from shot history.

All checks look at the shots of one bean in ascending timestamp order and
score each shot against that bean's shots. Scores are memoized per call
(``_ScoreMemo``) so each shot is scored at most once.

Milestones (first match wins, in this order)
--------------------------------------------
FIRST_PERFECT
    score >= 80 and no earlier shot of the bean scored >= 80.
DIALED_IN
    the shot and the two before it all score >= 60, and the three shots
    immediately preceding it were not all >= 60.
CONSISTENCY
    the shot scores >= 60 and the run of consecutive >= 60 shots ending at
    it has length 3, 5, or a multiple of 5 from 10 on.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from shot_coach.coaching.scorer import calculate_shot_quality_score
from shot_coach.config import DEFAULT_THRESHOLDS, CoachingThresholds
from shot_coach.errors import ErrorKind, Ok, Result, failure
from shot_coach.models.shot import Shot
from shot_coach.taxonomy.shot_taxonomy import MilestoneType

logger = logging.getLogger(__name__)

_STREAK_MILESTONES = (3, 5)
_STREAK_INTERVAL = 5
_LONG_STREAK = 10


@dataclass(frozen=True)
class Milestone:
    """An achievement unlocked by ``shot_id``.

    ``streak_length`` is set for CONSISTENCY milestones only.
    """

    type:          MilestoneType
    shot_id:       Optional[int]
    score:         int
    streak_length: Optional[int] = None


@dataclass(frozen=True)
class DialInStatus:
    """Whether the bean's recent shots show it is dialed in."""

    is_dialed_in:       bool
    recent_average:     float
    shots_considered:   int
    dial_in_shot_count: Optional[int]


class _ScoreMemo:
    """Scores shots against a fixed bean history, each at most once."""

    def __init__(self, bean_shots: Sequence[Shot], thresholds: CoachingThresholds) -> None:
        self._context = list(bean_shots)
        self._thresholds = thresholds
        self._scores: dict[int, int] = {}

    def score(self, index: int) -> int:
        if index not in self._scores:
            self._scores[index] = calculate_shot_quality_score(
                self._context[index], self._context, self._thresholds
            )
        return self._scores[index]


def _ordered(bean_shots: Sequence[Shot]) -> list[Shot]:
    return sorted(bean_shots, key=lambda s: (s.timestamp, s.shot_id or 0))


def _index_of(shots: list[Shot], shot: Shot) -> Optional[int]:
    for i, candidate in enumerate(shots):
        if candidate.shot_id == shot.shot_id:
            return i
    return None


def detect_milestone(
    shot: Shot,
    bean_shots: Sequence[Shot],
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> Result[Optional[Milestone]]:
    """Milestone unlocked by ``shot``.

    Args:
        shot:       Shot to check; must be in ``bean_shots`` (matched by id).
        bean_shots: All shots of the shot's bean, any order.
        thresholds: Coaching thresholds.

    Returns:
        ``Ok(Milestone)``, ``Ok(None)`` when nothing was unlocked, or ``Err``
        NOT_FOUND when ``shot`` is not in ``bean_shots``.
    """
    ordered = _ordered(bean_shots)
    index = _index_of(ordered, shot)
    if index is None:
        return failure(ErrorKind.NOT_FOUND, f"Shot {shot.shot_id} is not part of the bean history")
    return Ok(_milestone_at(ordered, index, thresholds))


def _milestone_at(
    ordered: list[Shot],
    index: int,
    thresholds: CoachingThresholds,
) -> Optional[Milestone]:
    shot = ordered[index]
    memo = _ScoreMemo(ordered, thresholds)
    score = memo.score(index)

    if score >= thresholds.perfect_score and all(
        memo.score(i) < thresholds.perfect_score for i in range(index)
    ):
        return Milestone(MilestoneType.FIRST_PERFECT, shot.shot_id, score)

    if _completes_first_good_run(memo, index, thresholds):
        return Milestone(MilestoneType.DIALED_IN, shot.shot_id, score)

    if score >= thresholds.dial_in_min_score:
        streak = _streak_ending_at(memo, index, thresholds)
        if streak in _STREAK_MILESTONES or (
            streak >= _LONG_STREAK and streak % _STREAK_INTERVAL == 0
        ):
            return Milestone(MilestoneType.CONSISTENCY, shot.shot_id, score, streak)

    return None


def find_dial_in_point(
    bean_shots: Sequence[Shot],
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> Optional[int]:
    """Number of shots it took to dial in the bean, or ``None`` if never.

    Dialing in means three consecutive shots scoring >= 60; the result is
    the count of shots up to and including the third one.
    """
    ordered = _ordered(bean_shots)
    memo = _ScoreMemo(ordered, thresholds)
    run = thresholds.dial_in_shot_count
    for start in range(len(ordered) - run + 1):
        if all(memo.score(i) >= thresholds.dial_in_min_score for i in range(start, start + run)):
            return start + run
    return None


def dial_in_status(
    bean_shots: Sequence[Shot],
    thresholds: CoachingThresholds = DEFAULT_THRESHOLDS,
) -> DialInStatus:
    """Dialed in when the last three shots average >= 70 and each is >= 60."""
    ordered = _ordered(bean_shots)
    memo = _ScoreMemo(ordered, thresholds)
    run = thresholds.dial_in_shot_count
    recent = [memo.score(i) for i in range(max(0, len(ordered) - run), len(ordered))]
    average = sum(recent) / len(recent) if recent else 0.0
    dialed_in = (
        len(recent) >= run
        and average >= thresholds.dial_in_consistency_score
        and all(s >= thresholds.dial_in_min_score for s in recent)
    )
    return DialInStatus(
        is_dialed_in=dialed_in,
        recent_average=average,
        shots_considered=len(recent),
        dial_in_shot_count=find_dial_in_point(ordered, thresholds),
    )


def _completes_first_good_run(
    memo: _ScoreMemo, index: int, thresholds: CoachingThresholds
) -> bool:
    run = thresholds.dial_in_shot_count
    if index < run - 1:
        return False
    good = thresholds.dial_in_min_score
    if not all(memo.score(i) >= good for i in range(index - run + 1, index + 1)):
        return False
    if index < run:
        return True
    return not all(memo.score(i) >= good for i in range(index - run, index))


def _streak_ending_at(memo: _ScoreMemo, index: int, thresholds: CoachingThresholds) -> int:
    streak = 0
    for i in range(index, -1, -1):
        if memo.score(i) < thresholds.dial_in_min_score:
            break
        streak += 1
    return streak
