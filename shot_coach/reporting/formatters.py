"""
ASCII terminal formatters for CLI reporting commands.

Every formatter takes coaching results and returns a plain multi-line
string suitable for ``typer.echo()``. No colour, no third-party table
libraries.

Recency banner
--------------
Recommendation output starts with a recency tag so a stale suggestion is
obvious::

  [RECENT] Created 2026-10-18 07:42
  [OLD]    Created 2026-10-02 18:10 -- re-check before following
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

from shot_coach.coaching.milestones import DialInStatus, Milestone
from shot_coach.models.analysis import (
    AggregateQualityAnalysis,
    ShotComparison,
    ShotDetails,
)
from shot_coach.models.recommendation import (
    GrindAdjustmentRecommendation,
    PersistentRecommendation,
)
from shot_coach.models.shot import Shot

_RULE = "-" * 60


def _taste_label(shot: Shot) -> str:
    if shot.taste_primary is None:
        return "-"
    if shot.taste_secondary is None:
        return shot.taste_primary.value
    return f"{shot.taste_primary.value}/{shot.taste_secondary.value}"


def _signed(value: float, fmt: str = ".2f") -> str:
    return f"{value:+{fmt}}"


# ── Grind advice ──────────────────────────────────────────────────────────────


def format_adjustment(rec: GrindAdjustmentRecommendation) -> str:
    """Advisor output for one shot."""
    lines = [
        "",
        "=== Grind Advice ===",
        f"  Current setting:   {rec.current_grind_setting}",
        f"  Suggested setting: {rec.suggested_grind_setting}",
        f"  Direction:         {rec.adjustment_direction.name} ({rec.adjustment_steps} step(s))",
        f"  Time deviation:    {rec.extraction_time_deviation:+d}s",
        f"  Taste:             {rec.taste_issue.value if rec.taste_issue else '-'}",
        f"  Confidence:        {rec.confidence.name}",
        f"  {rec.explanation}",
    ]
    return "\n".join(lines)


def format_recommendation(record: PersistentRecommendation, is_recent: bool) -> str:
    """Stored next-shot recommendation for one bean."""
    stamp = record.timestamp.strftime("%Y-%m-%d %H:%M")
    banner = (
        f"  [RECENT] Created {stamp}"
        if is_recent
        else f"  [OLD]    Created {stamp} -- re-check before following"
    )
    lines = [
        "",
        f"=== Next Shot: bean {record.bean_id} ===",
        banner,
        f"  {record.adjustment_description}: {record.suggested_grind_setting}",
        f"  Reason:      {record.reason}",
        f"  Dose:        {record.recommended_dose:.1f}g",
        f"  Target time: {record.formatted_target_time}",
        f"  Confidence:  {record.confidence_description}",
        f"  Based on taste: {'yes' if record.based_on_taste else 'no'}",
        f"  Followed:       {'yes' if record.was_followed else 'no'}",
    ]
    return "\n".join(lines)


# ── Shot details ──────────────────────────────────────────────────────────────


def format_shot_details(details: ShotDetails, milestone: Optional[Milestone] = None) -> str:
    """Full per-shot report."""
    shot = details.shot
    a = details.analysis
    q = a.quality

    lines: list[str] = [
        "",
        f"=== Shot {shot.shot_id} ===",
        f"  Bean:        {details.bean.name} (roasted {details.days_since_roast} day(s) ago)",
        f"  Pulled at:   {shot.timestamp.strftime('%Y-%m-%d %H:%M')}",
        f"  Dose/Yield:  {shot.coffee_weight_in:.1f}g -> {shot.coffee_weight_out:.1f}g "
        f"({shot.formatted_brew_ratio})",
        f"  Time:        {shot.formatted_extraction_time}",
        f"  Grind:       {shot.grinder_setting}",
        f"  Taste:       {_taste_label(shot)}",
    ]
    if shot.notes:
        lines.append(f"  Notes:       {shot.notes}")

    lines += [
        "",
        f"  Quality score: {q.score}/100",
        f"    {'Extraction time':<18} {q.time_points:>3}",
        f"    {'Brew ratio':<18} {q.ratio_points:>3}",
        f"    {'Taste':<18} {q.taste_points:>3}",
        f"    {'Consistency':<18} {q.consistency_points:>3}",
        f"    {'Precision bonus':<18} {q.bonus_points:>3}",
        "",
        f"  vs. bean average ({details.related_shots_count} shot(s)):",
        f"    Ratio       {a.avg_brew_ratio:.2f}  ({_signed(a.brew_ratio_deviation)})",
        f"    Time        {a.avg_extraction_time:.1f}s  ({_signed(a.extraction_time_deviation, '.1f')}s)",
        f"    Dose        {a.avg_weight_in:.1f}g  ({_signed(a.weight_in_deviation, '.1f')}g)",
        f"    Yield       {a.avg_weight_out:.1f}g  ({_signed(a.weight_out_deviation, '.1f')}g)",
    ]

    if details.shot_ranking is not None:
        best = "  <- personal best" if details.is_personal_best else ""
        lines.append(
            f"  Rank for bean: #{details.shot_ranking} of {details.related_shots_count}{best}"
        )

    neighbours = []
    if details.previous_shot is not None:
        neighbours.append(f"previous #{details.previous_shot.shot_id}")
    if details.next_shot is not None:
        neighbours.append(f"next #{details.next_shot.shot_id}")
    if neighbours:
        lines.append(f"  Neighbours: {', '.join(neighbours)}")

    if a.recommendations:
        lines.append("")
        lines.append("  Recommendations:")
        for rec in a.recommendations:
            low, high = rec.target_value
            lines.append(
                f"    [{rec.priority.name:<6}] {rec.type.name:<20} "
                f"current {rec.current_value:.2f}, target {low:.2f}-{high:.2f}"
            )

    if a.improvement_path is not None:
        path = a.improvement_path
        lines.append("")
        lines.append(
            f"  Next step: {path.action.name} "
            f"(+{path.points_needed} pts to reach {path.target_tier.name})"
        )

    if milestone is not None:
        streak = f" ({milestone.streak_length} in a row)" if milestone.streak_length else ""
        lines.append(f"  Milestone: {milestone.type.name}{streak}")

    return "\n".join(lines)


def format_comparison(comparison: ShotComparison) -> str:
    """Side-by-side differences, shot 2 minus shot 1."""
    c = comparison
    lines = [
        "",
        f"=== Shot {c.shot1.shot_id} vs Shot {c.shot2.shot_id} ===",
        f"  {'':<12} {'Shot 1':>10} {'Shot 2':>10} {'Diff':>10}",
        "  " + _RULE[:46],
        f"  {'Dose':<12} {c.shot1.coffee_weight_in:>9.1f}g {c.shot2.coffee_weight_in:>9.1f}g "
        f"{c.formatted_weight_in_difference:>10}",
        f"  {'Yield':<12} {c.shot1.coffee_weight_out:>9.1f}g {c.shot2.coffee_weight_out:>9.1f}g "
        f"{c.formatted_weight_out_difference:>10}",
        f"  {'Time':<12} {c.shot1.extraction_time_seconds:>9}s {c.shot2.extraction_time_seconds:>9}s "
        f"{c.formatted_time_difference:>10}",
        f"  {'Ratio':<12} {c.shot1.brew_ratio:>10.2f} {c.shot2.brew_ratio:>10.2f} "
        f"{c.formatted_ratio_difference:>10}",
        "",
        f"  Same bean:  {'yes' if c.same_bean else 'no'}",
        f"  Same grind: {'yes' if c.same_grind else 'no'}",
    ]
    return "\n".join(lines)


# ── Quality report ────────────────────────────────────────────────────────────


def format_quality_report(
    analysis: AggregateQualityAnalysis,
    title: str = "All shots",
    dial_in: Optional[DialInStatus] = None,
) -> str:
    """Aggregate quality, trend and (optionally) dial-in status."""
    lines = ["", f"=== Quality Report: {title} ==="]
    if analysis.total_shots == 0:
        lines.append("  (no shots recorded yet)")
        return "\n".join(lines)

    lines += [
        f"  Shots analysed:   {analysis.total_shots}",
        f"  Quality score:    {analysis.overall_quality_score} ({analysis.quality_tier.name})",
        f"  Recent average:   {analysis.recent_average}",
        f"  Overall average:  {analysis.overall_average}",
        f"  Trend:            {analysis.trend_direction.name} ({analysis.improvement_rate:+.1f}%)",
        f"  Consistency:      {analysis.consistency_score}/100",
        "",
        f"  Excellent: {analysis.excellent_count:>4}",
        f"  Good:      {analysis.good_count:>4}",
        f"  Needs work:{analysis.needs_work_count:>4}",
    ]
    if dial_in is not None:
        lines.append("")
        state = "DIALED IN" if dial_in.is_dialed_in else "still dialing in"
        lines.append(
            f"  Bean status: {state} (last {dial_in.shots_considered} avg {dial_in.recent_average:.1f})"
        )
        if dial_in.dial_in_shot_count is not None:
            lines.append(f"  Dialed in after {dial_in.dial_in_shot_count} shot(s)")
    return "\n".join(lines)


def format_shot_list(shots: Sequence[Shot], scores: dict[int, int]) -> str:
    """One line per shot, oldest first."""
    if not shots:
        return "  (no shots)"
    header = f"  {'ID':>5}  {'When':<16}  {'Dose':>6}  {'Yield':>6}  {'Time':>5}  {'Grind':>6}  {'Taste':<14}  {'Score':>5}"
    lines = [header, "  " + "-" * (len(header) - 2)]
    for s in shots:
        score = scores.get(s.shot_id or 0)
        lines.append(
            f"  {s.shot_id:>5}  {s.timestamp.strftime('%Y-%m-%d %H:%M'):<16}  "
            f"{s.coffee_weight_in:>5.1f}g  {s.coffee_weight_out:>5.1f}g  "
            f"{s.extraction_time_seconds:>4}s  {s.grinder_setting:>6}  "
            f"{_taste_label(s):<14}  {score if score is not None else '-':>5}"
        )
    return "\n".join(lines)
