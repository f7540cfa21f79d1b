"""
Shot Coach CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Open a connection (``get_connection()``; commit on success).
  4. Run the coaching operation.
  5. Print a plain-text report, or ``[ERROR] <kind>: <message>`` and exit 1.

Install and run::

    pip install -e .
    shot-coach init-db
    shot-coach set-grinder --min 1 --max 10 --step 0.5
    shot-coach add-bean --name "Ethiopia Guji" --roast-date 2026-10-10
    shot-coach record-shot --bean 1 --in 18 --out 36 --time 22 --grind 5.5 --taste sour
    shot-coach recommendation show 1
    shot-coach quality-report --bean 1
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Generator, NoReturn, Optional

import typer

from shot_coach.taxonomy.shot_taxonomy import TastePrimary, TasteSecondary

app = typer.Typer(
    name="shot-coach",
    help="Espresso shot coach: local-first dial-in assistant.",
    add_completion=False,
)
recommendation_app = typer.Typer(help="Inspect and manage per-bean next-shot recommendations.")
app.add_typer(recommendation_app, name="recommendation")

_CONFIG_OPTION_HELP = "Path to TOML config file (default: config/default.toml)."


# ── Helpers ───────────────────────────────────────────────────────────────────


def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from shot_coach.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config) -> None:
    from shot_coach.utils.logging import configure_logging
    configure_logging(config.logging)


def _setup(config_path: Optional[str]):
    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    return config


@contextmanager
def _connection(config) -> Generator[sqlite3.Connection, None, None]:
    """Open the configured database, turning SQLite errors into an exit."""
    from shot_coach.db.connection import get_connection

    try:
        with get_connection(
            config.database.db_path,
            wal_mode=config.database.wal_mode,
            busy_timeout_ms=config.database.busy_timeout_ms,
        ) as conn:
            yield conn
    except sqlite3.Error as exc:
        typer.echo(f"[ERROR] storage: {exc} (did you run 'shot-coach init-db'?)", err=True)
        raise typer.Exit(code=1)


def _fail(err) -> NoReturn:
    """Print an ``Err`` and exit 1."""
    typer.echo(f"[ERROR] {err.error.kind.value}: {err.error.message}", err=True)
    raise typer.Exit(code=1)


def _store(conn: sqlite3.Connection, config):
    from shot_coach.coaching.store import RecommendationStore
    from shot_coach.db.repositories.recommendation_repo import RecommendationRecordRepository

    return RecommendationStore(
        RecommendationRecordRepository(conn),
        settings=config.recommendations,
        thresholds=config.coaching,
    )


# ── Setup commands ────────────────────────────────────────────────────────────


@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config (e.g. data/db/test.db).",
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Initialize the SQLite database and apply the full schema.

    Safe to run multiple times; all DDL uses IF NOT EXISTS.
    Also runs pending schema migrations and, when ``[grinder] seed_on_init``
    is set, stores the default grinder profile if none exists.
    """
    from shot_coach.db.connection import get_connection
    from shot_coach.db.migrations import run_migrations
    from shot_coach.db.repositories.grinder_repo import GrinderProfileRepository
    from shot_coach.db.schema import ALL_TABLE_NAMES, apply_schema
    from shot_coach.models.grinder import GrinderProfile

    config = _setup(config_path)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    with get_connection(
        target_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)
        migrations_applied = run_migrations(conn)

        seeded = False
        grinders = GrinderProfileRepository(conn)
        if config.grinder.seed_on_init and grinders.get_current() is None:
            grinders.insert(
                GrinderProfile(
                    scale_min=config.grinder.scale_min,
                    scale_max=config.grinder.scale_max,
                    step_size=config.grinder.step_size,
                )
            )
            seeded = True

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo(f"  Migrations applied: {migrations_applied}")
    if seeded:
        typer.echo(
            f"  Default grinder profile: {config.grinder.scale_min}-"
            f"{config.grinder.scale_max} step {config.grinder.step_size}"
        )
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
    show_full: bool = typer.Option(False, "--full", help="Print full config including all fields."),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)
    c = config.coaching

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:     {config.database.db_path}")
    typer.echo(f"  Optimal time:      {c.optimal_time_min}-{c.optimal_time_max}s")
    typer.echo(f"  Typical ratio:     {c.typical_ratio_min}-{c.typical_ratio_max}")
    typer.echo(f"  Score tiers:       good >= {c.good_score}, excellent >= {c.excellent_score}")
    typer.echo(f"  Default dose:      {config.recommendations.default_dose_g}g")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("set-grinder")
def set_grinder(
    scale_min: int = typer.Option(..., "--min", help="Finest setting on the dial."),
    scale_max: int = typer.Option(..., "--max", help="Coarsest setting on the dial."),
    step_size: float = typer.Option(0.5, "--step", help="Smallest adjustment step."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Store the grinder profile used for grind advice."""
    from pydantic import ValidationError

    from shot_coach.db.repositories.grinder_repo import GrinderProfileRepository
    from shot_coach.models.grinder import GrinderProfile

    config = _setup(config_path)

    try:
        profile = GrinderProfile(scale_min=scale_min, scale_max=scale_max, step_size=step_size)
    except ValidationError as exc:
        typer.echo(f"[ERROR] validation: {exc.errors()[0]['msg']}", err=True)
        raise typer.Exit(code=1)

    problems = profile.validation_errors()
    if problems:
        for msg in problems:
            typer.echo(f"[ERROR] validation: {msg}", err=True)
        raise typer.Exit(code=1)

    with _connection(config) as conn:
        profile_id = GrinderProfileRepository(conn).insert(profile)

    typer.echo(
        f"[OK] Grinder profile {profile_id}: {scale_min}-{scale_max}, step {step_size} "
        f"({len(profile.valid_grind_values())} settings)"
    )


@app.command("add-bean")
def add_bean(
    name: str = typer.Option(..., "--name", help="Bean name."),
    roast_date: datetime = typer.Option(..., "--roast-date", formats=["%Y-%m-%d"], help="YYYY-MM-DD."),
    notes: str = typer.Option("", "--notes"),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Add a coffee bean."""
    from shot_coach.db.repositories.bean_repo import BeanRepository
    from shot_coach.models.shot import FRESH_WINDOW_DAYS, Bean

    config = _setup(config_path)
    bean = Bean(name=name, roast_date=roast_date.date(), notes=notes)

    problems = bean.validation_errors()
    if problems:
        for msg in problems:
            typer.echo(f"[ERROR] validation: {msg}", err=True)
        raise typer.Exit(code=1)

    with _connection(config) as conn:
        bean_id = BeanRepository(conn).insert(bean)

    typer.echo(f"[OK] Bean {bean_id}: {name} (roasted {bean.roast_date.isoformat()})")
    if not bean.is_fresh():
        low, high = FRESH_WINDOW_DAYS
        typer.echo(f"  Note: outside the usual {low}-{high} day resting window; expect to re-dial.")


# ── Shot commands ─────────────────────────────────────────────────────────────


@app.command("record-shot")
def record_shot(
    bean_id: int = typer.Option(..., "--bean", help="Bean ID."),
    weight_in: float = typer.Option(..., "--in", help="Dose in grams."),
    weight_out: float = typer.Option(..., "--out", help="Yield in grams."),
    seconds: int = typer.Option(..., "--time", help="Extraction time in seconds."),
    grind: str = typer.Option(..., "--grind", help="Grind setting used."),
    taste: Optional[TastePrimary] = typer.Option(None, "--taste", case_sensitive=False),
    taste_secondary: Optional[TasteSecondary] = typer.Option(
        None, "--taste-secondary", case_sensitive=False
    ),
    notes: str = typer.Option("", "--notes"),
    pulled_at: Optional[datetime] = typer.Option(
        None, "--at", help="When the shot was pulled (default: now)."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Record a shot, then compute and store the next-shot recommendation."""
    from pydantic import ValidationError

    from shot_coach.coaching.advisor import preselect_taste
    from shot_coach.coaching.catalog import SqliteShotCatalog
    from shot_coach.coaching.milestones import detect_milestone
    from shot_coach.coaching.workflow import CoachingWorkflow
    from shot_coach.db.repositories.grinder_repo import GrinderProfileRepository
    from shot_coach.models.shot import Shot
    from shot_coach.reporting.formatters import format_adjustment, format_recommendation

    config = _setup(config_path)

    try:
        shot = Shot(
            bean_id=bean_id,
            coffee_weight_in=weight_in,
            coffee_weight_out=weight_out,
            extraction_time_seconds=seconds,
            grinder_setting=grind,
            timestamp=(pulled_at or datetime.now()).replace(microsecond=0),
            taste_primary=taste,
            taste_secondary=taste_secondary,
            notes=notes,
        )
    except ValidationError as exc:
        typer.echo(f"[ERROR] validation: {exc.errors()[0]['msg']}", err=True)
        raise typer.Exit(code=1)

    with _connection(config) as conn:
        catalog = SqliteShotCatalog(conn)
        store = _store(conn, config)
        workflow = CoachingWorkflow(
            catalog, store, GrinderProfileRepository(conn).get_current, config.coaching
        )
        result = workflow.record_shot(shot)
        milestone = None
        if result.is_ok:
            bean_shots = catalog.get_shots_for_bean(bean_id).unwrap_or([])
            if bean_shots:
                milestone = detect_milestone(
                    result.value.shot, bean_shots, config.coaching
                ).unwrap_or(None)

    # Exit only after commit; the shot is kept even when advice fails.
    if not result.is_ok:
        _fail(result)
    recorded = result.value

    typer.echo(f"[OK] Recorded shot {recorded.shot.shot_id} ({recorded.shot.formatted_brew_ratio}).")
    if recorded.shot.taste_primary is None:
        guess = preselect_taste(recorded.shot.extraction_time_seconds, config.coaching)
        if guess is not None:
            typer.echo(
                f"  Tip: at {recorded.shot.extraction_time_seconds}s it probably tasted {guess.value}; "
                f"run 'shot-coach taste {recorded.shot.shot_id} <taste>' to refine the advice."
            )
    typer.echo(format_adjustment(recorded.recommendation))
    typer.echo(format_recommendation(recorded.persisted, is_recent=True))
    if milestone is not None:
        typer.echo(f"\n  Milestone unlocked: {milestone.type.name}")


@app.command("taste")
def taste(
    shot_id: int = typer.Argument(..., help="Shot ID."),
    taste_primary: TastePrimary = typer.Argument(..., case_sensitive=False),
    taste_secondary: Optional[TasteSecondary] = typer.Option(
        None, "--secondary", case_sensitive=False
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Add taste feedback to a shot and refresh the bean's recommendation."""
    from shot_coach.coaching.catalog import SqliteShotCatalog
    from shot_coach.coaching.workflow import CoachingWorkflow
    from shot_coach.db.repositories.grinder_repo import GrinderProfileRepository
    from shot_coach.reporting.formatters import format_adjustment, format_recommendation

    config = _setup(config_path)

    with _connection(config) as conn:
        workflow = CoachingWorkflow(
            SqliteShotCatalog(conn),
            _store(conn, config),
            GrinderProfileRepository(conn).get_current,
            config.coaching,
        )
        result = workflow.add_taste_feedback(shot_id, taste_primary, taste_secondary)

    if not result.is_ok:
        _fail(result)

    typer.echo(f"[OK] Shot {shot_id} tasted {taste_primary.value}.")
    typer.echo(format_adjustment(result.value.recommendation))
    typer.echo(format_recommendation(result.value.persisted, is_recent=True))


@app.command("advise")
def advise(
    grind: str = typer.Option(..., "--grind", help="Grind setting the shot was pulled at."),
    seconds: int = typer.Option(..., "--time", help="Extraction time in seconds."),
    taste_primary: Optional[TastePrimary] = typer.Option(None, "--taste", case_sensitive=False),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """One-off grind advice using the stored grinder profile (nothing is saved)."""
    from shot_coach.coaching.advisor import calculate_adjustment
    from shot_coach.db.repositories.grinder_repo import GrinderProfileRepository
    from shot_coach.reporting.formatters import format_adjustment

    config = _setup(config_path)

    with _connection(config) as conn:
        profile = GrinderProfileRepository(conn).get_current()

    result = calculate_adjustment(grind, seconds, taste_primary, profile, config.coaching)
    if not result.is_ok:
        _fail(result)
    typer.echo(format_adjustment(result.value))


@app.command("shot-details")
def shot_details(
    shot_id: Optional[int] = typer.Argument(None, help="Shot ID."),
    last_for_bean: Optional[int] = typer.Option(
        None, "--last-for-bean", help="Show the latest shot of this bean instead."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Full report for one shot: score breakdown, bean context, advice."""
    from shot_coach.coaching.catalog import SqliteShotCatalog
    from shot_coach.coaching.details import ShotDetailAnalyzer
    from shot_coach.coaching.milestones import detect_milestone
    from shot_coach.reporting.formatters import format_shot_details

    if (shot_id is None) == (last_for_bean is None):
        typer.echo("[ERROR] Pass either SHOT_ID or --last-for-bean.", err=True)
        raise typer.Exit(code=1)

    config = _setup(config_path)

    with _connection(config) as conn:
        catalog = SqliteShotCatalog(conn)
        analyzer = ShotDetailAnalyzer(catalog, config.coaching)
        if last_for_bean is not None:
            result = analyzer.get_last_shot_details(last_for_bean)
        else:
            result = analyzer.get_shot_details(shot_id)
        if not result.is_ok:
            _fail(result)
        details = result.value
        if details is None:
            typer.echo(f"  (bean {last_for_bean} has no shots yet)")
            return

        bean_shots = catalog.get_shots_for_bean(details.bean.bean_id).unwrap_or([])
        milestone = (
            detect_milestone(details.shot, bean_shots, config.coaching).unwrap_or(None)
            if bean_shots
            else None
        )

    typer.echo(format_shot_details(details, milestone))


@app.command("compare-shots")
def compare_shots(
    first: int = typer.Argument(..., help="First shot ID."),
    second: int = typer.Argument(..., help="Second shot ID."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Compare two shots (differences are second minus first)."""
    from shot_coach.coaching.catalog import SqliteShotCatalog
    from shot_coach.coaching.details import ShotDetailAnalyzer
    from shot_coach.reporting.formatters import format_comparison

    config = _setup(config_path)

    with _connection(config) as conn:
        result = ShotDetailAnalyzer(SqliteShotCatalog(conn), config.coaching).compare_shots(
            first, second
        )
    if not result.is_ok:
        _fail(result)
    typer.echo(format_comparison(result.value))


@app.command("shots")
def list_shots(
    bean_id: int = typer.Option(..., "--bean", help="Bean ID."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """List a bean's shots with their quality scores."""
    from shot_coach.coaching.catalog import SqliteShotCatalog
    from shot_coach.coaching.scorer import calculate_shot_quality_score
    from shot_coach.reporting.formatters import format_shot_list

    config = _setup(config_path)

    with _connection(config) as conn:
        result = SqliteShotCatalog(conn).get_shots_for_bean(bean_id)
    if not result.is_ok:
        _fail(result)

    shots = result.value
    scores = {
        s.shot_id: calculate_shot_quality_score(s, shots, config.coaching)
        for s in shots
        if s.shot_id is not None
    }
    typer.echo(format_shot_list(shots, scores))


@app.command("quality-report")
def quality_report(
    bean_id: Optional[int] = typer.Option(None, "--bean", help="Restrict to one bean."),
    days: Optional[int] = typer.Option(None, "--days", help="Only shots from the last N days."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Quality distribution, trend and consistency across shots."""
    from shot_coach.coaching.aggregate import analyze_quality
    from shot_coach.coaching.catalog import SqliteShotCatalog
    from shot_coach.coaching.milestones import dial_in_status
    from shot_coach.reporting.formatters import format_quality_report

    config = _setup(config_path)

    with _connection(config) as conn:
        catalog = SqliteShotCatalog(conn)
        context = catalog.get_shots_for_bean(bean_id) if bean_id is not None else catalog.get_all_shots()
        if not context.is_ok:
            _fail(context)

        shots = context.value
        if days is not None:
            now = datetime.now()
            window = catalog.get_shots_between(now - timedelta(days=days), now)
            if not window.is_ok:
                _fail(window)
            shots = [s for s in window.value if bean_id is None or s.bean_id == bean_id]

    analysis = analyze_quality(shots, context.value, config.coaching)
    title = f"bean {bean_id}" if bean_id is not None else "all shots"
    if days is not None:
        title += f", last {days} day(s)"
    status = dial_in_status(context.value, config.coaching) if bean_id is not None else None
    typer.echo(format_quality_report(analysis, title, status))


# ── Recommendation commands ───────────────────────────────────────────────────


@recommendation_app.command("show")
def recommendation_show(
    bean_id: int = typer.Argument(..., help="Bean ID."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Show the stored next-shot recommendation for a bean."""
    from shot_coach.reporting.formatters import format_recommendation

    config = _setup(config_path)

    with _connection(config) as conn:
        store = _store(conn, config)
        result = store.get(bean_id)
    if not result.is_ok:
        _fail(result)
    if result.value is None:
        typer.echo(f"  (no recommendation stored for bean {bean_id})")
        return
    typer.echo(format_recommendation(result.value, store.is_recent(result.value)))


@recommendation_app.command("follow")
def recommendation_follow(
    bean_id: int = typer.Argument(..., help="Bean ID."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Mark a bean's recommendation as followed."""
    config = _setup(config_path)

    with _connection(config) as conn:
        result = _store(conn, config).mark_followed(bean_id)
    if not result.is_ok:
        _fail(result)
    typer.echo(f"[OK] Recommendation for bean {bean_id} marked as followed.")


@recommendation_app.command("clear")
def recommendation_clear(
    bean_id: Optional[int] = typer.Argument(None, help="Bean ID (omit with --all)."),
    clear_all: bool = typer.Option(False, "--all", help="Clear every stored recommendation."),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Delete one bean's recommendation, or all of them."""
    if (bean_id is None) == (not clear_all):
        typer.echo("[ERROR] Pass either BEAN_ID or --all.", err=True)
        raise typer.Exit(code=1)

    config = _setup(config_path)

    with _connection(config) as conn:
        store = _store(conn, config)
        result = store.clear_all() if clear_all else store.clear(bean_id)
    if not result.is_ok:
        _fail(result)
    typer.echo("[OK] Cleared all recommendations." if clear_all else f"[OK] Cleared bean {bean_id}.")


@recommendation_app.command("list")
def recommendation_list(
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """List bean IDs that have a stored recommendation."""
    config = _setup(config_path)

    with _connection(config) as conn:
        result = _store(conn, config).list_bean_ids_with_recommendations()
    if not result.is_ok:
        _fail(result)
    if not result.value:
        typer.echo("  (no stored recommendations)")
        return
    typer.echo("  Beans with recommendations: " + ", ".join(str(b) for b in result.value))


if __name__ == "__main__":
    app()
