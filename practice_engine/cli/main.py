"""
Typer CLI for the adaptive practice engine.

Commands:
    practice-engine db init                     - Initialize database tables
    practice-engine content load FILE           - Seed skills and exercises from JSON
    practice-engine skills status               - Show a learner's progress across a domain
    practice-engine exercises rate ID VERDICT   - Rate an exercise good/bad
    practice-engine sessions show ID            - Show a session and its attempts
    practice-engine sessions abandon ID         - Abandon an in-progress session
    practice-engine serve                       - Run the HTTP API

Usage:
    practice-engine --help
    practice-engine content load content/fractions.json
    practice-engine skills status --learner alice --domain fractions
"""

from __future__ import annotations

from pathlib import Path

import typer
from loguru import logger
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from practice_engine.config import get_settings
from practice_engine.core.enums import Verdict
from practice_engine.db.database import build_engine, init_db
from practice_engine.exceptions import PracticeEngineError
from practice_engine.logging_config import configure_logging
from practice_engine.services import EngineServices, build_services

app = typer.Typer(
    help="Adaptive practice engine: sessions, mastery progression and exercise quality",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging before any command runs."""
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level, settings.log_file)


def _build_services() -> EngineServices:
    """Wire engine components against the configured database."""
    settings = get_settings()
    return build_services(settings, engine=build_engine(settings.database_url))


def _fail(message: str) -> None:
    rprint(f"[red]✗[/red] {escape(message)}")
    raise typer.Exit(code=1)


# ========================================
# Database Commands
# ========================================

db_app = typer.Typer(help="Database management")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """
    Initialize database tables from SQLAlchemy models.

    Safe to run multiple times (idempotent).
    """
    logger.info("Initializing database tables...")
    services = _build_services()
    try:
        init_db(services.engine)
    except PracticeEngineError as e:
        _fail(str(e))
    rprint("[green]✓[/green] Database initialized!")


# ========================================
# Content Commands
# ========================================

content_app = typer.Typer(help="Skill and exercise content")
app.add_typer(content_app, name="content")


@content_app.command("load")
def content_load(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON content file"),
) -> None:
    """Seed skills and exercises. Existing exercises (by id) are kept as they are."""
    from practice_engine.db.content_loader import load_content, read_content_file

    try:
        document = read_content_file(path)
    except (ValueError, ValidationError) as e:
        _fail(f"Invalid content file {path}: {e}")

    services = _build_services()
    try:
        init_db(services.engine)
        summary = load_content(
            services.session_factory, document, services.settings.quality_default_score
        )
    except PracticeEngineError as e:
        _fail(str(e))

    table = Table(title=f"Loaded {path.name}", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Skills created", str(summary.skills_created))
    table.add_row("Skills updated", str(summary.skills_updated))
    table.add_row("Exercises created", str(summary.exercises_created))
    table.add_row("Exercises skipped", str(summary.exercises_skipped))
    console.print(table)


# ========================================
# Skill Commands
# ========================================

skills_app = typer.Typer(help="Learner progress and skill availability")
app.add_typer(skills_app, name="skills")


@skills_app.command("status")
def skills_status(
    learner: str = typer.Option(..., "--learner", "-l", help="Learner identifier"),
    domain: str = typer.Option(..., "--domain", "-d", help="Domain identifier"),
) -> None:
    """Show mastery and availability for every skill of a domain."""
    services = _build_services()
    try:
        statuses = services.tracker.list_domain_skills(learner, domain)
    except PracticeEngineError as e:
        _fail(str(e))

    if not statuses:
        rprint(f"[yellow]No skills found for domain {domain}[/yellow]")
        return

    table = Table(title=f"{domain} - {learner}", show_header=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Skill", style="cyan")
    table.add_column("Mastery", justify="center")
    table.add_column("Attempts", justify="right")
    table.add_column("Correct", justify="right")
    table.add_column("Status")

    for status in statuses:
        if status.is_mastered:
            state = "[green]mastered[/green]"
        elif status.is_unlocked:
            state = f"[cyan]unlocked[/cyan] [dim]({status.unlock_reason})[/dim]"
        else:
            state = "[dim]locked[/dim]"
        table.add_row(
            str(status.order_index),
            status.name or status.skill_id,
            f"{status.mastery_level}/{services.settings.mastery_max_level}",
            str(status.attempts_count),
            str(status.correct_count),
            state,
        )
    console.print(table)


# ========================================
# Exercise Commands
# ========================================

exercises_app = typer.Typer(help="Exercise quality feedback")
app.add_typer(exercises_app, name="exercises")


@exercises_app.command("rate")
def exercises_rate(
    exercise_id: str = typer.Argument(..., help="Exercise identifier"),
    verdict: Verdict = typer.Argument(..., help="good or bad"),
) -> None:
    """Apply a quality rating to an exercise."""
    services = _build_services()
    try:
        outcome = services.quality_ledger.rate(exercise_id, verdict)
    except PracticeEngineError as e:
        _fail(str(e))

    rprint(
        f"[green]✓[/green] {exercise_id}: quality {outcome.previous_score} -> {outcome.quality_score}"
    )
    if outcome.flagged:
        rprint("[yellow]Exercise flagged and removed from selection[/yellow]")


# ========================================
# Session Commands
# ========================================

sessions_app = typer.Typer(help="Practice session inspection")
app.add_typer(sessions_app, name="sessions")


@sessions_app.command("show")
def sessions_show(
    session_id: str = typer.Argument(..., help="Session identifier"),
) -> None:
    """Show a session's state and recorded attempts."""
    services = _build_services()
    try:
        practice_session = services.sessions.get_session(session_id)
        attempts = services.sessions.list_attempts(session_id)
    except PracticeEngineError as e:
        _fail(str(e))

    rprint(f"[bold]Session {practice_session.id}[/bold]")
    rprint(f"  Learner: {practice_session.learner_id}")
    rprint(f"  Skill:   {practice_session.skill_id} ({practice_session.session_type})")
    rprint(f"  Status:  {practice_session.status}")
    rprint(f"  Step:    {practice_session.current_step}/{practice_session.total_steps}")
    rprint(
        f"  Score:   {practice_session.exercises_correct}/{practice_session.exercises_completed} correct, "
        f"{practice_session.reward_points} points"
    )

    if attempts:
        table = Table(title="Attempts", show_header=True)
        table.add_column("Exercise", style="cyan")
        table.add_column("Correct", justify="center")
        table.add_column("Time (s)", justify="right")
        for attempt in attempts:
            table.add_row(
                attempt.exercise_id,
                "[green]✓[/green]" if attempt.is_correct else "[red]✗[/red]",
                str(attempt.time_spent_seconds),
            )
        console.print(table)


@sessions_app.command("abandon")
def sessions_abandon(
    session_id: str = typer.Argument(..., help="Session identifier"),
) -> None:
    """Abandon an in-progress session so a new one can be started."""
    services = _build_services()
    try:
        practice_session = services.sessions.abandon_session(session_id)
    except PracticeEngineError as e:
        _fail(str(e))
    rprint(f"[green]✓[/green] Session {practice_session.id} is {practice_session.status}")


# ========================================
# Server
# ========================================


@app.command("serve")
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default from settings)"),
    port: int = typer.Option(None, "--port", help="Port (default from settings)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "practice_engine.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    app()
