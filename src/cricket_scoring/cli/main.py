"""Main CLI interface for the cricket scoring engine."""

import json
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..config import settings
from ..database import create_tables, drop_tables
from ..errors import ScoringError
from ..schemas.matches import InningsView, MatchView
from ..scoring.playback import play_script
from ..scoring.service import ScoringService

# Initialize rich console
console = Console()


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Route loguru through rich, plus an optional file sink."""
    logger.remove()
    logger.add(
        RichHandler(console=console, show_time=True, show_path=False),
        level=level.upper(),
        format="{message}",
    )
    if log_file:
        logger.add(log_file, level=level.upper(), rotation="10 MB")


app = typer.Typer(
    name="cricket-scoring",
    help="Cricket Scoring Engine - ball-by-ball scoring and statistics",
    no_args_is_help=True
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Log file path"),
):
    """Cricket Scoring Engine - ball-by-ball scoring and statistics."""
    log_level = "DEBUG" if verbose else settings.logging.level
    setup_logging(log_level, log_file or settings.logging.file)


@app.command()
def setup_db(force: bool = typer.Option(False, "--force", help="Force recreation of tables")):
    """Initialize database schema."""
    console.print("[bold]Setting up database schema...[/bold]")

    try:
        if force:
            console.print("Dropping existing tables...")
            drop_tables()

        console.print("Creating database tables...")
        create_tables()

        console.print("[green]Database schema initialized successfully![/green]")

    except Exception as e:
        console.print(f"[red]Database setup failed: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def play(
    script: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON match script"),
    finalize: bool = typer.Option(False, "--finalize", help="Finalize the match even if the script does not ask to"),
):
    """Score a match from a JSON script of commands."""
    try:
        data = json.loads(script.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid script {script}: {e}[/red]")
        raise typer.Exit(1)
    if finalize:
        data["finalize"] = True

    service = ScoringService()
    try:
        result = play_script(service, data)
    except ScoringError as e:
        console.print(f"[red]{type(e).__name__}: {e.message}[/red]")
        raise typer.Exit(1)

    display_match(result.view)
    if result.finalized is not None:
        state = "applied" if result.finalized else "already applied"
        console.print(f"Statistics {state} for match [cyan]{result.match_id}[/cyan]")


@app.command()
def snapshot(match_id: str = typer.Argument(..., help="Match ID")):
    """Show the current scorecard of a match."""
    service = ScoringService()
    try:
        view = service.get_match_snapshot(match_id)
    except ScoringError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    display_match(view)


@app.command()
def career(player_id: str = typer.Argument(..., help="Player ID")):
    """Show a player's career statistics."""
    stat = ScoringService().get_player_career_stats(player_id)

    table = Table(title=f"Career statistics: {player_id}")
    table.add_column("Stat", style="cyan")
    table.add_column("Value", style="green", justify="right")
    for name, value in stat.model_dump(exclude={"player_id"}).items():
        table.add_row(name.replace("_", " "), "-" if value is None else str(value))
    console.print(table)


@app.command("team-record")
def team_record(
    team_id: str = typer.Argument(..., help="Team ID"),
    season: int = typer.Argument(..., help="Season year"),
):
    """Show a team's season record and net run rate."""
    record = ScoringService().get_team_season_record(team_id, season)

    table = Table(title=f"{team_id} season {season}")
    for column in ("P", "W", "L", "T", "NR", "Win %", "NRR", "Highest"):
        table.add_column(column, justify="right")
    table.add_row(
        str(record.played), str(record.won), str(record.lost), str(record.tied),
        str(record.no_result), f"{record.win_percentage:.2f}", f"{record.net_run_rate:+.3f}",
        str(record.highest_total),
    )
    console.print(table)


@app.command()
def reconcile():
    """Compare cached statistics with a replay of every finalized match."""
    issues = ScoringService().reconcile()
    if not issues:
        console.print("[green]Statistics match the event logs[/green]")
        return

    table = Table(title="Reconcile mismatches")
    table.add_column("Subject", style="cyan")
    table.add_column("Key")
    table.add_column("Field")
    table.add_column("Stored", justify="right")
    table.add_column("Replayed", justify="right")
    for issue in issues:
        table.add_row(issue.subject, issue.key, issue.field, str(issue.stored), str(issue.replayed))
    console.print(table)
    raise typer.Exit(1)


def display_innings(innings: InningsView, team_names: dict):
    """Display batting and bowling cards of an innings."""
    title = (
        f"{team_names.get(innings.batting_team_id, innings.batting_team_id)} "
        f"{innings.runs}/{innings.wickets} ({innings.overs} ov)"
    )
    batting = Table(title=title)
    batting.add_column("Batter", style="cyan")
    batting.add_column("Dismissal")
    for column in ("R", "B", "4s", "6s", "SR"):
        batting.add_column(column, justify="right")
    for line in innings.batting:
        batting.add_row(
            line.name, line.dismissal, str(line.runs), str(line.balls),
            str(line.fours), str(line.sixes), f"{line.strike_rate:.2f}",
        )
    batting.add_row("Extras", "", str(innings.extras_total), "", "", "", "")
    console.print(batting)

    bowling = Table()
    bowling.add_column("Bowler", style="magenta")
    for column in ("O", "M", "R", "W", "Econ", "WD", "NB"):
        bowling.add_column(column, justify="right")
    for line in innings.bowling:
        bowling.add_row(
            line.name, line.overs, str(line.maidens), str(line.runs), str(line.wickets),
            f"{line.economy:.2f}", str(line.wides), str(line.no_balls),
        )
    console.print(bowling)


def display_match(view: MatchView):
    """Display a match snapshot."""
    names = {team.team_id: team.name for team in view.teams}
    console.print(
        f"\n[bold blue]{' vs '.join(names.values())}[/bold blue] "
        f"({view.format.value.upper()}, {view.venue or 'venue TBC'})"
    )
    for innings in view.innings:
        display_innings(innings, names)
    if view.recent_balls:
        console.print(f"Recent: {' '.join(view.recent_balls)}")
    console.print(f"[bold]{view.status_text}[/bold]")


if __name__ == "__main__":
    app()
