"""Command-line interface for chesstracker."""

import logging
from datetime import date

import click
from dotenv import load_dotenv
from pathlib import Path

from . import pipeline
from .config import Settings
from .database import DuckDBDatabase, get_connection
from .errors import ChessTrackerError, ConfigError


def _settings(ctx: click.Context, username: str | None = None, *, require_user: bool = True, **overrides) -> Settings:
    """Settings from the environment with command-line values applied."""
    try:
        settings = Settings.from_env().with_overrides(
            username=username, db_path=ctx.obj["db_path"], **overrides
        )
        if require_user:
            settings.require_username()
    except ConfigError as exc:
        raise click.UsageError(str(exc)) from exc
    return settings


def _open_store(settings: Settings) -> DuckDBDatabase:
    return DuckDBDatabase(conn=get_connection(settings.db_path))


def _pct(value: float) -> str:
    return f"{value * 100:.0f}%"


@click.group()
@click.option(
    "--db",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to the database file (default: ~/.chesstracker/games.duckdb)",
)
@click.option("-v", "--verbose", is_flag=True, help="Log progress to stderr.")
@click.pass_context
def main(ctx: click.Context, db: Path | None, verbose: bool) -> None:
    """chesstracker - Track your Chess.com games and daily rating movement."""
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db


@main.command()
@click.option("-u", "--username", default=None, help="Chess.com username (defaults to .env value).")
@click.option("--full", is_flag=True, help="Re-read every archive, not only new and current months.")
@click.option("--delay", type=float, default=None, help="Seconds to wait between archive requests.")
@click.pass_context
def fetch(ctx: click.Context, username: str | None, full: bool, delay: float | None) -> None:
    """Fetch new games from Chess.com monthly archives."""
    settings = _settings(ctx, username, request_delay=delay)
    click.echo(f"Fetching games for {settings.username} from chess.com...")

    with _open_store(settings) as store:
        try:
            report = pipeline.ingest(settings, store, full=full)
        except ChessTrackerError as exc:
            raise click.ClickException(str(exc)) from exc

    click.echo(
        f"Done: {report.inserted} game(s) loaded, {report.skipped} duplicate(s) skipped "
        f"({report.archives_fetched} of {report.archives_listed} archive(s) read)."
    )


@main.command(name="list")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Show only the newest N games.")
@click.pass_context
def list_cmd(ctx: click.Context, limit: int | None) -> None:
    """List stored games, newest first."""
    with DuckDBDatabase(conn=get_connection(ctx.obj["db_path"])) as store:
        rows = store.read_all_rows()

    if not rows:
        click.echo("No games stored. Use 'chesstracker fetch' to fetch games.")
        return
    if limit:
        rows = rows[:limit]

    click.echo(f"{'Ended':<17} {'Format':<9} {'Color':<6} {'Opponent':<20} {'Rating':<7} {'Result':<7} {'Moves':<6} {'URL'}")
    click.echo("-" * 110)
    for row in rows:
        ended = row.end_time.strftime("%Y-%m-%d %H:%M") if row.end_time else "-"
        opponent = row.opponent or "-"
        opponent = (opponent[:17] + "...") if len(opponent) > 20 else opponent
        click.echo(
            f"{ended:<17} {row.format:<9} {row.my_color or '-':<6} {opponent:<20} "
            f"{row.my_rating or '-':<7} {row.result or '-':<7} {row.move_count:<6} {row.url}"
        )


@main.command()
@click.option(
    "--as-of",
    "as_of",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Cutoff day, inclusive (default: today).",
)
@click.pass_context
def snapshot(ctx: click.Context, as_of) -> None:
    """Show cumulative results and last rating per category.

    Figures are for the player tracked when the games were fetched.
    """
    settings = _settings(ctx, require_user=False)
    cutoff: date | None = as_of.date() if as_of else None
    with _open_store(settings) as store:
        totals = pipeline.snapshot(settings, store, cutoff)

    if not totals:
        click.echo("No games to summarize.")
        return
    click.echo(f"{'Category':<10} {'Rating':<7} {'Games':<6} {'W':<5} {'L':<5} {'D':<5}")
    for category, t in totals.items():
        click.echo(
            f"{category:<10} {t.rating or '-':<7} {t.games:<6} {t.wins:<5} {t.losses:<5} {t.draws:<5}"
        )


@main.command()
@click.option("--days", type=click.IntRange(min=1), default=7, show_default=True, help="Number of most recent days to show.")
@click.pass_context
def daily(ctx: click.Context, days: int) -> None:
    """Show day-by-day games, results and rating change per category."""
    settings = _settings(ctx, require_user=False)
    with _open_store(settings) as store:
        series = pipeline.daily_series(settings, store)

    if not series:
        click.echo("No games to summarize.")
        return
    click.echo(f"{'Day':<11} {'Category':<10} {'Rating':<7} {'Change':<7} {'Games':<6} {'W/L/D':<9} {'Win%':<5} {'Score'}")
    for snap in series[-days:]:
        for category, d in snap.categories.items():
            wld = f"{d.wins_today}/{d.losses_today}/{d.draws_today}"
            click.echo(
                f"{snap.day.isoformat():<11} {category:<10} {d.end_of_day_rating or '-':<7} "
                f"{d.rating_change:<+7} {d.games_today:<6} {wld:<9} {_pct(d.win_pct):<5} {d.score}"
            )


@main.command()
@click.option("-u", "--username", default=None, help="Chess.com username (defaults to .env value).")
@click.pass_context
def stats(ctx: click.Context, username: str | None) -> None:
    """Pull current ratings from the stats endpoint into the rating log."""
    settings = _settings(ctx, username)
    with _open_store(settings) as store:
        try:
            changes = pipeline.pull_stats(settings, store)
        except ChessTrackerError as exc:
            raise click.ClickException(str(exc)) from exc

    if not changes:
        click.echo("No rating changes to record.")
        return
    for change in changes:
        click.echo(f"{change.category:<10} {change.rating:<6} {change.change:+d}")


if __name__ == "__main__":
    main()
