"""Ingestion and stats runs: the sequential batch jobs behind the CLI."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timezone

from . import chesscom_client
from .aggregator import (
    CategoryTotals,
    DailyStatSnapshot,
    RatingChange,
    build_events,
    compute_as_of,
    compute_daily_series,
    rating_changes,
    ratings_from_stats,
)
from .chesscom_client import ArchiveRef, ArchiveStatus
from .config import Settings
from .database import DuckDBDatabase
from .merge import apply_merge

logger = logging.getLogger(__name__)


@dataclass
class IngestReport:
    archives_listed: int = 0
    archives_fetched: int = 0
    games_seen: int = 0
    inserted: int = 0
    skipped: int = 0


def _archives_to_fetch(refs: list[ArchiveRef], full: bool) -> list[ArchiveRef]:
    if full:
        return refs
    return [r for r in refs if r.last_fetched_at is None or r.status is ArchiveStatus.ACTIVE]


def ingest(
    settings: Settings,
    store: DuckDBDatabase,
    *,
    full: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> IngestReport:
    """Pull new games for ``settings.username`` into ``store``.

    The archive listing must succeed (ArchiveListError otherwise, before
    anything is written). Archives are then fetched one at a time with
    ``settings.request_delay`` seconds between calls; a failed archive only
    contributes no games. Unless ``full`` is set, archives that were already
    fetched are skipped except for the active (current) month.
    """
    username = settings.require_username()
    archive_ids = chesscom_client.list_archives(
        username,
        api_base=settings.api_base,
        timeout=settings.request_timeout,
        user_agent=settings.user_agent,
    )
    logger.debug("Listed %d archive(s) for %s", len(archive_ids), username)

    report = IngestReport(archives_listed=len(archive_ids))
    store.upsert_archives(chesscom_client.archive_refs(archive_ids))
    listed = set(archive_ids)
    refs = [r for r in store.list_archive_refs() if r.id in listed]
    if store.count_rows() == 0:
        full = True

    for i, ref in enumerate(_archives_to_fetch(refs, full)):
        if i:
            sleep(settings.request_delay)
        games = chesscom_client.fetch_games_for_archive(
            ref.id, timeout=settings.request_timeout, user_agent=settings.user_agent
        )
        result = apply_merge(store, games, tracked_username=username, tz=settings.timezone)
        # Listed archives always hold games; an empty batch means the fetch failed.
        if games:
            store.mark_archive_fetched(ref.id, datetime.now(timezone.utc))
        logger.info("Archive %s: %d new game(s)", ref.year_month or ref.id, result.inserted)

        report.archives_fetched += 1
        report.games_seen += len(games)
        report.inserted += result.inserted
        report.skipped += result.skipped
    return report


def snapshot(settings: Settings, store: DuckDBDatabase, cutoff: date | None = None) -> dict[str, CategoryTotals]:
    """As-of totals per category from the stored games."""
    events = build_events(store.read_all_rows(), settings.timezone)
    return compute_as_of(events, cutoff or datetime.now(settings.timezone).date())


def daily_series(settings: Settings, store: DuckDBDatabase, today: date | None = None) -> list[DailyStatSnapshot]:
    """Day-by-day series from the first stored game through ``today``."""
    events = build_events(store.read_all_rows(), settings.timezone)
    return compute_daily_series(events, today or datetime.now(settings.timezone).date())


def pull_stats(settings: Settings, store: DuckDBDatabase, now: datetime | None = None) -> list[RatingChange]:
    """Fetch the stats endpoint, keep the flattened payload, log rating moves."""
    username = settings.require_username()
    now = now or datetime.now(settings.timezone)
    payload = chesscom_client.fetch_stats(
        username,
        api_base=settings.api_base,
        timeout=settings.request_timeout,
        user_agent=settings.user_agent,
    )
    flat = chesscom_client.flatten_json(payload)
    store.replace_stats_snapshot(now, flat)

    changes = rating_changes(
        store.latest_ratings(),
        ratings_from_stats(flat),
        now,
        min_hours=settings.unchanged_rating_hours,
    )
    if changes:
        store.record_ratings(now, [(c.category, c.rating, c.change) for c in changes])
    return changes
