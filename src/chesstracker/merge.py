"""Incremental merge of an archive batch into the newest-first games store."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import timezone, tzinfo

from .database import AbstractDatabase
from .normalizer import GameRow, normalize_batch, safe_get

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeResult:
    inserted: int
    skipped: int

    @property
    def is_noop(self) -> bool:
        return self.inserted == 0


def merge_new_games(
    batch: Iterable[dict],
    existing_keys: set[str],
    tracked_username: str | None = None,
    tz: tzinfo = timezone.utc,
) -> list[GameRow]:
    """Rows for the games in ``batch`` whose URL is not stored yet, newest first.

    The API lists an archive oldest-first; reversing lets the caller insert
    the whole result at the top of the store and keep it newest-first.
    """
    fresh = []
    seen = set(existing_keys)
    for raw_game in batch:
        url = safe_get(raw_game, "url")
        if not url or url in seen:
            continue
        seen.add(url)
        fresh.append(raw_game)

    rows = normalize_batch(fresh, tracked_username=tracked_username, tz=tz)
    rows.reverse()
    return rows


def apply_merge(
    store: AbstractDatabase,
    batch: list[dict],
    tracked_username: str | None = None,
    tz: tzinfo = timezone.utc,
) -> MergeResult:
    """Insert the unseen games of ``batch`` at the top of ``store``."""
    existing = {url for url in store.get_column_values("url") if url}
    rows = merge_new_games(batch, existing, tracked_username=tracked_username, tz=tz)
    if rows:
        store.insert_rows_at(0, rows)
    logger.info("Merged batch: %d new, %d already stored or skipped", len(rows), len(batch) - len(rows))
    return MergeResult(inserted=len(rows), skipped=len(batch) - len(rows))
