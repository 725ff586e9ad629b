"""Per-day and as-of statistics replayed from the stored games.

Every stored game the tracked player took part in becomes a DailyEvent. The
events are replayed oldest first into running per-category counters; ratings
carry forward as the last value seen, and daily figures are the difference
between one day's end-of-day state and the previous day's.
"""

import copy
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo

from .config import MIN_HOURS_BETWEEN_UNCHANGED_ROWS
from .normalizer import CATEGORIES, DRAW, LOSS, WIN, GameRow, category_for

# Chess.com stats section -> category
STATS_SECTIONS = {
    "chess_bullet": "bullet",
    "chess_blitz": "blitz",
    "chess_rapid": "rapid",
    "chess_daily": "daily",
    "chess960": "chess960",
    "chess960_daily": "daily960",
}


@dataclass(frozen=True)
class DailyEvent:
    played_at: datetime
    category: str
    outcome: str | None
    rating: int | None

    @property
    def date(self) -> date:
        return self.played_at.date()


@dataclass
class CategoryTotals:
    rating: int | None = None
    wins: int = 0
    losses: int = 0
    draws: int = 0
    games: int = 0

    def fold(self, event: DailyEvent) -> None:
        self.games += 1
        if event.outcome == WIN:
            self.wins += 1
        elif event.outcome == LOSS:
            self.losses += 1
        elif event.outcome == DRAW:
            self.draws += 1
        if event.rating is not None:
            self.rating = event.rating


@dataclass(frozen=True)
class CategoryDay:
    end_of_day_rating: int | None
    rating_change: int
    games_today: int
    wins_today: int
    losses_today: int
    draws_today: int
    win_pct: float
    score: str


@dataclass
class DailyStatSnapshot:
    day: date
    categories: dict[str, CategoryDay] = field(default_factory=dict)


def build_events(rows: Iterable[GameRow], tz: tzinfo = timezone.utc) -> list[DailyEvent]:
    """Events for rows played by the tracked player, oldest first.

    Rows without a player perspective, an end time or a tracked category
    (other variants) are left out.
    """
    events = []
    for row in rows:
        if not row.my_color or row.end_time is None:
            continue
        category = category_for(row.rules, row.time_class)
        if category is None:
            continue
        played_at = row.end_time.astimezone(tz) if row.end_time.tzinfo else row.end_time
        events.append(DailyEvent(played_at, category, row.result, row.my_rating))
    events.sort(key=lambda e: e.played_at)
    return events


def compute_as_of(events: Iterable[DailyEvent], cutoff: date) -> dict[str, CategoryTotals]:
    """Cumulative totals per category over every event on or before ``cutoff``."""
    totals: dict[str, CategoryTotals] = {}
    for event in sorted(events, key=lambda e: e.played_at):
        if event.date > cutoff:
            continue
        totals.setdefault(event.category, CategoryTotals()).fold(event)
    return {c: totals[c] for c in CATEGORIES if c in totals}


def format_score(wins: int, draws: int, games: int) -> str:
    points = wins + 0.5 * draws
    shown = int(points) if points.is_integer() else points
    return f"{shown}/{games}"


def _category_day(today: CategoryTotals, before: CategoryTotals) -> CategoryDay:
    games = today.games - before.games
    wins = today.wins - before.wins
    draws = today.draws - before.draws
    if today.rating is not None and before.rating is not None:
        change = today.rating - before.rating
    else:
        change = 0
    return CategoryDay(
        end_of_day_rating=today.rating,
        rating_change=change,
        games_today=games,
        wins_today=wins,
        losses_today=today.losses - before.losses,
        draws_today=draws,
        win_pct=wins / games if games > 0 else 0,
        score=format_score(wins, draws, games),
    )


def compute_daily_series(events: Iterable[DailyEvent], today: date | None = None) -> list[DailyStatSnapshot]:
    """One end-of-day snapshot per calendar day, first event's day through ``today``.

    Days without games are still emitted, with counters carried forward. ``today``
    defaults to the current day in the timezone the events are expressed in.
    """
    ordered = sorted(events, key=lambda e: e.played_at)
    if not ordered:
        return []

    first_day = ordered[0].date
    if today is None:
        today = datetime.now(ordered[-1].played_at.tzinfo).date()
    last_day = max(today, ordered[-1].date)

    running: dict[str, CategoryTotals] = {}
    previous: dict[str, CategoryTotals] = {}
    series = []
    index = 0
    day = first_day
    while day <= last_day:
        while index < len(ordered) and ordered[index].date == day:
            event = ordered[index]
            running.setdefault(event.category, CategoryTotals()).fold(event)
            index += 1

        snapshot = DailyStatSnapshot(day)
        for category in CATEGORIES:
            if category in running:
                before = previous.get(category, CategoryTotals())
                snapshot.categories[category] = _category_day(running[category], before)
        series.append(snapshot)

        previous = copy.deepcopy(running)
        day += timedelta(days=1)
    return series


@dataclass(frozen=True)
class RatingChange:
    category: str
    rating: int
    change: int


def ratings_from_stats(flat: dict) -> dict[str, int]:
    """Current rating per category from a flattened stats payload."""
    ratings = {}
    for section, category in STATS_SECTIONS.items():
        value = flat.get(f"{section}.last.rating")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            ratings[category] = int(value)
    return ratings


def rating_changes(
    previous: dict[str, tuple[datetime, int | None]],
    current: dict[str, int],
    now: datetime,
    min_hours: float = MIN_HOURS_BETWEEN_UNCHANGED_ROWS,
) -> list[RatingChange]:
    """Rating-log rows to record for a stats pull taken at ``now``.

    A category with an unchanged rating is only logged again when the last
    logged row is from an earlier day or at least ``min_hours`` old.
    """
    changes = []
    for category in CATEGORIES:
        if category not in current:
            continue
        rating = current[category]
        last = previous.get(category)
        if last is None:
            changes.append(RatingChange(category, rating, 0))
            continue

        last_at, last_rating = last
        change = rating - last_rating if last_rating is not None else 0
        if change == 0:
            if now.tzinfo is not None and last_at.tzinfo is not None:
                last_at = last_at.astimezone(now.tzinfo)
            same_day = last_at.date() == now.date()
            if same_day and now - last_at < timedelta(hours=min_hours):
                continue
        changes.append(RatingChange(category, rating, change))
    return changes
