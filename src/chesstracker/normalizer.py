"""Turn one raw Chess.com game object into a flat, fixed-order GameRow."""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, NamedTuple

from .annotation import AnnotationRecord, parse_annotation, tokenize_moves

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 3

STANDARD_CATEGORIES = ("bullet", "blitz", "rapid", "daily")
CATEGORIES = (*STANDARD_CATEGORIES, "chess960", "daily960")

WIN, LOSS, DRAW = "Win", "Loss", "Draw"

_LOSS_CODES = {"resigned", "timeout", "checkmated", "abandoned", "lose"}
_DRAW_CODES = {
    "draw",
    "agreed",
    "stalemate",
    "repetition",
    "insufficient",
    "50move",
    "timevsinsufficient",
}


class GameRow(NamedTuple):
    url: str
    time_control: str | None
    base_time_minutes: float | None
    increment_seconds: int | None
    rated: bool
    time_class: str | None
    rules: str | None
    format: str
    end_time: datetime | None
    duration_seconds: int | None
    my_rating: int | None
    my_color: str | None
    opponent: str | None
    opponent_rating: int | None
    result: str | None
    termination: str | None
    event: str | None
    site: str | None
    date: str | None
    round: str | None
    opening: str | None
    eco: str | None
    eco_url: str | None
    utc_date: str | None
    utc_time: str | None
    start_time: str | None
    end_date: str | None
    pgn_end_time: str | None
    current_position: str | None
    pgn: str | None
    san_moves: str | None
    clock_times: str | None
    move_count: int


COLUMNS = GameRow._fields

# Column -> display header
COLUMN_HEADERS = {
    "url": "url",
    "time_control": "timeControl",
    "base_time_minutes": "baseTimeMinutes",
    "increment_seconds": "incrementSeconds",
    "rated": "rated",
    "time_class": "timeClass",
    "rules": "rules",
    "format": "format",
    "end_time": "endTime",
    "duration_seconds": "durationSeconds",
    "my_rating": "myRating",
    "my_color": "myColor",
    "opponent": "opponent",
    "opponent_rating": "opponentRating",
    "result": "result",
    "termination": "termination",
    "event": "event",
    "site": "site",
    "date": "date",
    "round": "round",
    "opening": "opening",
    "eco": "eco",
    "eco_url": "ecoUrl",
    "utc_date": "utcDate",
    "utc_time": "utcTime",
    "start_time": "startTime",
    "end_date": "endDate",
    "pgn_end_time": "endTime(pgn)",
    "current_position": "currentPosition",
    "pgn": "pgn",
    "san_moves": "sanMoves",
    "clock_times": "clockTimes",
    "move_count": "moveCount",
}


def safe_get(mapping: Any, *path: str, default: Any = "") -> Any:
    """Walk nested dict keys, returning ``default`` on any missing or None step."""
    current = mapping
    for key in path:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def _text(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _to_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def compute_format(rules: str | None, time_class: str | None) -> str:
    """Format label shared by every place that classifies a game."""
    rules = (rules or "").strip()
    time_class = (time_class or "").strip()
    if "960" in rules.lower() and time_class.lower() == "daily":
        return "daily960"
    if rules.lower() in ("", "chess"):
        return time_class or "unknown"
    return rules


def category_for(rules: str | None, time_class: str | None) -> str | None:
    """Aggregation bucket for a game, or None for untracked variants."""
    rules = (rules or "").strip().lower()
    time_class = (time_class or "").strip().lower()
    if rules in ("", "chess"):
        return time_class if time_class in STANDARD_CATEGORIES else None
    if "960" in rules:
        return "daily960" if time_class == "daily" else "chess960"
    return None


def parse_time_control(time_control: str | None) -> tuple[float | None, int | None]:
    """Split a Chess.com time control into (base minutes, increment seconds).

    ``"180+2"`` -> ``(3, 2)``; ``"600"`` -> ``(10, 0)``; daily ``"1/86400"``
    -> ``(1440, None)``, the allowance per move in minutes.
    """
    tc = (time_control or "").strip()
    if not tc or tc == "-":
        return None, None
    try:
        if "/" in tc:
            _, seconds = tc.split("/", 1)
            return _minutes(int(seconds)), None
        base, _, increment = tc.partition("+")
        return _minutes(int(base)), int(increment) if increment else 0
    except ValueError:
        return None, None


def _minutes(seconds: int) -> float:
    minutes = seconds / 60
    return int(minutes) if minutes.is_integer() else round(minutes, 2)


def compute_end_time(end_time: Any, tz: tzinfo = timezone.utc) -> datetime | None:
    epoch = _to_int(end_time)
    if not epoch:
        return None
    try:
        return datetime.fromtimestamp(epoch, tz=tz)
    except (OverflowError, OSError, ValueError):
        return None


def _parse_pgn_datetime(day: str, clock: str) -> datetime | None:
    try:
        return datetime.strptime(f"{day.strip()} {clock.strip()}", "%Y.%m.%d %H:%M:%S")
    except ValueError:
        return None


def compute_duration(annotation: AnnotationRecord) -> int | None:
    """Game length in seconds from the StartTime/EndTime header pairs.

    An end earlier than the start is taken as a midnight rollover.
    """
    start_day = annotation.utc_date or annotation.date
    end_day = annotation.end_date or start_day
    if not (start_day and end_day and annotation.start_time and annotation.end_time):
        return None
    start = _parse_pgn_datetime(start_day, annotation.start_time)
    end = _parse_pgn_datetime(end_day, annotation.end_time)
    if start is None or end is None:
        return None
    if end < start:
        end += timedelta(days=1)
    return round((end - start).total_seconds())


def resolve_result(my_code: str | None, opponent_code: str | None) -> str | None:
    """Win/Loss/Draw from the tracked side's result code.

    Chess.com only reports ``win`` for the winner and a reason code for the
    loser, so unknown codes fall back to the opponent's code.
    """
    mine = (my_code or "").strip().lower()
    theirs = (opponent_code or "").strip().lower()
    if mine == "win":
        return WIN
    if mine in _LOSS_CODES:
        return LOSS
    if mine in _DRAW_CODES:
        return DRAW
    if theirs == "win":
        return LOSS
    if theirs == "lose":
        return WIN
    if theirs in _DRAW_CODES:
        return DRAW
    return None


def _player_fields(raw_game: dict, tracked_username: str | None) -> dict[str, Any]:
    fields = {
        "my_rating": None,
        "my_color": None,
        "opponent": None,
        "opponent_rating": None,
        "result": None,
    }
    if not tracked_username:
        return fields

    me = tracked_username.strip().lower()
    white = str(safe_get(raw_game, "white", "username")).lower()
    black = str(safe_get(raw_game, "black", "username")).lower()
    if me == white:
        my_side, their_side = "white", "black"
    elif me == black:
        my_side, their_side = "black", "white"
    else:
        return fields

    fields.update(
        my_rating=_to_int(safe_get(raw_game, my_side, "rating", default=None)),
        my_color=my_side,
        opponent=_text(safe_get(raw_game, their_side, "username")),
        opponent_rating=_to_int(safe_get(raw_game, their_side, "rating", default=None)),
        result=resolve_result(
            safe_get(raw_game, my_side, "result"),
            safe_get(raw_game, their_side, "result"),
        ),
    )
    return fields


def normalize(
    raw_game: dict,
    annotation: AnnotationRecord | None = None,
    tracked_username: str | None = None,
    tz: tzinfo = timezone.utc,
) -> GameRow:
    """Map one raw game (and its parsed annotation) onto the canonical row."""
    pgn = safe_get(raw_game, "pgn")
    if annotation is None:
        annotation = parse_annotation(pgn if isinstance(pgn, str) else "")
    moves = tokenize_moves(annotation.moves_text)

    time_control = _text(safe_get(raw_game, "time_control"))
    base_minutes, increment = parse_time_control(time_control)
    time_class = _text(safe_get(raw_game, "time_class"))
    rules = _text(safe_get(raw_game, "rules"))
    raw_eco = _text(safe_get(raw_game, "eco"))

    return GameRow(
        url=str(safe_get(raw_game, "url")),
        time_control=time_control,
        base_time_minutes=base_minutes,
        increment_seconds=increment,
        rated=bool(safe_get(raw_game, "rated", default=False)),
        time_class=time_class,
        rules=rules,
        format=compute_format(rules, time_class),
        end_time=compute_end_time(safe_get(raw_game, "end_time", default=None), tz),
        duration_seconds=compute_duration(annotation),
        **_player_fields(raw_game, tracked_username),
        termination=_text(annotation.termination),
        event=_text(annotation.event),
        site=_text(annotation.site),
        date=_text(annotation.date),
        round=_text(annotation.round),
        opening=_text(annotation.opening),
        eco=_text(annotation.eco),
        eco_url=_text(annotation.eco_url) or raw_eco,
        utc_date=_text(annotation.utc_date),
        utc_time=_text(annotation.utc_time),
        start_time=_text(annotation.start_time),
        end_date=_text(annotation.end_date),
        pgn_end_time=_text(annotation.end_time),
        current_position=_text(annotation.current_position),
        pgn=_text(pgn),
        san_moves=moves.san_moves() or None,
        clock_times=moves.clock_times() or None,
        move_count=moves.move_count,
    )


def normalize_batch(
    raw_games: Iterable[dict],
    tracked_username: str | None = None,
    tz: tzinfo = timezone.utc,
) -> list[GameRow]:
    """Normalize a batch, skipping (and logging) games that cannot be mapped."""
    rows = []
    for raw_game in raw_games:
        try:
            rows.append(normalize(raw_game, tracked_username=tracked_username, tz=tz))
        except (TypeError, ValueError, AttributeError) as exc:
            logger.warning("Skipping malformed game %s: %s", safe_get(raw_game, "url"), exc)
    return rows
