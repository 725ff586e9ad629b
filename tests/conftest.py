"""Shared fixtures for chesstracker tests."""

import duckdb
import pytest

from chesstracker.database import DuckDBDatabase, init_db

ARCHIVE_BASE = "https://api.chess.com/pub/player/alice/games"

SAMPLE_PGN = """[Event "Live Chess"]
[Site "Chess.com"]
[Date "2024.01.15"]
[Round "-"]
[White "alice"]
[Black "bob"]
[Result "1-0"]
[CurrentPosition "rnbqkbnr/pppp1ppp/8/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R b KQkq -"]
[Timezone "UTC"]
[ECO "C40"]
[ECOUrl "https://www.chess.com/openings/Kings-Pawn-Opening-Kings-Knight-Variation"]
[UTCDate "2024.01.15"]
[UTCTime "23:58:00"]
[WhiteElo "1500"]
[BlackElo "1480"]
[TimeControl "180+2"]
[Termination "alice won by resignation"]
[StartTime "23:58:00"]
[EndDate "2024.01.16"]
[EndTime "00:03:30"]
[Link "https://www.chess.com/game/live/1"]

1. e4 {[%clk 0:03:00]} 1... e5 {[%clk 0:02:58]} 2. Nf3 {[%clk 0:02:55]} 1-0
"""


def make_game(
    url: str,
    white_result: str = "win",
    black_result: str = "resigned",
    white: str = "alice",
    black: str = "bob",
    end_time: int = 1705363410,
    time_class: str = "blitz",
    rules: str = "chess",
    white_rating: int = 1500,
    black_rating: int = 1480,
    pgn: str = SAMPLE_PGN,
) -> dict:
    """A raw game object shaped like the Chess.com archive API returns."""
    return {
        "url": url,
        "pgn": pgn,
        "time_control": "180+2",
        "end_time": end_time,
        "rated": True,
        "accuracies": {"white": 91.2, "black": 78.4},
        "time_class": time_class,
        "rules": rules,
        "eco": "https://www.chess.com/openings/Kings-Pawn-Opening",
        "white": {"username": white, "rating": white_rating, "result": white_result},
        "black": {"username": black, "rating": black_rating, "result": black_result},
    }


@pytest.fixture
def db():
    """In-memory DuckDB connection with schema initialized."""
    conn = duckdb.connect(":memory:")
    init_db(conn)
    yield conn
    conn.close()


@pytest.fixture
def store(db):
    """Games store on the in-memory connection."""
    return DuckDBDatabase(conn=db)
