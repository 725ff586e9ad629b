"""Games store for chesstracker using DuckDB.

Rows are kept newest-first through an explicit ``row_pos`` column, so the
store behaves like a sheet: new games are inserted at the top and push older
rows down. Timestamps are stored as naive UTC and returned timezone-aware.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from pathlib import Path

import duckdb

from chesstracker.chesscom_client import ArchiveRef, ArchiveStatus, archive_year_month
from chesstracker.config import DEFAULT_DB_PATH
from chesstracker.normalizer import COLUMNS, SCHEMA_VERSION, GameRow
from chesstracker.schema import ALL_DDL

_COLUMN_LIST = ", ".join(COLUMNS)
_PLACEHOLDERS = ", ".join("?" for _ in range(len(COLUMNS) + 1))


class AbstractDatabase(ABC):
    @abstractmethod
    def read_all_rows(self) -> list[GameRow]: ...

    @abstractmethod
    def append_rows(self, rows: Sequence[GameRow]) -> None: ...

    @abstractmethod
    def insert_rows_at(self, index: int, rows: Sequence[GameRow]) -> None: ...

    @abstractmethod
    def get_column_values(self, column: str) -> list: ...

    @abstractmethod
    def close(self) -> None: ...


class DuckDBDatabase(AbstractDatabase):
    def __init__(self, db_path: Path | None = None, *, conn=None):
        self.conn = conn if conn is not None else get_connection(db_path)
        init_db(self.conn)

    def read_all_rows(self) -> list[GameRow]:
        return _read_all_rows(self.conn)

    def append_rows(self, rows: Sequence[GameRow]) -> None:
        _insert_rows_at(self.conn, _count_rows(self.conn), rows)

    def insert_rows_at(self, index: int, rows: Sequence[GameRow]) -> None:
        _insert_rows_at(self.conn, index, rows)

    def get_column_values(self, column: str) -> list:
        return _get_column_values(self.conn, column)

    def count_rows(self) -> int:
        return _count_rows(self.conn)

    def upsert_archives(self, refs: Iterable[ArchiveRef]) -> None:
        _upsert_archives(self.conn, list(refs))

    def list_archive_refs(self) -> list[ArchiveRef]:
        return _list_archive_refs(self.conn)

    def mark_archive_fetched(self, archive_id: str, fetched_at: datetime) -> None:
        self.conn.execute(
            "UPDATE archives SET last_fetched_at = ? WHERE archive_id = ?",
            [_to_utc_naive(fetched_at), archive_id],
        )

    def latest_ratings(self) -> dict[str, tuple[datetime, int | None]]:
        return _latest_ratings(self.conn)

    def record_ratings(self, pulled_at: datetime, entries: Iterable[tuple[str, int | None, int]]) -> None:
        at = _to_utc_naive(pulled_at)
        self.conn.executemany(
            "INSERT INTO rating_log (pulled_at, category, rating, rating_change) VALUES (?, ?, ?, ?)",
            [[at, category, rating, change] for category, rating, change in entries],
        )

    def replace_stats_snapshot(self, pulled_at: datetime, flat: dict) -> None:
        at = _to_utc_naive(pulled_at)
        self.conn.execute("DELETE FROM stats_snapshot")
        if flat:
            self.conn.executemany(
                "INSERT INTO stats_snapshot (pulled_at, path, value) VALUES (?, ?, ?)",
                [[at, path, None if value is None else str(value)] for path, value in flat.items()],
            )

    def close(self) -> None:
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *_):
        self.close()


def get_connection(db_path: Path | None = None) -> duckdb.DuckDBPyConnection:
    """Get a connection to the DuckDB database."""
    path = db_path or DEFAULT_DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path))


def init_db(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the tables and stamp the row schema version."""
    for ddl in ALL_DDL:
        conn.execute(ddl)
    row = conn.execute("SELECT MAX(version) FROM schema_meta").fetchone()
    if row[0] is None:
        conn.execute("INSERT INTO schema_meta (version) VALUES (?)", [SCHEMA_VERSION])


def _to_utc_naive(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_utc_naive(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


def _row_params(position: int, row: GameRow) -> list:
    values = list(row)
    values[COLUMNS.index("end_time")] = _to_utc_naive(row.end_time)
    return [position, *values]


def _count_rows(conn: duckdb.DuckDBPyConnection) -> int:
    return conn.execute("SELECT COUNT(*) FROM games").fetchone()[0]


def _read_all_rows(conn: duckdb.DuckDBPyConnection) -> list[GameRow]:
    """Every stored game, top (newest) first."""
    rows = conn.execute(f"SELECT {_COLUMN_LIST} FROM games ORDER BY row_pos ASC").fetchall()
    end_index = COLUMNS.index("end_time")
    result = []
    for values in rows:
        values = list(values)
        values[end_index] = _from_utc_naive(values[end_index])
        result.append(GameRow(*values))
    return result


def _insert_rows_at(conn: duckdb.DuckDBPyConnection, index: int, rows: Sequence[GameRow]) -> None:
    """Insert rows so the first one lands at ``index``; later rows shift down."""
    if not rows:
        return
    index = max(0, min(index, _count_rows(conn)))
    conn.begin()
    try:
        conn.execute(
            "UPDATE games SET row_pos = row_pos + ? WHERE row_pos >= ?",
            [len(rows), index],
        )
        conn.executemany(
            f"INSERT INTO games (row_pos, {_COLUMN_LIST}) VALUES ({_PLACEHOLDERS})",
            [_row_params(index + offset, row) for offset, row in enumerate(rows)],
        )
    except duckdb.Error:
        conn.rollback()
        raise
    conn.commit()


def _get_column_values(conn: duckdb.DuckDBPyConnection, column: str) -> list:
    if column not in COLUMNS:
        raise ValueError(f"Unknown games column: {column!r}")
    values = [r[0] for r in conn.execute(f"SELECT {column} FROM games ORDER BY row_pos ASC").fetchall()]
    if column == "end_time":
        return [_from_utc_naive(v) for v in values]
    return values


def _upsert_archives(conn: duckdb.DuckDBPyConnection, refs: list[ArchiveRef]) -> None:
    """Record newly listed archives and move the active flag to the newest one.

    An archive losing the active flag has its fetch stamp cleared: games
    played after its last fetch are only picked up by one more read.
    """
    if not refs:
        return
    conn.executemany(
        "INSERT OR IGNORE INTO archives (archive_id, year_month, status) VALUES (?, ?, ?)",
        [[ref.id, archive_year_month(ref.id), ref.status.value] for ref in refs],
    )
    active = [ref.id for ref in refs if ref.status is ArchiveStatus.ACTIVE]
    conn.execute(
        "UPDATE archives SET last_fetched_at = NULL WHERE status = ? AND archive_id IS DISTINCT FROM ?",
        [ArchiveStatus.ACTIVE.value, active[-1] if active else None],
    )
    conn.execute(
        "UPDATE archives SET status = CASE WHEN archive_id = ? THEN ? ELSE ? END",
        [active[-1] if active else None, ArchiveStatus.ACTIVE.value, ArchiveStatus.INACTIVE.value],
    )


def _list_archive_refs(conn: duckdb.DuckDBPyConnection) -> list[ArchiveRef]:
    rows = conn.execute(
        "SELECT archive_id, status, last_fetched_at FROM archives ORDER BY year_month, archive_id"
    ).fetchall()
    return [
        ArchiveRef(id=archive_id, status=ArchiveStatus(status), last_fetched_at=_from_utc_naive(fetched))
        for archive_id, status, fetched in rows
    ]


def _latest_ratings(conn: duckdb.DuckDBPyConnection) -> dict[str, tuple[datetime, int | None]]:
    """Most recent logged (pulled_at, rating) per category."""
    rows = conn.execute(
        "SELECT category, pulled_at, rating FROM rating_log ORDER BY pulled_at ASC"
    ).fetchall()
    return {category: (_from_utc_naive(at), rating) for category, at, rating in rows}
