"""DDL for the games store."""

# Column order matches normalizer.GameRow; row_pos 0 is the top (newest) row.
GAMES_DDL = """
CREATE TABLE IF NOT EXISTS games (
    row_pos INTEGER NOT NULL,
    url TEXT PRIMARY KEY,
    time_control TEXT,
    base_time_minutes DOUBLE,
    increment_seconds INTEGER,
    rated BOOLEAN NOT NULL DEFAULT FALSE,
    time_class TEXT,
    rules TEXT,
    format TEXT NOT NULL,
    end_time TIMESTAMP,
    duration_seconds INTEGER,
    my_rating INTEGER,
    my_color TEXT,
    opponent TEXT,
    opponent_rating INTEGER,
    result TEXT,
    termination TEXT,
    event TEXT,
    site TEXT,
    date TEXT,
    round TEXT,
    opening TEXT,
    eco TEXT,
    eco_url TEXT,
    utc_date TEXT,
    utc_time TEXT,
    start_time TEXT,
    end_date TEXT,
    pgn_end_time TEXT,
    current_position TEXT,
    pgn TEXT,
    san_moves TEXT,
    clock_times TEXT,
    move_count INTEGER NOT NULL DEFAULT 0
);
"""

ARCHIVES_DDL = """
CREATE TABLE IF NOT EXISTS archives (
    archive_id TEXT PRIMARY KEY,
    year_month TEXT,
    status TEXT NOT NULL,
    last_fetched_at TIMESTAMP
);
"""

RATING_LOG_DDL = """
CREATE TABLE IF NOT EXISTS rating_log (
    pulled_at TIMESTAMP NOT NULL,
    category TEXT NOT NULL,
    rating INTEGER,
    rating_change INTEGER NOT NULL
);
"""

STATS_SNAPSHOT_DDL = """
CREATE TABLE IF NOT EXISTS stats_snapshot (
    pulled_at TIMESTAMP NOT NULL,
    path TEXT NOT NULL,
    value TEXT
);
"""

SCHEMA_META_DDL = """
CREATE TABLE IF NOT EXISTS schema_meta (
    version INTEGER NOT NULL
);
"""

ALL_DDL = [
    SCHEMA_META_DDL,
    GAMES_DDL,
    ARCHIVES_DDL,
    RATING_LOG_DDL,
    STATS_SNAPSHOT_DDL,
]
