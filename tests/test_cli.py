"""Tests for chesstracker.cli module."""

from unittest.mock import MagicMock, patch

import duckdb
from click.testing import CliRunner

from chesstracker.cli import main
from chesstracker.database import DuckDBDatabase, init_db
from chesstracker.merge import apply_merge

from conftest import ARCHIVE_BASE, make_game

JAN = f"{ARCHIVE_BASE}/2024/01"
GAMES = [
    make_game("https://www.chess.com/game/live/1", end_time=1705363410),
    make_game("https://www.chess.com/game/live/2", white_result="resigned", black_result="win", end_time=1705364010),
]


def _make_db():
    conn = duckdb.connect(":memory:")
    init_db(conn)
    return conn


def _response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    return response


def _mock_get(url, **kwargs):
    if url.endswith("/games/archives"):
        return _response(body={"archives": [JAN]})
    if url.endswith("/stats"):
        return _response(body={"chess_blitz": {"last": {"rating": 1500}}})
    return _response(body={"games": GAMES})


def _seeded_db():
    conn = _make_db()
    apply_merge(DuckDBDatabase(conn=conn), GAMES, tracked_username="alice")
    return conn


def test_list_empty_db():
    conn = _make_db()
    with patch("chesstracker.cli.get_connection", return_value=conn):
        result = CliRunner().invoke(main, ["list"])
    assert "No games stored" in result.output


def test_list_with_games_newest_first():
    conn = _seeded_db()
    with patch("chesstracker.cli.get_connection", return_value=conn):
        result = CliRunner().invoke(main, ["list"])
    lines = result.output.splitlines()
    assert "bob" in result.output
    assert lines[2].endswith("/game/live/2")
    assert lines[3].endswith("/game/live/1")


def test_fetch_with_username():
    conn = _make_db()
    with (
        patch("chesstracker.cli.get_connection", return_value=conn),
        patch("chesstracker.chesscom_client.httpx.get", side_effect=_mock_get),
    ):
        result = CliRunner().invoke(main, ["fetch", "-u", "alice", "--delay", "0"])
    assert result.exit_code == 0, result.output
    assert "Fetching games for alice" in result.output
    assert "2 game(s) loaded, 0 duplicate(s) skipped" in result.output


def test_fetch_username_from_env():
    conn = _make_db()
    with (
        patch("chesstracker.cli.get_connection", return_value=conn),
        patch("chesstracker.chesscom_client.httpx.get", side_effect=_mock_get),
        patch.dict("os.environ", {"CHESSCOM_USERNAME": "envuser", "CHESSTRACKER_REQUEST_DELAY": "0"}, clear=False),
    ):
        result = CliRunner().invoke(main, ["fetch"])
    assert result.exit_code == 0, result.output
    assert "Fetching games for envuser" in result.output


def test_fetch_missing_env_var_errors():
    conn = _make_db()
    with (
        patch("chesstracker.cli.get_connection", return_value=conn),
        patch.dict("os.environ", {"CHESSCOM_USERNAME": ""}, clear=False),
    ):
        result = CliRunner().invoke(main, ["fetch"])
    assert result.exit_code != 0
    assert "CHESSCOM_USERNAME not set in .env" in result.output


def test_fetch_listing_failure_reports_error():
    conn = _make_db()
    with (
        patch("chesstracker.cli.get_connection", return_value=conn),
        patch("chesstracker.chesscom_client.httpx.get", return_value=_response(status_code=404)),
    ):
        result = CliRunner().invoke(main, ["fetch", "-u", "ghost", "--delay", "0"])
    assert result.exit_code != 0
    assert "HTTP 404" in result.output


def test_snapshot_command():
    conn = _seeded_db()
    with patch("chesstracker.cli.get_connection", return_value=conn):
        result = CliRunner().invoke(main, ["snapshot", "--as-of", "2024-01-31"])
    assert result.exit_code == 0, result.output
    assert "blitz" in result.output
    assert "1500" in result.output


def test_daily_command():
    conn = _seeded_db()
    with patch("chesstracker.cli.get_connection", return_value=conn):
        result = CliRunner().invoke(main, ["daily", "--days", "10000"])
    assert result.exit_code == 0, result.output
    assert "2024-01-16" in result.output
    assert "1/2" in result.output


def test_stats_command():
    conn = _make_db()
    with (
        patch("chesstracker.cli.get_connection", return_value=conn),
        patch("chesstracker.chesscom_client.httpx.get", side_effect=_mock_get),
    ):
        result = CliRunner().invoke(main, ["stats", "-u", "alice"])
    assert result.exit_code == 0, result.output
    assert "blitz" in result.output
    assert "+0" in result.output


def test_snapshot_and_daily_need_no_username():
    runner = CliRunner()
    with (
        patch("chesstracker.cli.get_connection", side_effect=lambda _path: _seeded_db()),
        patch.dict("os.environ", {"CHESSCOM_USERNAME": ""}, clear=False),
    ):
        snap = runner.invoke(main, ["snapshot", "--as-of", "2024-01-31"])
        daily = runner.invoke(main, ["daily", "--days", "10000"])
    assert snap.exit_code == 0, snap.output
    assert "blitz" in snap.output
    assert daily.exit_code == 0, daily.output
    assert "2024-01-16" in daily.output


def test_snapshot_rejects_username_option():
    conn = _seeded_db()
    with patch("chesstracker.cli.get_connection", return_value=conn):
        result = CliRunner().invoke(main, ["snapshot", "-u", "somebody_else"])
    assert result.exit_code != 0
    assert "No such option" in result.output


def test_daily_rejects_non_positive_days():
    conn = _seeded_db()
    with patch("chesstracker.cli.get_connection", return_value=conn):
        result = CliRunner().invoke(main, ["daily", "--days", "0"])
    assert result.exit_code != 0
    assert "--days" in result.output


def test_list_rejects_non_positive_limit():
    conn = _seeded_db()
    with patch("chesstracker.cli.get_connection", return_value=conn):
        result = CliRunner().invoke(main, ["list", "--limit", "0"])
    assert result.exit_code != 0
    assert "--limit" in result.output
