"""Tests for chesstracker.pipeline module."""

from datetime import date, datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from chesstracker.config import Settings
from chesstracker.errors import ArchiveListError, ConfigError
from chesstracker.pipeline import daily_series, ingest, pull_stats, snapshot

from conftest import ARCHIVE_BASE, make_game

JAN = f"{ARCHIVE_BASE}/2024/01"
FEB = f"{ARCHIVE_BASE}/2024/02"

GAME_A = make_game("https://www.chess.com/game/live/A", white_result="win", black_result="resigned", end_time=1705363410)
GAME_B = make_game("https://www.chess.com/game/live/B", white_result="resigned", black_result="win", end_time=1705364010)


def _response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    return response


def _fake_api(archives, games_by_archive, failing=()):
    calls = []

    def mock_get(url, **kwargs):
        calls.append(url)
        if url.endswith("/games/archives"):
            return _response(body={"archives": archives})
        if url in failing:
            return _response(status_code=500)
        return _response(body={"games": games_by_archive.get(url, [])})

    return mock_get, calls


@pytest.fixture
def settings():
    return Settings(username="alice", request_delay=0.25)


def _no_sleep(seconds):
    pass


def test_end_to_end_ingest_and_rerun(settings, store):
    mock_get, _ = _fake_api([JAN], {JAN: [GAME_A, GAME_B]})
    with patch("chesstracker.chesscom_client.httpx.get", side_effect=mock_get):
        report = ingest(settings, store, sleep=_no_sleep)
        rerun = ingest(settings, store, sleep=_no_sleep)

    rows = store.read_all_rows()
    assert [(r.url[-1], r.result) for r in rows] == [("B", "Loss"), ("A", "Win")]
    assert report.inserted == 2
    assert rerun.inserted == 0
    assert rerun.skipped == 2
    assert store.count_rows() == 2


def test_ingest_sleeps_between_archives_only(settings, store):
    mock_get, _ = _fake_api([JAN, FEB], {JAN: [GAME_A], FEB: [GAME_B]})
    sleeps = []
    with patch("chesstracker.chesscom_client.httpx.get", side_effect=mock_get):
        ingest(settings, store, sleep=sleeps.append)
    assert sleeps == [0.25]


def test_ingest_incremental_refreshes_only_active_month(settings, store):
    mock_get, calls = _fake_api([JAN, FEB], {JAN: [GAME_A], FEB: [GAME_B]})
    with patch("chesstracker.chesscom_client.httpx.get", side_effect=mock_get):
        ingest(settings, store, sleep=_no_sleep)
        calls.clear()
        report = ingest(settings, store, sleep=_no_sleep)
    assert calls[1:] == [FEB]
    assert report.archives_fetched == 1


def test_ingest_full_rereads_every_archive(settings, store):
    mock_get, calls = _fake_api([JAN, FEB], {JAN: [GAME_A], FEB: [GAME_B]})
    with patch("chesstracker.chesscom_client.httpx.get", side_effect=mock_get):
        ingest(settings, store, sleep=_no_sleep)
        calls.clear()
        ingest(settings, store, full=True, sleep=_no_sleep)
    assert calls[1:] == [JAN, FEB]


def test_ingest_failed_archive_does_not_abort_and_is_retried(settings, store):
    mock_get, calls = _fake_api([JAN, FEB], {JAN: [GAME_A], FEB: [GAME_B]}, failing={JAN})
    with patch("chesstracker.chesscom_client.httpx.get", side_effect=mock_get):
        report = ingest(settings, store, sleep=_no_sleep)
    assert report.inserted == 1
    assert [r.url[-1] for r in store.read_all_rows()] == ["B"]

    mock_get, calls = _fake_api([JAN, FEB], {JAN: [GAME_A], FEB: [GAME_B]})
    with patch("chesstracker.chesscom_client.httpx.get", side_effect=mock_get):
        report = ingest(settings, store, sleep=_no_sleep)
    assert calls[1:] == [JAN, FEB]
    assert report.inserted == 1


def test_ingest_listing_failure_is_fatal_before_writes(settings, store):
    with patch("chesstracker.chesscom_client.httpx.get", return_value=_response(status_code=404)):
        with pytest.raises(ArchiveListError):
            ingest(settings, store, sleep=_no_sleep)
    assert store.count_rows() == 0
    assert store.list_archive_refs() == []


def test_ingest_requires_username(store):
    with pytest.raises(ConfigError):
        ingest(Settings(username=""), store, sleep=_no_sleep)


def test_snapshot_and_daily_series_from_store(settings, store):
    mock_get, _ = _fake_api([JAN], {JAN: [GAME_A, GAME_B]})
    with patch("chesstracker.chesscom_client.httpx.get", side_effect=mock_get):
        ingest(settings, store, sleep=_no_sleep)

    totals = snapshot(settings, store, date(2024, 1, 31))
    assert (totals["blitz"].wins, totals["blitz"].losses, totals["blitz"].games) == (1, 1, 2)

    series = daily_series(settings, store, today=date(2024, 1, 17))
    assert [s.day for s in series] == [date(2024, 1, 16), date(2024, 1, 17)]
    assert series[0].categories["blitz"].score == "1/2"


def test_pull_stats_records_changes(settings, store):
    stats = {"chess_blitz": {"last": {"rating": 1500}}, "chess_rapid": {"last": {"rating": 1600}}}
    first = datetime(2024, 1, 1, 8, tzinfo=timezone.utc)
    with patch("chesstracker.chesscom_client.httpx.get", return_value=_response(body=stats)):
        changes = pull_stats(settings, store, now=first)
        repeat = pull_stats(settings, store, now=first.replace(hour=9))
    assert [c.category for c in changes] == ["blitz", "rapid"]
    assert repeat == []

    stats["chess_blitz"]["last"]["rating"] = 1512
    with patch("chesstracker.chesscom_client.httpx.get", return_value=_response(body=stats)):
        moved = pull_stats(settings, store, now=first.replace(hour=10))
    assert [(c.category, c.change) for c in moved] == [("blitz", 12)]


def test_ingest_rereads_previous_month_after_rollover(settings, store):
    late_jan = make_game("https://www.chess.com/game/live/B-late-jan", end_time=1706600000)
    feb_game = make_game("https://www.chess.com/game/live/C-feb", end_time=1707000000)

    mock_get, _ = _fake_api([JAN], {JAN: [GAME_A]})
    with patch("chesstracker.chesscom_client.httpx.get", side_effect=mock_get):
        ingest(settings, store, sleep=_no_sleep)

    mock_get, calls = _fake_api([JAN, FEB], {JAN: [GAME_A, late_jan], FEB: [feb_game]})
    with patch("chesstracker.chesscom_client.httpx.get", side_effect=mock_get):
        report = ingest(settings, store, sleep=_no_sleep)

    assert calls[1:] == [JAN, FEB]
    assert report.inserted == 2
    urls = [r.url.rsplit("/", 1)[-1] for r in store.read_all_rows()]
    assert "B-late-jan" in urls

    mock_get, calls = _fake_api([JAN, FEB], {JAN: [GAME_A, late_jan], FEB: [feb_game]})
    with patch("chesstracker.chesscom_client.httpx.get", side_effect=mock_get):
        ingest(settings, store, sleep=_no_sleep)
    assert calls[1:] == [FEB]
