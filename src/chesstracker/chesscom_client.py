"""Chess.com API client — monthly archive listing, archive games, player stats."""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx

from .config import CHESSCOM_API_BASE, USER_AGENT
from .errors import ArchiveListError, StatsFetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class ArchiveStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass
class ArchiveRef:
    """One monthly archive; only the newest archive in a listing is active."""

    id: str
    status: ArchiveStatus = ArchiveStatus.INACTIVE
    last_fetched_at: datetime | None = None

    @property
    def year_month(self) -> str:
        return archive_year_month(self.id)


def archive_year_month(archive_url: str) -> str:
    """``.../games/2024/01`` -> ``"2024-01"``; empty when the URL has no such suffix."""
    parts = archive_url.rstrip("/").split("/")
    if len(parts) < 2:
        return ""
    year, month = parts[-2], parts[-1]
    if len(year) == 4 and year.isdigit() and month.isdigit() and 1 <= int(month) <= 12:
        return f"{year}-{int(month):02d}"
    return ""


def archive_refs(archive_ids: list[str]) -> list[ArchiveRef]:
    """Build refs for a listing (oldest to newest); the last one is active."""
    refs = [ArchiveRef(id=archive_id) for archive_id in archive_ids]
    if refs:
        refs[-1].status = ArchiveStatus.ACTIVE
    return refs


def _get(url: str, timeout: float, user_agent: str) -> httpx.Response:
    return httpx.get(url, headers={"User-Agent": user_agent}, timeout=timeout)


def list_archives(
    username: str,
    *,
    api_base: str = CHESSCOM_API_BASE,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = USER_AGENT,
) -> list[str]:
    """Get the monthly archive URLs for a Chess.com user, oldest first.

    Raises ArchiveListError on transport failure or a non-200 response.
    """
    url = f"{api_base}/player/{username}/games/archives"
    try:
        response = _get(url, timeout, user_agent)
    except httpx.HTTPError as exc:
        raise ArchiveListError(f"Could not list archives for {username}: {exc}", cause=exc) from exc

    if response.status_code != 200:
        raise ArchiveListError(
            f"Archive listing for {username} returned HTTP {response.status_code}",
            status_code=response.status_code,
        )
    try:
        body = response.json()
    except ValueError as exc:
        raise ArchiveListError(
            f"Archive listing for {username} is not valid JSON",
            status_code=response.status_code,
            cause=exc,
        ) from exc

    archives = body.get("archives") if isinstance(body, dict) else None
    if not isinstance(archives, list):
        return []
    return [a for a in archives if isinstance(a, str)]


def fetch_games_for_archive(
    archive_url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = USER_AGENT,
) -> list[dict]:
    """Fetch the raw game objects of one monthly archive.

    A failed archive is logged and yields an empty list so that one bad month
    does not abort the whole ingestion run.
    """
    try:
        response = _get(archive_url, timeout, user_agent)
    except httpx.HTTPError as exc:
        logger.warning("Fetching archive %s failed: %s", archive_url, exc)
        return []

    if response.status_code != 200:
        logger.warning("Fetching archive %s returned HTTP %s", archive_url, response.status_code)
        return []
    try:
        body = response.json()
    except ValueError:
        logger.warning("Archive %s returned a body that is not JSON", archive_url)
        return []

    games = body.get("games") if isinstance(body, dict) else None
    if not isinstance(games, list):
        return []
    return [g for g in games if isinstance(g, dict)]


def fetch_stats(
    username: str,
    *,
    api_base: str = CHESSCOM_API_BASE,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = USER_AGENT,
) -> dict:
    """Fetch the nested rating/record statistics of a Chess.com user."""
    url = f"{api_base}/player/{username}/stats"
    try:
        response = _get(url, timeout, user_agent)
    except httpx.HTTPError as exc:
        raise StatsFetchError(f"Could not fetch stats for {username}: {exc}", cause=exc) from exc

    if response.status_code != 200:
        raise StatsFetchError(
            f"Stats for {username} returned HTTP {response.status_code}",
            status_code=response.status_code,
        )
    try:
        body = response.json()
    except ValueError as exc:
        raise StatsFetchError(
            f"Stats for {username} are not valid JSON", status_code=response.status_code, cause=exc
        ) from exc
    return body if isinstance(body, dict) else {}


def flatten_json(obj: Any, prefix: str = "") -> dict[str, Any]:
    """Flatten nested dicts/lists into ``{"a.b.0.c": scalar}``.

    List indices become path segments; empty containers contribute nothing.
    """
    flat: dict[str, Any] = {}
    if isinstance(obj, dict):
        items = ((str(k), v) for k, v in obj.items())
    elif isinstance(obj, list):
        items = ((str(i), v) for i, v in enumerate(obj))
    else:
        flat[prefix] = obj
        return flat

    for key, value in items:
        path = f"{prefix}.{key}" if prefix else key
        flat.update(flatten_json(value, path))
    return flat
