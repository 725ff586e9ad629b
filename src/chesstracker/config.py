"""Runtime settings, resolved once and passed explicitly to each component."""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigError

CHESSCOM_API_BASE = "https://api.chess.com/pub"
USER_AGENT = "chesstracker/0.1.0 (https://github.com/chesstracker)"
DEFAULT_DB_PATH = Path.home() / ".chesstracker" / "games.duckdb"

# Same-day rating-log rows with no rating change are only written once this
# many hours have passed since the previous pull.
MIN_HOURS_BETWEEN_UNCHANGED_ROWS = 6.0


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {raw!r}")
    return value


def _env_timezone(name: str) -> ZoneInfo:
    raw = os.environ.get(name, "").strip() or "UTC"
    try:
        return ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"{name} is not a known timezone: {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    username: str = ""
    db_path: Path = DEFAULT_DB_PATH
    api_base: str = CHESSCOM_API_BASE
    user_agent: str = USER_AGENT
    request_timeout: float = 30.0
    request_delay: float = 0.5
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo("UTC"))
    unchanged_rating_hours: float = MIN_HOURS_BETWEEN_UNCHANGED_ROWS

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (call load_dotenv first)."""
        db = os.environ.get("CHESSTRACKER_DB", "").strip()
        return cls(
            username=os.environ.get("CHESSCOM_USERNAME", "").strip(),
            db_path=Path(db).expanduser() if db else DEFAULT_DB_PATH,
            request_timeout=_env_float("CHESSTRACKER_TIMEOUT", 30.0),
            request_delay=_env_float("CHESSTRACKER_REQUEST_DELAY", 0.5),
            timezone=_env_timezone("CHESSTRACKER_TZ"),
        )

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with the non-None keyword values applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def require_username(self) -> str:
        if not self.username:
            raise ConfigError("CHESSCOM_USERNAME not set in .env (or pass --username)")
        return self.username
