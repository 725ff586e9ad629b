"""Exception types raised by chesstracker."""


class ChessTrackerError(Exception):
    """Base class for errors the CLI reports to the user."""


class ConfigError(ChessTrackerError):
    """Required configuration is missing or malformed."""


class ArchiveListError(ChessTrackerError):
    """The monthly archive listing could not be retrieved."""

    def __init__(self, message: str, status_code: int | None = None, cause: Exception | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause


class StatsFetchError(ChessTrackerError):
    """The player stats endpoint could not be retrieved."""

    def __init__(self, message: str, status_code: int | None = None, cause: Exception | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause
