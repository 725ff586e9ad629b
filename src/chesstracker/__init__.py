"""chesstracker - Chess.com game history ingestion and daily statistics."""

__version__ = "0.1.0"
