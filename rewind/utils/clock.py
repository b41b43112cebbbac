"""Horloge UTC / UTC clock helpers."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """UTC naive, comparable aux colonnes DateTime / Naive UTC, comparable to DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
