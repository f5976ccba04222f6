"""Build start time, persisted between builds as epoch milliseconds."""

from datetime import datetime, timezone
from pathlib import Path

from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)

BUILD_START_FILE = "build_start_timestamp.txt"


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_epoch_ms(value: datetime) -> int:
    return int(as_utc(value).timestamp() * 1000)


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def read_last_build_time(path: Path) -> datetime | None:
    """Start time of the previous build, or None when there was none.

    Args:
        path: Timestamp file

    Returns:
        Aware UTC datetime, or None if the file is missing or unreadable
    """
    if not path.exists():
        return None
    try:
        return from_epoch_ms(int(path.read_text(encoding="utf-8").strip()))
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable build timestamp {path}: {e}")
        return None


def record_build_start(path: Path, now: datetime | None = None) -> datetime:
    """Persist the start of the current build and return it."""
    started = as_utc(now or datetime.now(timezone.utc))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(str(to_epoch_ms(started)), encoding="utf-8")
    return started
