"""Conversions between request instants and stored epoch seconds."""

from datetime import datetime, time, timedelta, timezone
from typing import Callable

from timetravel.core.exceptions import InvalidInputError

Clock = Callable[[], datetime]

# Signed 64-bit range of stored integer columns
MIN_STORED_INTEGER = -(2**63)
MAX_STORED_INTEGER = 2**63 - 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch_seconds(moment: datetime) -> int:
    """Truncate a datetime to whole epoch seconds. Naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


def parse_timestamp(value: str) -> int:
    """Parse an integer epoch-seconds string.

    Raises:
        InvalidInputError: If the value is not an integer or cannot be stored
    """
    try:
        timestamp = int(str(value).strip())
    except ValueError as e:
        raise InvalidInputError(
            "Please submit date in timestamp (integer) format", original_error=e
        ) from e
    if not MIN_STORED_INTEGER <= timestamp <= MAX_STORED_INTEGER:
        raise InvalidInputError(f"Timestamp out of range: {timestamp}")
    return timestamp


def parse_day_end(value: str) -> int:
    """Parse ``YYYY-MM-DD`` into the last second of that UTC day.

    A read "as of a date" sees every version written during that day.

    Raises:
        InvalidInputError: If the value is not a date
    """
    try:
        day = datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError as e:
        raise InvalidInputError(
            "Please submit date in format: YYYY-MM-DD. Or submit timestamp", original_error=e
        ) from e
    try:
        next_midnight = datetime.combine(day, time.min, tzinfo=timezone.utc) + timedelta(days=1)
    except OverflowError as e:
        raise InvalidInputError(f"Date out of range: {value}", original_error=e) from e
    return to_epoch_seconds(next_midnight) - 1
