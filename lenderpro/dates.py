"""Period-aware date arithmetic for installment schedules.

Plain ``YYYY-MM-DD`` dates are pinned to local noon before any arithmetic,
so a daylight-saving transition or a UTC/local boundary can never move a
due date to the neighbouring day when it is formatted back to text.
"""
import logging
from datetime import date, datetime, timedelta

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from lenderpro.config import (
    DATE_FORMAT_STORAGE,
    DAYS_PER_PERIOD,
    MAX_PERIOD_ITERATIONS,
    NOON_HOUR,
)
from lenderpro.data_structures import Frequency

logger = logging.getLogger(__name__)


def parse_date(text):
    """Parse a plain date or a full timestamp.

    Args:
        text: ``YYYY-MM-DD`` or an ISO 8601 timestamp. ``date`` and
            ``datetime`` objects are accepted as well.

    Returns:
        A naive local ``datetime``. Plain dates land at local noon.

    Raises:
        ValueError: If the text is not a recognizable date.
    """
    if isinstance(text, datetime):
        return _to_local_naive(text)
    if isinstance(text, date):
        return datetime(text.year, text.month, text.day, NOON_HOUR)

    text = str(text).strip()
    if "T" in text:
        return _to_local_naive(isoparse(text))

    parsed = datetime.strptime(text, DATE_FORMAT_STORAGE)
    return parsed.replace(hour=NOON_HOUR)


def _to_local_naive(value):
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


def _at_noon(value):
    return parse_date(value).replace(hour=NOON_HOUR, minute=0, second=0, microsecond=0)


def advance(start, frequency, count):
    """Return ``start`` moved forward by ``count`` periods of ``frequency``.

    Daily, weekly and biweekly periods are 1, 7 and 15 days. Monthly periods
    are calendar months; a day of month missing from the target month rolls
    over into the next one, so Jan 31 + 1 month is Mar 2 in a leap year.
    """
    frequency = Frequency(frequency)
    base = _at_noon(start)

    if frequency == Frequency.MONTHLY:
        first_of_month = base + relativedelta(months=count, day=1)
        return first_of_month + timedelta(days=base.day - 1)
    return base + timedelta(days=DAYS_PER_PERIOD[frequency.value] * count)


def count_periods_between(start, end, frequency):
    """Count the whole periods of ``frequency`` that fit between two dates.

    Steps forward with :func:`advance` so monthly and biweekly conventions
    match the schedule exactly. A non-positive range returns 1, and the count
    never exceeds ``MAX_PERIOD_ITERATIONS``.
    """
    start_dt = parse_date(start)
    end_dt = parse_date(end)

    if end_dt <= start_dt:
        return 1

    count = 0
    while count < MAX_PERIOD_ITERATIONS:
        candidate = advance(start_dt, frequency, count + 1)
        if candidate > end_dt:
            break
        count += 1

    if count == MAX_PERIOD_ITERATIONS:
        logger.warning("Period count between %s and %s capped at %d",
                       to_date_string(start_dt), to_date_string(end_dt), count)

    return count if count > 0 else 1


def to_date_string(value):
    """Render the local calendar fields as ``YYYY-MM-DD``."""
    if isinstance(value, str):
        value = parse_date(value)
    return value.strftime(DATE_FORMAT_STORAGE)


def end_date_for(start, frequency, duration):
    """Preview the due date of the last installment before generating."""
    return to_date_string(advance(start, frequency, duration))
