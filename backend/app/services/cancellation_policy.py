"""
Cancellation fee policy.

The fee is a step function of the time left before the appointment:

    <= 2 hours   -> $40.00
    <= 8 hours   -> $20.00
    <= 24 hours  -> $10.00
    otherwise    -> free

All amounts are integer cents. Bracket edges are inclusive, so an appointment
exactly two hours away still costs the two-hour fee.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

LATE_WINDOW = timedelta(hours=2)
SHORT_NOTICE_WINDOW = timedelta(hours=8)
SAME_DAY_WINDOW = timedelta(hours=24)

LATE_FEE_CENTS = 4000
SHORT_NOTICE_FEE_CENTS = 2000
SAME_DAY_FEE_CENTS = 1000
NO_FEE_CENTS = 0

# Ordered tightest window first
FEE_BRACKETS = (
    (LATE_WINDOW, LATE_FEE_CENTS),
    (SHORT_NOTICE_WINDOW, SHORT_NOTICE_FEE_CENTS),
    (SAME_DAY_WINDOW, SAME_DAY_FEE_CENTS),
)

# A date-only booking is treated as a midday appointment
DATE_ONLY_APPOINTMENT_TIME = time(12, 0)


def cancellation_fee(scheduled_at: Optional[datetime], now: datetime) -> int:
    """Fee in cents for cancelling an appointment at ``scheduled_at`` when it is ``now``."""
    if scheduled_at is None:
        return NO_FEE_CENTS

    remaining = scheduled_at - now
    for window, fee_cents in FEE_BRACKETS:
        if remaining <= window:
            return fee_cents
    return NO_FEE_CENTS


def refund_amount(total_price_cents: Optional[int], fee_cents: int) -> int:
    """What the client gets back: total minus fee, never negative."""
    return max(0, (total_price_cents or 0) - fee_cents)


def resolve_scheduled_at(
    preferred_time: Optional[datetime],
    preferred_date: Optional[date],
) -> Optional[datetime]:
    """The instant a booking is scheduled for, preferring the exact time over the date."""
    if preferred_time is not None:
        return preferred_time
    if preferred_date is not None:
        return datetime.combine(preferred_date, DATE_ONLY_APPOINTMENT_TIME)
    return None


def describe_time_until(scheduled_at: Optional[datetime], now: datetime) -> Optional[str]:
    """Human label for how far away the appointment is."""
    if scheduled_at is None:
        return None

    hours = (scheduled_at - now).total_seconds() / 3600
    if hours < 0:
        return "past your appointment time"
    if hours < 1:
        return _plural(round(hours * 60), "minute") + " from your appointment"
    if hours < 24:
        return _plural(round(hours), "hour") + " from your appointment"
    return _plural(round(hours / 24), "day") + " from your appointment"


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"
