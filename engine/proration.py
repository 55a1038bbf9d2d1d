"""
Reservation proration.

Every caller that needs "the part of a stay inside a window" goes through
prorate(): the engine period, the comparison windows, pacing buckets and
the pricing simulator all share it.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Iterable, List, Union

from .models import Period, ProratedReservation, Reservation

DateLike = Union[date, datetime]


def nights_between(start: DateLike, end: DateLike) -> int:
    """Whole nights from start to end, rounding partial days up."""
    if isinstance(start, datetime) or isinstance(end, datetime):
        start_dt = start if isinstance(start, datetime) else datetime.combine(start, datetime.min.time())
        end_dt = end if isinstance(end, datetime) else datetime.combine(end, datetime.min.time())
        return math.ceil((end_dt - start_dt).total_seconds() / 86400)
    return (end - start).days


def prorate(reservation: Reservation, period: Period) -> ProratedReservation:
    actual_start = max(reservation.check_in, period.start)
    actual_end = min(reservation.check_out, period.end)

    nights_in_period = max(0, nights_between(actual_start, actual_end))
    # Same-day stays count as one night so the ratio never divides by zero
    total_nights = max(1, nights_between(reservation.check_in, reservation.check_out))
    ratio = nights_in_period / total_nights

    return ProratedReservation(
        reservation=reservation,
        nights_in_period=nights_in_period,
        ratio=ratio,
        room_nights=reservation.room_nights * ratio,
        room_revenue_total=reservation.room_revenue_total * ratio,
        taxes_total=reservation.taxes_total * ratio,
    )


def overlaps(reservation: Reservation, period: Period) -> bool:
    return reservation.check_in < period.end and reservation.check_out > period.start


def active_in_period(reservations: Iterable[Reservation], period: Period) -> List[Reservation]:
    """Active (not cancelled, not no-show) reservations with at least one night in the window."""
    return [r for r in reservations if r.is_active and overlaps(r, period)]


def prorate_all(reservations: Iterable[Reservation], period: Period) -> List[ProratedReservation]:
    return [prorate(r, period) for r in active_in_period(reservations, period)]
