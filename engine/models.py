"""
Data models for the calculation engine.

Reservations, transactions and import files are read-only inputs coming
from the data-access layer. Cost settings arrive in one of two shapes per
cost family (itemized categories or the legacy named buckets); the shape
is resolved once here, when the settings row is loaded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import pandas as pd

from .settings import DEFAULT_PERIOD_DAYS

EXCLUDED_STATUSES = frozenset({"cancelled", "no show"})

# Accepted spellings for raw record fields (lowercase name to standard name)
RESERVATION_FIELD_ALIASES = {
    "reservationnumber": "reservation_number",
    "reservation_id": "reservation_number",
    "guestname": "guest_name",
    "guest": "guest_name",
    "checkin": "check_in",
    "check_in_date": "check_in",
    "checkout": "check_out",
    "check_out_date": "check_out",
    "roomnights": "room_nights",
    "nights": "room_nights",
    "roomrevenuetotal": "room_revenue_total",
    "room_revenue": "room_revenue_total",
    "roomrevenue": "room_revenue_total",
    "taxestotal": "taxes_total",
    "paidamount": "paid_amount",
    "balancedue": "balance_due",
    "channel": "source",
    "sourcecategory": "source_category",
    "reservationdate": "reservation_date",
    "booking_date": "reservation_date",
    "bookingdate": "reservation_date",
}

TRANSACTION_FIELD_ALIASES = {
    "transaction_date": "timestamp",
    "date": "timestamp",
    "voidflag": "void_flag",
    "refundflag": "refund_flag",
    "adjustmentflag": "adjustment_flag",
    "source": "channel",
}


def _normalize_keys(record: Mapping[str, Any], aliases: Mapping[str, str]) -> Dict[str, Any]:
    result = {}
    for key, value in record.items():
        name = str(key).strip()
        lowered = name.lower()
        result[aliases.get(lowered, lowered)] = value
    return result


def to_date(value: Any) -> Optional[date]:
    """Coerce strings, timestamps and datetimes to a calendar date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def to_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, datetime.min.time())
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return None
    # Ledger timestamps are compared as naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert("UTC").tz_localize(None)
    return parsed.to_pydatetime()


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        if pd.isna(value):
            return default
    except (TypeError, ValueError):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "y", "t")
    if value is None:
        return False
    try:
        if pd.isna(value):
            return False
    except (TypeError, ValueError):
        pass
    return bool(value)


def _to_text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    try:
        if pd.isna(value):
            return default
    except (TypeError, ValueError):
        pass
    return str(value).strip()


@dataclass(frozen=True)
class Period:
    """Reporting window. Nights are counted on the half-open range [start, end)."""
    start: date
    end: date
    days: int

    @classmethod
    def from_dates(cls, start: Any, end: Any) -> "Period":
        start_date = to_date(start)
        end_date = to_date(end)
        if start_date is None or end_date is None:
            raise ValueError(f"Invalid period bounds: {start!r} - {end!r}")
        return cls(start_date, end_date, max(1, (end_date - start_date).days))

    @classmethod
    def last_days(cls, days: int = DEFAULT_PERIOD_DAYS, end: Optional[date] = None) -> "Period":
        end_date = end or date.today()
        return cls(end_date - timedelta(days=days), end_date, max(1, days))

    def previous(self) -> "Period":
        """The window of equal length ending where this one starts."""
        return Period(self.start - timedelta(days=self.days), self.start, self.days)

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat(), "days": self.days}


@dataclass(frozen=True)
class Reservation:
    """A reservation row as imported from the property-management system."""
    reservation_number: str
    check_in: date
    check_out: date
    guest_name: str = ""
    status: str = ""
    room_nights: float = 0.0
    room_revenue_total: float = 0.0
    taxes_total: float = 0.0
    paid_amount: float = 0.0
    balance_due: float = 0.0
    source: str = ""
    source_category: str = ""
    deleted: bool = False
    # Booking date; None when the export does not carry it
    reservation_date: Optional[date] = None

    @property
    def is_active(self) -> bool:
        """Cancelled and no-show reservations never carry revenue."""
        return not self.deleted and self.status.strip().lower() not in EXCLUDED_STATUSES

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Reservation":
        row = _normalize_keys(record, RESERVATION_FIELD_ALIASES)
        check_in = to_date(row.get("check_in"))
        check_out = to_date(row.get("check_out"))
        if check_in is None or check_out is None:
            raise ValueError(
                f"Reservation {row.get('reservation_number')!r} has invalid stay dates"
            )
        return cls(
            reservation_number=_to_text(row.get("reservation_number")),
            check_in=check_in,
            check_out=check_out,
            guest_name=_to_text(row.get("guest_name")),
            status=_to_text(row.get("status")),
            room_nights=to_float(row.get("room_nights")),
            room_revenue_total=to_float(row.get("room_revenue_total")),
            taxes_total=to_float(row.get("taxes_total")),
            paid_amount=to_float(row.get("paid_amount")),
            balance_due=to_float(row.get("balance_due")),
            source=_to_text(row.get("source")),
            source_category=_to_text(row.get("source_category")),
            deleted=to_bool(row.get("deleted")),
            reservation_date=to_date(row.get("reservation_date")),
        )


@dataclass(frozen=True)
class ProratedReservation:
    """A reservation scaled to the part of its stay inside one window."""
    reservation: Reservation
    nights_in_period: int
    ratio: float
    room_nights: float
    room_revenue_total: float
    taxes_total: float

    @property
    def reservation_number(self) -> str:
        return self.reservation.reservation_number

    @property
    def guest_name(self) -> str:
        return self.reservation.guest_name

    @property
    def check_in(self) -> date:
        return self.reservation.check_in

    @property
    def check_out(self) -> date:
        return self.reservation.check_out

    @property
    def source(self) -> str:
        return self.reservation.source

    @property
    def source_category(self) -> str:
        return self.reservation.source_category

    @property
    def balance_due(self) -> float:
        return self.reservation.balance_due

    @property
    def paid_amount(self) -> float:
        return self.reservation.paid_amount

    @property
    def original_room_nights(self) -> float:
        return self.reservation.room_nights

    @property
    def original_revenue(self) -> float:
        return self.reservation.room_revenue_total

    @property
    def original_taxes(self) -> float:
        return self.reservation.taxes_total


@dataclass(frozen=True)
class Transaction:
    """A ledger line from the expanded transaction report."""
    timestamp: datetime
    credits: float = 0.0
    debits: float = 0.0
    void_flag: bool = False
    refund_flag: bool = False
    adjustment_flag: bool = False
    channel: str = ""
    description: str = ""

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Transaction":
        row = _normalize_keys(record, TRANSACTION_FIELD_ALIASES)
        timestamp = to_datetime(row.get("timestamp"))
        if timestamp is None:
            raise ValueError(f"Transaction has invalid timestamp: {row.get('timestamp')!r}")
        return cls(
            timestamp=timestamp,
            credits=to_float(row.get("credits")),
            debits=to_float(row.get("debits")),
            void_flag=to_bool(row.get("void_flag")),
            refund_flag=to_bool(row.get("refund_flag")),
            adjustment_flag=to_bool(row.get("adjustment_flag")),
            channel=_to_text(row.get("channel")),
            description=_to_text(row.get("description")),
        )


@dataclass(frozen=True)
class ImportFile:
    report_type: str
    status: str = "processed"
    uploaded_at: Optional[datetime] = None
    filename: str = ""

    @property
    def is_processed(self) -> bool:
        return self.status.lower() == "processed"

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ImportFile":
        row = _normalize_keys(record, {"reporttype": "report_type", "uploadedat": "uploaded_at"})
        return cls(
            report_type=_to_text(row.get("report_type")),
            status=_to_text(row.get("status"), "processed"),
            uploaded_at=to_datetime(row.get("uploaded_at")),
            filename=_to_text(row.get("filename")),
        )


@dataclass(frozen=True)
class DataDateRange:
    """Earliest check-in / latest check-out, and first / last transaction dates."""
    reservations_min: Optional[date] = None
    reservations_max: Optional[date] = None
    transactions_min: Optional[date] = None
    transactions_max: Optional[date] = None

    @property
    def latest(self) -> Optional[date]:
        # Transactions are the ground truth of recent activity
        return self.transactions_max or self.reservations_max

    @property
    def earliest(self) -> Optional[date]:
        candidates = [d for d in (self.reservations_min, self.transactions_min) if d is not None]
        return min(candidates) if candidates else None


# ----------------------------------------------------------------------
# Cost configuration
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class CostCategory:
    name: str
    monthly_amount: float


@dataclass(frozen=True)
class ItemizedCosts:
    categories: Tuple[CostCategory, ...]

    @property
    def monthly_total(self) -> float:
        return sum(c.monthly_amount for c in self.categories)


@dataclass(frozen=True)
class LegacyFixedCosts:
    salaries: float = 0.0
    rent: float = 0.0
    utilities: float = 0.0
    other: float = 0.0

    @property
    def monthly_total(self) -> float:
        return self.salaries + self.rent + self.utilities + self.other


@dataclass(frozen=True)
class LegacyVariableCosts:
    cleaning_per_stay: float = 0.0
    laundry_monthly: float = 0.0
    amenities_monthly: float = 0.0

    @property
    def monthly_total(self) -> float:
        return self.laundry_monthly + self.amenities_monthly


FixedCosts = Union[ItemizedCosts, LegacyFixedCosts]
VariableCosts = Union[ItemizedCosts, LegacyVariableCosts]


@dataclass(frozen=True)
class ChannelCommissions:
    default_rate: float = 0.0
    by_channel: Mapping[str, float] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Optional[Mapping[str, Any]]) -> "ChannelCommissions":
        record = record or {}
        overrides = record.get("byChannel", record.get("by_channel")) or {}
        return cls(
            default_rate=to_float(record.get("defaultRate", record.get("default_rate"))),
            by_channel={str(k).strip().lower(): to_float(v) for k, v in overrides.items()},
        )


def _categories(raw: Any) -> Tuple[CostCategory, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    return tuple(
        CostCategory(
            name=_to_text(item.get("name")),
            monthly_amount=to_float(item.get("monthlyAmount", item.get("monthly_amount"))),
        )
        for item in raw
        if isinstance(item, Mapping)
    )


def resolve_fixed_costs(record: Mapping[str, Any]) -> FixedCosts:
    categories = _categories(record.get("fixed_categories"))
    if categories:
        return ItemizedCosts(categories)
    legacy = record.get("fixed_costs") or {}
    return LegacyFixedCosts(
        salaries=to_float(legacy.get("salaries")),
        rent=to_float(legacy.get("rent")),
        utilities=to_float(legacy.get("utilities")),
        other=to_float(legacy.get("other")),
    )


def resolve_variable_costs(record: Mapping[str, Any]) -> VariableCosts:
    categories = _categories(record.get("variable_categories"))
    if categories:
        return ItemizedCosts(categories)
    legacy = record.get("variable_costs") or {}
    return LegacyVariableCosts(
        cleaning_per_stay=to_float(legacy.get("cleaningPerStay", legacy.get("cleaning_per_stay"))),
        laundry_monthly=to_float(legacy.get("laundryMonthly", legacy.get("laundry_monthly"))),
        amenities_monthly=to_float(legacy.get("amenitiesMonthly", legacy.get("amenities_monthly"))),
    )


@dataclass(frozen=True)
class CostSettings:
    """Per-property cost configuration with both cost families resolved."""
    room_count: int = 0
    starting_cash_balance: float = 0.0
    fixed_costs: FixedCosts = field(default_factory=LegacyFixedCosts)
    variable_costs: VariableCosts = field(default_factory=LegacyVariableCosts)
    channel_commissions: ChannelCommissions = field(default_factory=ChannelCommissions)

    @property
    def fixed_monthly(self) -> float:
        return self.fixed_costs.monthly_total

    @property
    def effective_room_count(self) -> int:
        return max(1, self.room_count)

    @property
    def has_commission_overrides(self) -> bool:
        return bool(self.channel_commissions.by_channel)

    @classmethod
    def empty(cls) -> "CostSettings":
        return cls()

    @classmethod
    def from_record(cls, record: Optional[Mapping[str, Any]]) -> "CostSettings":
        if not record:
            return cls.empty()
        return cls(
            room_count=int(to_float(record.get("room_count"))),
            starting_cash_balance=to_float(record.get("starting_cash_balance")),
            fixed_costs=resolve_fixed_costs(record),
            variable_costs=resolve_variable_costs(record),
            channel_commissions=ChannelCommissions.from_record(record.get("channel_commissions")),
        )


@dataclass(frozen=True)
class ReservationEconomics:
    reservation_number: str
    guest_name: str
    check_in: date
    source: str
    source_category: str
    room_nights: float
    revenue: float
    commission_rate: float
    commission: float
    variable_costs: float
    fixed_allocated: float
    total_costs: float
    net_profit: float
    profit_per_night: float
    margin_percent: float
    is_unprofitable: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reservation_number": self.reservation_number,
            "guest_name": self.guest_name,
            "check_in": self.check_in.isoformat(),
            "source": self.source,
            "source_category": self.source_category,
            "room_nights": self.room_nights,
            "revenue": self.revenue,
            "commission_rate": self.commission_rate,
            "commission": self.commission,
            "variable_costs": self.variable_costs,
            "fixed_allocated": self.fixed_allocated,
            "total_costs": self.total_costs,
            "net_profit": self.net_profit,
            "profit_per_night": self.profit_per_night,
            "margin_percent": self.margin_percent,
            "is_unprofitable": self.is_unprofitable,
        }
