"""
Calculation Engine
==================

Single source of truth for financial metrics. A request builds one
immutable EngineState with initialize(); every metric accessor reads from
that state, so two views built from the same state can never disagree.

Lifecycle of initialize():
    1. fetch cost settings, import files and all reservations concurrently
    2. keep active reservations overlapping the requested period
    3. if none overlap but the property has data, fall back to the most
       recent window of the same length
    4. fetch transactions for the effective period
    5. prorate the active reservations to the effective period
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .commissions import (
    CommissionTable,
    DEFAULT_COMMISSION_TABLE,
    categorize_channel,
    normalize_channel,
    resolve_commission_rate,
)
from .costs import allocate_fixed_costs, fixed_per_day, variable_cost_per_night
from .models import (
    CostSettings,
    DataDateRange,
    ImportFile,
    Period,
    ProratedReservation,
    Reservation,
    ReservationEconomics,
    Transaction,
)
from .profitability import (
    BreakEven,
    PeriodProfitability,
    break_even,
    economics_for_all,
    period_profitability,
)
from .proration import active_in_period, prorate
from .settings import FETCH_WORKERS, RUNWAY_SAFE_DAYS, STALE_IMPORT_DAYS

if TYPE_CHECKING:
    from connectors.base import DataAccess

logger = logging.getLogger(__name__)

REPORT_TRANSACTIONS = "expanded_transactions"
REPORT_RESERVATIONS = "reservations_financials"
REPORT_CHANNELS = "channel_performance"

# Share of a channel's revenue assumed movable to direct booking
SAVINGS_SHIFT_SHARE = 0.10


@dataclass(frozen=True)
class EngineState:
    """Everything one calculation needs, resolved once per request."""
    property_id: str
    original_period: Period
    effective_period: Period
    used_fallback_period: bool
    cost_settings: CostSettings
    import_files: Tuple[ImportFile, ...]
    all_reservations: Tuple[Reservation, ...]
    reservations: Tuple[ProratedReservation, ...]
    transactions: Tuple[Transaction, ...]
    commission_table: CommissionTable
    as_of: date


@dataclass(frozen=True)
class EconomicsFilters:
    source: Optional[str] = None
    source_category: Optional[str] = None
    unprofitable_only: bool = False
    min_nights: Optional[float] = None


# ----------------------------------------------------------------------
# Initialization
# ----------------------------------------------------------------------

def resolve_effective_period(
    requested: Period,
    active_in_requested: int,
    has_any_reservations: bool,
    date_range: Optional[DataDateRange],
) -> Tuple[Period, bool]:
    """
    Pick the period the engine actually reports on.

    Returns the requested period unless it holds no active reservation while
    the property has data elsewhere. In that case the new period ends at the
    latest available date, keeps the requested length, and never starts
    before the earliest available data.
    """
    if active_in_requested > 0 or not has_any_reservations or date_range is None:
        return requested, False

    latest = date_range.latest
    if latest is None:
        return requested, False

    start = latest - timedelta(days=requested.days)
    earliest = date_range.earliest
    if earliest is not None and start < earliest:
        start = earliest
    return Period(start, latest, max(1, (latest - start).days)), True


@dataclass(frozen=True)
class PropertyData:
    """Per-property inputs that do not depend on the reporting window."""
    cost_settings: CostSettings
    import_files: Tuple[ImportFile, ...]
    all_reservations: Tuple[Reservation, ...]


def load_property_data(property_id: str, data_access: "DataAccess") -> PropertyData:
    """Fetch cost settings, import files and reservations concurrently. Deleted reservations are dropped."""
    with ThreadPoolExecutor(max_workers=FETCH_WORKERS) as pool:
        settings_future = pool.submit(data_access.get_cost_settings, property_id)
        files_future = pool.submit(data_access.get_import_files, property_id)
        reservations_future = pool.submit(data_access.get_all_reservations, property_id)
        return PropertyData(
            cost_settings=settings_future.result() or CostSettings.empty(),
            import_files=tuple(files_future.result() or ()),
            all_reservations=tuple(r for r in reservations_future.result() or () if not r.deleted),
        )


def resolve_period(
    property_id: str,
    period: Period,
    data_access: "DataAccess",
    data: PropertyData,
    allow_fallback: bool = True,
) -> Tuple[Period, bool]:
    """Effective period for already loaded property data, and whether it is a fallback."""
    if not allow_fallback or not data.all_reservations:
        return period, False
    if active_in_period(data.all_reservations, period):
        return period, False

    date_range = data_access.get_data_date_range(property_id)
    effective, used_fallback = resolve_effective_period(period, 0, True, date_range)
    if used_fallback:
        logger.warning(
            f"No reservations for {property_id} in {period.start}..{period.end}, "
            f"using fallback period {effective.start}..{effective.end}"
        )
    return effective, used_fallback


def build_state(
    property_id: str,
    period: Period,
    data_access: "DataAccess",
    data: PropertyData,
    commission_table: CommissionTable = DEFAULT_COMMISSION_TABLE,
    as_of: Optional[date] = None,
    effective: Optional[Period] = None,
    used_fallback: bool = False,
) -> EngineState:
    """Load the effective period's transactions and prorate its reservations."""
    effective = effective or period
    transactions = tuple(data_access.get_transactions_by_property(
        property_id,
        datetime.combine(effective.start, time.min),
        datetime.combine(effective.end, time.max),
    ) or ())

    state = EngineState(
        property_id=property_id,
        original_period=period,
        effective_period=effective,
        used_fallback_period=used_fallback,
        cost_settings=data.cost_settings,
        import_files=data.import_files,
        all_reservations=data.all_reservations,
        reservations=tuple(prorate(r, effective) for r in active_in_period(data.all_reservations, effective)),
        transactions=transactions,
        commission_table=commission_table,
        as_of=as_of or date.today(),
    )
    logger.info(
        f"Engine initialized for {property_id} with {len(state.reservations)} "
        f"active reservations and {len(state.transactions)} transactions"
    )
    return state


def initialize(
    property_id: str,
    period: Period,
    data_access: "DataAccess",
    commission_table: CommissionTable = DEFAULT_COMMISSION_TABLE,
    as_of: Optional[date] = None,
    allow_fallback: bool = True,
) -> EngineState:
    logger.debug(f"Initializing engine for {property_id}: {period.start} to {period.end}")
    data = load_property_data(property_id, data_access)
    effective, used_fallback = resolve_period(property_id, period, data_access, data, allow_fallback)
    return build_state(
        property_id, period, data_access, data, commission_table, as_of, effective, used_fallback,
    )


def is_using_fallback_period(state: EngineState) -> bool:
    return state.used_fallback_period


def get_effective_period(state: EngineState) -> Period:
    return state.effective_period


def get_original_period(state: EngineState) -> Period:
    return state.original_period


# ----------------------------------------------------------------------
# Structure & costs
# ----------------------------------------------------------------------

def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def _profit(state: EngineState) -> PeriodProfitability:
    return period_profitability(
        state.reservations, state.cost_settings, state.effective_period, state.commission_table
    )


def get_structure_metrics(state: EngineState) -> Dict[str, Any]:
    """Volume and revenue: occupancy, ADR, RevPAR, NRevPAR, GOPPAR."""
    room_count = state.cost_settings.room_count
    profit = _profit(state)
    available_nights = room_count * state.effective_period.days

    return {
        "period": state.effective_period.to_dict(),
        "used_fallback_period": state.used_fallback_period,
        "room_count": room_count,
        "available_nights": available_nights,
        "total_nights": profit.total_nights,
        "total_revenue": profit.total_revenue,
        "occupancy_rate": min(100.0, _ratio(profit.total_nights, available_nights) * 100),
        "adr": _ratio(profit.total_revenue, profit.total_nights),
        "revpar": _ratio(profit.total_revenue, available_nights),
        "nrevpar": _ratio(profit.total_revenue - profit.total_commissions, available_nights),
        "goppar": _ratio(profit.net_profit, available_nights),
        "confidence": "high" if profit.total_nights > 0 else "low",
    }


def get_cost_breakdown(state: EngineState) -> Dict[str, Any]:
    total_nights = sum(r.room_nights for r in state.reservations)
    variable = variable_cost_per_night(state.cost_settings, total_nights, len(state.reservations))
    fixed = allocate_fixed_costs(state.cost_settings, state.effective_period.days)
    return {
        "fixed_monthly": fixed.fixed_monthly,
        "fixed_per_day": fixed.fixed_per_day,
        "period_fixed": fixed.period_fixed,
        "fixed_per_room_day": fixed.fixed_per_room_day,
        "variable_per_night": variable.per_night_total,
        "variable": asdict(variable),
        "total_variable": variable.per_night_total * total_nights,
        "total_fixed": fixed.period_fixed,
    }


# ----------------------------------------------------------------------
# Profitability
# ----------------------------------------------------------------------

def get_profitability(state: EngineState) -> Dict[str, Any]:
    profit = _profit(state)
    economics = _economics(state)
    losses = [e.net_profit for e in economics if e.is_unprofitable]

    logger.debug(
        f"Profitability for {state.property_id}: revenue {profit.total_revenue:.2f}, "
        f"costs {profit.total_costs:.2f}, net {profit.net_profit:.2f}"
    )

    result = profit.to_dict()
    result.update({
        "period": state.effective_period.to_dict(),
        "unprofitable_count": len(losses),
        "unprofitable_loss": sum(losses),
    })
    return result


def get_break_even_model(state: EngineState) -> BreakEven:
    return break_even(_profit(state), state.cost_settings, state.effective_period)


def get_break_even(state: EngineState) -> Dict[str, Any]:
    result = get_break_even_model(state).to_dict()
    result["period"] = state.effective_period.to_dict()
    return result


def _economics(state: EngineState) -> List[ReservationEconomics]:
    return economics_for_all(
        state.reservations, state.cost_settings, state.effective_period, state.commission_table
    )


def _matches(economics: ReservationEconomics, filters: Optional[EconomicsFilters]) -> bool:
    if filters is None:
        return True
    if filters.source and normalize_channel(economics.source) != normalize_channel(filters.source):
        return False
    if filters.source_category and economics.source_category.lower() != filters.source_category.lower():
        return False
    if filters.unprofitable_only and not economics.is_unprofitable:
        return False
    if filters.min_nights is not None and economics.room_nights < filters.min_nights:
        return False
    return True


def get_reservation_economics_list(
    state: EngineState,
    filters: Optional[EconomicsFilters] = None,
) -> List[ReservationEconomics]:
    rows = [e for e in _economics(state) if _matches(e, filters)]
    return sorted(rows, key=lambda e: (e.check_in, e.reservation_number))


def get_reservation_economics_summary(
    state: EngineState,
    filters: Optional[EconomicsFilters] = None,
) -> Dict[str, Any]:
    rows = get_reservation_economics_list(state, filters)
    if not rows:
        return {
            "count": 0, "total_revenue": 0.0, "total_commission": 0.0,
            "total_costs": 0.0, "total_net_profit": 0.0, "total_nights": 0.0,
            "avg_profit_per_night": 0.0, "avg_margin_percent": 0.0,
            "unprofitable_count": 0, "unprofitable_loss": 0.0,
            "by_channel": [], "worst_reservations": [],
        }

    df = pd.DataFrame([e.to_dict() for e in rows])
    total_revenue = float(df["revenue"].sum())
    total_net = float(df["net_profit"].sum())
    total_nights = float(df["room_nights"].sum())
    losses = df.loc[df["is_unprofitable"], "net_profit"]

    by_channel = (
        df.assign(channel=df["source"].replace("", "Direct"))
        .groupby("channel", sort=False)
        .agg(reservations=("reservation_number", "size"), revenue=("revenue", "sum"),
             net_profit=("net_profit", "sum"), nights=("room_nights", "sum"))
        .reset_index()
        .sort_values("net_profit")
    )

    return {
        "count": len(rows),
        "total_revenue": total_revenue,
        "total_commission": float(df["commission"].sum()),
        "total_costs": float(df["total_costs"].sum()),
        "total_net_profit": total_net,
        "total_nights": total_nights,
        "avg_profit_per_night": _ratio(total_net, total_nights),
        "avg_margin_percent": _ratio(total_net, total_revenue) * 100,
        "unprofitable_count": int(losses.size),
        "unprofitable_loss": float(losses.sum()),
        "by_channel": [
            {
                "channel": row.channel,
                "count": int(row.reservations),
                "revenue": float(row.revenue),
                "net_profit": float(row.net_profit),
                "profit_per_night": _ratio(float(row.net_profit), float(row.nights)),
            }
            for row in by_channel.itertuples(index=False)
        ],
        "worst_reservations": [e.to_dict() for e in sorted(rows, key=lambda e: e.net_profit)[:5]],
    }


# ----------------------------------------------------------------------
# Channels
# ----------------------------------------------------------------------

def _channel_frame(state: EngineState) -> pd.DataFrame:
    table = state.commission_table
    rows = []
    for r in state.reservations:
        rate = resolve_commission_rate(r.source, state.cost_settings, table)
        rows.append({
            "channel_key": normalize_channel(r.source),
            "name": r.source or "Direct",
            "category": categorize_channel(r.source, r.source_category, table),
            "revenue": r.room_revenue_total,
            "nights": r.room_nights,
            "commission": r.room_revenue_total * rate,
            "commission_rate": rate,
        })
    return pd.DataFrame(rows)


def get_channel_metrics(state: EngineState) -> Dict[str, Any]:
    """Channel mix with commission and fully-loaded profit per night."""
    df = _channel_frame(state)
    if df.empty:
        return {
            "channels": [], "total_revenue": 0.0, "total_commission": 0.0,
            "best_channel_by_profit_per_night": None,
            "worst_channel_by_profit_per_night": None,
            "ota_share": 0.0, "direct_share": 0.0, "is_ota_over_dependent": False,
            "avg_effective_commission": 0.0, "toxic_channel": None,
        }

    grouped = df.groupby("channel_key", sort=False).agg(
        name=("name", "first"),
        category=("category", "first"),
        revenue=("revenue", "sum"),
        nights=("nights", "sum"),
        reservations=("name", "size"),
        commission=("commission", "sum"),
        commission_rate=("commission_rate", "first"),
    )

    total_revenue = float(grouped["revenue"].sum())
    total_nights = float(grouped["nights"].sum())
    total_commission = float(grouped["commission"].sum())
    variable = variable_cost_per_night(state.cost_settings, total_nights, len(state.reservations))
    period_fixed = allocate_fixed_costs(state.cost_settings, state.effective_period.days).period_fixed

    grouped["net_revenue"] = grouped["revenue"] - grouped["commission"]
    grouped["revenue_share"] = grouped["revenue"] / total_revenue if total_revenue else 0.0
    grouped["nights_share"] = grouped["nights"] / total_nights if total_nights else 0.0
    grouped["profit"] = (
        grouped["net_revenue"]
        - period_fixed * grouped["nights_share"]
        - grouped["nights"] * variable.per_night_total
    )
    grouped["profit_per_night"] = (
        grouped["profit"] / grouped["nights"].replace(0, np.nan)
    ).fillna(0.0)
    grouped = grouped.sort_values("revenue", ascending=False)

    significant = grouped[(grouped["revenue_share"] > 0.05) & (grouped["nights"] > 0)]
    ranked = significant.sort_values("profit_per_night", ascending=False)
    best = ranked["name"].iloc[0] if not ranked.empty else None
    worst = ranked["name"].iloc[-1] if not ranked.empty else None

    ota_revenue = float(grouped.loc[grouped["category"] == "OTA", "revenue"].sum())
    direct_revenue = float(grouped.loc[grouped["category"] == "Direct", "revenue"].sum())
    ota_share = _ratio(ota_revenue, total_revenue)

    toxic = None
    toxic_rows = grouped[(grouped["revenue_share"] > 0.15) & (grouped["profit_per_night"] < 0)]
    if not toxic_rows.empty:
        row = toxic_rows.iloc[0]
        toxic = {
            "name": row["name"],
            "revenue_share": float(row["revenue_share"]),
            "potential_loss": abs(float(row["profit"])),
        }

    channels = [
        {
            "name": row.name,
            "category": row.category,
            "revenue": float(row.revenue),
            "revenue_share": float(row.revenue_share),
            "nights": float(row.nights),
            "nights_share": float(row.nights_share),
            "reservations": int(row.reservations),
            "commission_rate": float(row.commission_rate),
            "commission": float(row.commission),
            "net_revenue": float(row.net_revenue),
            "profit": float(row.profit),
            "profit_per_night": float(row.profit_per_night),
            "is_top_profit_per_night": row.name == best,
            "is_worst_profit_per_night": row.name == worst and len(ranked) > 1,
        }
        for row in grouped.itertuples(index=False)
    ]

    return {
        "channels": channels,
        "total_revenue": total_revenue,
        "total_commission": total_commission,
        "best_channel_by_profit_per_night": best,
        "worst_channel_by_profit_per_night": worst,
        "ota_share": ota_share * 100,
        "direct_share": _ratio(direct_revenue, total_revenue) * 100,
        "is_ota_over_dependent": ota_share > 0.7,
        "avg_effective_commission": _ratio(total_commission, total_revenue) * 100,
        "toxic_channel": toxic,
    }


# ----------------------------------------------------------------------
# Home & cash
# ----------------------------------------------------------------------

def savings_potential(channel_metrics: Dict[str, Any]) -> Dict[str, Any]:
    candidates = [c for c in channel_metrics["channels"] if c["revenue"] > 0 and c["commission_rate"] > 0]
    if not candidates:
        return {"value": 0.0, "top_channel": None, "commission_rate": 0.0}
    priciest = max(candidates, key=lambda c: c["commission_rate"])
    return {
        "value": priciest["revenue"] * SAVINGS_SHIFT_SHARE * priciest["commission_rate"],
        "top_channel": priciest["name"],
        "commission_rate": priciest["commission_rate"],
    }


def get_home_metrics(state: EngineState) -> Dict[str, Any]:
    """Collected, charged, pending and the commission savings within reach."""
    collected = sum(t.credits for t in state.transactions if not t.void_flag)
    charged = sum(r.room_revenue_total for r in state.reservations)
    pending = sum(max(0.0, r.balance_due) for r in state.reservations)
    return {
        "period": state.effective_period.to_dict(),
        "used_fallback_period": state.used_fallback_period,
        "collected": collected,
        "charged": charged,
        "pending": pending,
        "savings_potential": savings_potential(get_channel_metrics(state)),
    }


def _ar_aging(state: EngineState) -> Dict[str, float]:
    buckets = {"overdue": 0.0, "next_7_days": 0.0, "next_30_days": 0.0, "future": 0.0}
    for r in state.all_reservations:
        if not r.is_active or r.balance_due <= 0:
            continue
        days_until = (r.check_in - state.as_of).days
        if days_until < 0:
            buckets["overdue"] += r.balance_due
        elif days_until <= 7:
            buckets["next_7_days"] += r.balance_due
        elif days_until <= 30:
            buckets["next_30_days"] += r.balance_due
        else:
            buckets["future"] += r.balance_due
    buckets["total"] = sum(buckets.values())
    return buckets


def _runway(starting_balance: float, avg_net_daily: float) -> Dict[str, Any]:
    days = RUNWAY_SAFE_DAYS
    if avg_net_daily < 0 and starting_balance > 0:
        days = int(math.floor(starting_balance / abs(avg_net_daily)))
    status = "safe" if days > 60 else "warning" if days > 30 else "danger"
    return {
        "starting_balance": starting_balance,
        "avg_net_daily": avg_net_daily,
        "runway_days": days,
        "status": status,
    }


def get_cash_metrics(state: EngineState) -> Dict[str, Any]:
    """Realized cash from the ledger, independent of reservation proration."""
    days = state.effective_period.days
    starting_balance = state.cost_settings.starting_cash_balance
    df = pd.DataFrame([asdict(t) for t in state.transactions])

    if df.empty:
        return {
            "period": state.effective_period.to_dict(),
            "total_credits": 0.0, "total_debits": 0.0, "net": 0.0,
            "daily_flow": [],
            "cash_breakers": {"refunds": 0.0, "voids": 0.0, "adjustments": 0.0, "total": 0.0},
            "runway": _runway(starting_balance, 0.0),
            "ar_aging": _ar_aging(state),
        }

    df["timestamp"] = pd.to_datetime(df["timestamp"])
    valid = df[~df["void_flag"].astype(bool)]
    total_credits = float(valid["credits"].sum())
    total_debits = float(valid["debits"].sum())

    daily = (
        valid.assign(day=valid["timestamp"].dt.date)
        .groupby("day")[["credits", "debits"]]
        .sum()
        .sort_index()
    )
    daily_flow = [
        {
            "date": day.isoformat(),
            "credits": float(row.credits),
            "debits": float(row.debits),
            "net": float(row.credits - row.debits),
        }
        for day, row in daily.iterrows()
    ]

    refunds = float(df.loc[df["refund_flag"].astype(bool), "credits"].abs().sum())
    voids = float(df.loc[df["void_flag"].astype(bool), "debits"].abs().sum())
    adjusted = df[df["adjustment_flag"].astype(bool)]
    adjustments = float((adjusted["debits"] - adjusted["credits"]).abs().sum())

    net = total_credits - total_debits
    return {
        "period": state.effective_period.to_dict(),
        "total_credits": total_credits,
        "total_debits": total_debits,
        "net": net,
        "daily_flow": daily_flow,
        "cash_breakers": {
            "refunds": refunds,
            "voids": voids,
            "adjustments": adjustments,
            "total": refunds + voids + adjustments,
        },
        "runway": _runway(starting_balance, _ratio(net, days)),
        "ar_aging": _ar_aging(state),
    }


# ----------------------------------------------------------------------
# Day of week
# ----------------------------------------------------------------------

DAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def get_dow_performance(state: EngineState) -> List[Dict[str, Any]]:
    """
    Nights, revenue and net profit per weekday, Monday first.

    Each prorated reservation is spread evenly over its nights inside the
    effective period. Every occurrence of a weekday carries one day of fixed
    costs.
    """
    period = state.effective_period
    calendar = pd.date_range(period.start, periods=period.days, freq="D")
    occurrences = pd.Series(calendar.dayofweek).value_counts().reindex(range(7), fill_value=0)

    nights = []
    for r in state.reservations:
        if r.nights_in_period <= 0:
            continue
        first = max(r.check_in, period.start)
        for night in pd.date_range(first, periods=r.nights_in_period, freq="D"):
            nights.append({
                "dow": night.dayofweek,
                "nights": r.room_nights / r.nights_in_period,
                "revenue": r.room_revenue_total / r.nights_in_period,
            })

    frame = pd.DataFrame(nights, columns=["dow", "nights", "revenue"])
    totals = frame.groupby("dow")[["nights", "revenue"]].sum().reindex(range(7), fill_value=0.0)

    variable = variable_cost_per_night(
        state.cost_settings, float(totals["nights"].sum()), len(state.reservations)
    )
    per_day_fixed = fixed_per_day(state.cost_settings)
    room_count = state.cost_settings.effective_room_count

    rows = []
    for dow, label in enumerate(DAY_LABELS):
        day_nights = float(totals.at[dow, "nights"])
        revenue = float(totals.at[dow, "revenue"])
        days = int(occurrences.at[dow])
        net_profit = revenue - days * per_day_fixed - day_nights * variable.per_night_total
        rows.append({
            "day_of_week": dow,
            "day_label": label,
            "occurrences": days,
            "room_nights": day_nights,
            "revenue": revenue,
            "adr": _ratio(revenue, day_nights),
            "occupancy_rate": _ratio(day_nights, days * room_count) * 100,
            "net_profit": net_profit,
            "profit_per_night": _ratio(net_profit, day_nights),
        })
    return rows


# ----------------------------------------------------------------------
# Data health
# ----------------------------------------------------------------------

def _has_report(state: EngineState, report_type: str) -> bool:
    return any(f.is_processed and f.report_type == report_type for f in state.import_files)


def get_data_health(state: EngineState) -> Dict[str, Any]:
    """Score how much the numbers can be trusted, 0 to 100."""
    has_transactions = _has_report(state, REPORT_TRANSACTIONS) or bool(state.transactions)
    has_reservations = _has_report(state, REPORT_RESERVATIONS) or bool(state.all_reservations)
    has_channels = _has_report(state, REPORT_CHANNELS)

    check_ins = sorted(r.check_in for r in state.all_reservations)
    earliest = check_ins[0] if check_ins else None
    latest = check_ins[-1] if check_ins else None
    months_covered = 0
    if earliest and latest:
        months_covered = (latest.year - earliest.year) * 12 + (latest.month - earliest.month) + 1

    score = 100
    issues = []
    if not has_transactions:
        score -= 40
        issues.append("Missing expanded transaction report")
    if not has_reservations:
        score -= 30
        issues.append("Missing reservations with financials")
    if not has_channels:
        score -= 20
        issues.append("Missing channel performance summary")

    processed = [f for f in state.import_files if f.is_processed and f.uploaded_at]
    last_import = max((f.uploaded_at for f in processed), default=None)
    if last_import is not None and (state.as_of - last_import.date()).days > STALE_IMPORT_DAYS:
        score -= 10
        issues.append(f"Last import is older than {STALE_IMPORT_DAYS} days")

    if has_reservations and months_covered < 3:
        issues.append(f"Only {months_covered} month(s) of reservation history")
    if state.used_fallback_period:
        issues.append("No data in the requested period; showing the most recent period with data")

    score = max(0, score)
    level = "high" if score >= 80 else "medium" if score >= 50 else "low"

    return {
        "score": score,
        "level": level,
        "issues": issues,
        "last_import": last_import.isoformat() if last_import else None,
        "has_expanded_transactions": has_transactions,
        "has_reservations_financials": has_reservations,
        "has_channel_performance": has_channels,
        "months_covered": months_covered,
        "earliest_date": earliest.isoformat() if earliest else None,
        "latest_date": latest.isoformat() if latest else None,
        "used_fallback_period": state.used_fallback_period,
    }
