"""
Profitability and break-even formulas.

Period P&L:
    net_profit = revenue - fixed - variable - commissions

Reservation P&L uses the same commission rule and the same variable cost
per night as the period, and carries a share of one room's daily fixed cost
for every night it occupies.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Sequence

from .commissions import (
    CommissionTable,
    DEFAULT_COMMISSION_TABLE,
    categorize_channel,
    resolve_commission_rate,
)
from .costs import FixedCostAllocation, allocate_fixed_costs, variable_cost_per_night
from .models import CostSettings, Period, ProratedReservation, ReservationEconomics


@dataclass(frozen=True)
class PeriodProfitability:
    total_revenue: float
    total_nights: float
    reservation_count: int
    total_commissions: float
    total_variable: float
    total_fixed: float
    total_costs: float
    net_profit: float
    profit_per_night: float
    margin_percent: float
    avg_commission_rate: float
    variable_per_night: float
    fixed_per_day: float
    period_fixed: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BreakEven:
    adr: float
    avg_commission_rate: float
    variable_per_night: float
    contribution_per_night: float
    fixed_per_day: float
    period_fixed: float
    break_even_occupancy: float
    current_occupancy: float
    required_nights: float
    nights_sold: float
    margin_of_safety_nights: float
    break_even_price: float
    is_impossible: bool

    @property
    def is_below_break_even(self) -> bool:
        return self.is_impossible or self.current_occupancy < self.break_even_occupancy

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["is_below_break_even"] = self.is_below_break_even
        return result


def _safe_ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def period_profitability(
    reservations: Sequence[ProratedReservation],
    cost_settings: CostSettings,
    period: Period,
    table: CommissionTable = DEFAULT_COMMISSION_TABLE,
) -> PeriodProfitability:
    total_revenue = sum(r.room_revenue_total for r in reservations)
    total_nights = sum(r.room_nights for r in reservations)
    total_commissions = sum(
        r.room_revenue_total * resolve_commission_rate(r.source, cost_settings, table)
        for r in reservations
    )

    variable = variable_cost_per_night(cost_settings, total_nights, len(reservations))
    fixed = allocate_fixed_costs(cost_settings, period.days)

    total_variable = variable.per_night_total * total_nights
    total_fixed = fixed.period_fixed
    total_costs = total_fixed + total_variable + total_commissions
    net_profit = total_revenue - total_fixed - total_variable - total_commissions

    return PeriodProfitability(
        total_revenue=total_revenue,
        total_nights=total_nights,
        reservation_count=len(reservations),
        total_commissions=total_commissions,
        total_variable=total_variable,
        total_fixed=total_fixed,
        total_costs=total_costs,
        net_profit=net_profit,
        profit_per_night=_safe_ratio(net_profit, total_nights),
        margin_percent=_safe_ratio(net_profit, total_revenue) * 100,
        avg_commission_rate=_safe_ratio(total_commissions, total_revenue),
        variable_per_night=variable.per_night_total,
        fixed_per_day=fixed.fixed_per_day,
        period_fixed=fixed.period_fixed,
    )


def reservation_economics(
    reservation: ProratedReservation,
    cost_settings: CostSettings,
    variable_per_night: float,
    fixed: FixedCostAllocation,
    table: CommissionTable = DEFAULT_COMMISSION_TABLE,
) -> ReservationEconomics:
    revenue = reservation.room_revenue_total
    nights = reservation.room_nights
    commission_rate = resolve_commission_rate(reservation.source, cost_settings, table)
    commission = revenue * commission_rate
    variable_costs = variable_per_night * nights
    fixed_allocated = fixed.for_room_nights(nights)
    total_costs = commission + variable_costs + fixed_allocated
    net_profit = revenue - total_costs

    return ReservationEconomics(
        reservation_number=reservation.reservation_number,
        guest_name=reservation.guest_name,
        check_in=reservation.check_in,
        source=reservation.source,
        source_category=categorize_channel(reservation.source, reservation.source_category, table),
        room_nights=nights,
        revenue=revenue,
        commission_rate=commission_rate,
        commission=commission,
        variable_costs=variable_costs,
        fixed_allocated=fixed_allocated,
        total_costs=total_costs,
        net_profit=net_profit,
        profit_per_night=_safe_ratio(net_profit, nights),
        margin_percent=_safe_ratio(net_profit, revenue) * 100,
        is_unprofitable=net_profit < 0,
    )


def economics_for_all(
    reservations: Sequence[ProratedReservation],
    cost_settings: CostSettings,
    period: Period,
    table: CommissionTable = DEFAULT_COMMISSION_TABLE,
) -> List[ReservationEconomics]:
    total_nights = sum(r.room_nights for r in reservations)
    variable = variable_cost_per_night(cost_settings, total_nights, len(reservations))
    fixed = allocate_fixed_costs(cost_settings, period.days)
    return [
        reservation_economics(r, cost_settings, variable.per_night_total, fixed, table)
        for r in reservations
    ]


def break_even(
    profit: PeriodProfitability,
    cost_settings: CostSettings,
    period: Period,
) -> BreakEven:
    """
    Break-even thresholds for the period.

    The contribution of one sold night is what is left of the ADR after the
    average commission and the variable cost per night. Fixed costs per day,
    divided by the contribution of the whole property, give the occupancy
    needed to cover them.
    """
    room_count = cost_settings.effective_room_count
    adr = _safe_ratio(profit.total_revenue, profit.total_nights)
    contribution = adr * (1 - profit.avg_commission_rate) - profit.variable_per_night
    available_nights = room_count * period.days
    current_occupancy = min(100.0, _safe_ratio(profit.total_nights, available_nights) * 100)

    is_impossible = contribution <= 0
    if is_impossible:
        break_even_occupancy = 0.0
        required_nights = 0.0
    else:
        break_even_occupancy = profit.fixed_per_day / (contribution * room_count) * 100
        required_nights = profit.period_fixed / contribution

    break_even_price = 0.0
    if profit.total_nights > 0 and profit.avg_commission_rate < 1:
        costs_to_cover = profit.period_fixed + profit.total_nights * profit.variable_per_night
        break_even_price = costs_to_cover / profit.total_nights / (1 - profit.avg_commission_rate)

    return BreakEven(
        adr=adr,
        avg_commission_rate=profit.avg_commission_rate,
        variable_per_night=profit.variable_per_night,
        contribution_per_night=contribution,
        fixed_per_day=profit.fixed_per_day,
        period_fixed=profit.period_fixed,
        break_even_occupancy=break_even_occupancy,
        current_occupancy=current_occupancy,
        required_nights=required_nights,
        nights_sold=profit.total_nights,
        margin_of_safety_nights=profit.total_nights - required_nights,
        break_even_price=break_even_price,
        is_impossible=is_impossible,
    )
