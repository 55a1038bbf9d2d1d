"""
Cost allocation.

Turns a property's monthly cost configuration into per-night, per-day and
per-period figures.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import CostSettings, ItemizedCosts, LegacyVariableCosts
from .settings import AVG_DAYS_PER_MONTH

# Nights used to spread monthly variable costs when no nights were sold
FALLBACK_NIGHTS = 30

# Cleaning spread when the reservation count is unknown: one stay ~ three nights.
# TODO: divide by the real stay count once cleaning is costed per reservation.
CLEANING_STAY_NIGHTS = 3


@dataclass(frozen=True)
class VariableCostPerNight:
    per_night_base: float
    cleaning_per_night: float
    per_night_total: float
    cleaning_total: float
    monthly_variable_total: float
    uses_categories: bool


@dataclass(frozen=True)
class FixedCostAllocation:
    fixed_monthly: float
    fixed_per_day: float
    period_fixed: float
    room_count: int

    @property
    def fixed_per_room_day(self) -> float:
        return self.fixed_per_day / max(1, self.room_count)

    def for_room_nights(self, room_nights: float) -> float:
        """Share of one room's daily fixed cost for the nights a reservation occupies."""
        return self.fixed_per_room_day * room_nights


def variable_cost_per_night(
    cost_settings: CostSettings,
    occupied_nights: float,
    reservation_count: Optional[int] = None,
) -> VariableCostPerNight:
    """
    Variable cost per occupied night.

    Itemized variable categories replace the legacy fields entirely, so the
    legacy cleaning-per-stay amount is ignored when categories exist.

    Args:
        cost_settings: Resolved cost configuration
        occupied_nights: Nights the monthly variable total is spread over
        reservation_count: Stays in the same window, used for cleaning costs

    Returns:
        VariableCostPerNight with the base, cleaning and total per night
    """
    variable = cost_settings.variable_costs
    uses_categories = isinstance(variable, ItemizedCosts)

    monthly_variable_total = variable.monthly_total
    cleaning_per_stay = (
        variable.cleaning_per_stay if isinstance(variable, LegacyVariableCosts) else 0.0
    )

    safe_nights = occupied_nights if occupied_nights > 0 else FALLBACK_NIGHTS
    per_night_base = monthly_variable_total / safe_nights

    if cleaning_per_stay <= 0:
        cleaning_per_night = 0.0
    elif occupied_nights > 0 and reservation_count:
        cleaning_per_night = (cleaning_per_stay * reservation_count) / occupied_nights
    else:
        cleaning_per_night = cleaning_per_stay / CLEANING_STAY_NIGHTS

    return VariableCostPerNight(
        per_night_base=per_night_base,
        cleaning_per_night=cleaning_per_night,
        per_night_total=per_night_base + cleaning_per_night,
        cleaning_total=cleaning_per_stay * (reservation_count or 0),
        monthly_variable_total=monthly_variable_total,
        uses_categories=uses_categories,
    )


def fixed_per_day(cost_settings: CostSettings) -> float:
    return cost_settings.fixed_monthly / AVG_DAYS_PER_MONTH


def allocate_fixed_costs(cost_settings: CostSettings, days: int) -> FixedCostAllocation:
    per_day = fixed_per_day(cost_settings)
    return FixedCostAllocation(
        fixed_monthly=cost_settings.fixed_monthly,
        fixed_per_day=per_day,
        period_fixed=per_day * days,
        room_count=cost_settings.effective_room_count,
    )
