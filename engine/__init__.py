"""
Financial calculation engine for hotel property-management data.
Turns reservations, transactions and cost settings into one consistent
set of occupancy, rate, profitability and channel metrics.
"""
import logging

from .settings import LOG_LEVEL

# Configure logging
logging.basicConfig(level=LOG_LEVEL,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

from .models import (  # noqa: E402
    ChannelCommissions,
    CostCategory,
    CostSettings,
    DataDateRange,
    ImportFile,
    ItemizedCosts,
    LegacyFixedCosts,
    LegacyVariableCosts,
    Period,
    ProratedReservation,
    Reservation,
    ReservationEconomics,
    Transaction,
)
from .proration import prorate, overlaps  # noqa: E402
from .commissions import (  # noqa: E402
    CommissionTable,
    DEFAULT_COMMISSION_TABLE,
    resolve_commission_rate,
)
from .costs import variable_cost_per_night, allocate_fixed_costs  # noqa: E402
from .calculation_engine import (  # noqa: E402
    EngineState,
    EconomicsFilters,
    initialize,
    get_structure_metrics,
    get_cost_breakdown,
    get_profitability,
    get_break_even,
    get_home_metrics,
    get_cash_metrics,
    get_channel_metrics,
    get_reservation_economics_list,
    get_reservation_economics_summary,
    get_data_health,
    get_dow_performance,
    is_using_fallback_period,
    get_effective_period,
    get_original_period,
)
from .calculators import calculate_profitability_metrics, calculate_minimum_price  # noqa: E402
from .command_center import get_command_center_data, empty_command_center  # noqa: E402
from .actions import generate_actions  # noqa: E402
from .projections import get_projections  # noqa: E402

__all__ = [
    "ChannelCommissions", "CostCategory", "CostSettings", "DataDateRange",
    "ImportFile", "ItemizedCosts", "LegacyFixedCosts", "LegacyVariableCosts",
    "Period", "ProratedReservation", "Reservation", "ReservationEconomics",
    "Transaction", "prorate", "overlaps", "CommissionTable",
    "DEFAULT_COMMISSION_TABLE", "resolve_commission_rate",
    "variable_cost_per_night", "allocate_fixed_costs", "EngineState",
    "EconomicsFilters", "initialize", "get_structure_metrics",
    "get_cost_breakdown", "get_profitability", "get_break_even",
    "get_home_metrics", "get_cash_metrics", "get_channel_metrics",
    "get_reservation_economics_list", "get_reservation_economics_summary",
    "get_data_health", "get_dow_performance", "is_using_fallback_period",
    "get_effective_period",
    "get_original_period", "calculate_profitability_metrics",
    "calculate_minimum_price", "get_command_center_data",
    "empty_command_center", "generate_actions", "get_projections",
]
