from .work_calendar import HolidayCalendar, is_non_working_day
from .capacity import available_capacity, used_capacity, capacity_usage_by_date
from .scheduler import (
    AllocationRecord, DayPlan, PlanningResult, calculate_planning,
    DEFAULT_MAX_DAY_STEPS, TIMEFRAME_EXCEEDED_MESSAGE
)
from .recalculation import RecalculatedPlan, recalculate_line_plans, replay_sequence
from .matching import (
    ProductKey, ProductMatcher, SubstringMatcher, CleanedNameMatcher,
    clean_product_name, make_product_key, line_matches_product
)
from .forecast import (
    comparison_window, forecast_same_period, forecast_from_current_month,
    forecast_from_next_month, average_monthly_sales
)
from .inventory_planning import (
    ProductShortfall, CategoryShortfall, PlanningAnalysis,
    analyze, classify_urgency, rank_shortfalls
)
from .sales_targets import (
    TargetItem, CategoryResolver, historical_category_totals,
    build_targets, target_vs_actual
)

__all__ = [
    'HolidayCalendar',
    'is_non_working_day',
    'available_capacity',
    'used_capacity',
    'capacity_usage_by_date',
    'AllocationRecord',
    'DayPlan',
    'PlanningResult',
    'calculate_planning',
    'DEFAULT_MAX_DAY_STEPS',
    'TIMEFRAME_EXCEEDED_MESSAGE',
    'RecalculatedPlan',
    'recalculate_line_plans',
    'replay_sequence',
    'ProductKey',
    'ProductMatcher',
    'SubstringMatcher',
    'CleanedNameMatcher',
    'clean_product_name',
    'make_product_key',
    'line_matches_product',
    'comparison_window',
    'forecast_same_period',
    'forecast_from_current_month',
    'forecast_from_next_month',
    'average_monthly_sales',
    'ProductShortfall',
    'CategoryShortfall',
    'PlanningAnalysis',
    'analyze',
    'classify_urgency',
    'rank_shortfalls',
    'TargetItem',
    'CategoryResolver',
    'historical_category_totals',
    'build_targets',
    'target_vs_actual'
]
