from .planning_service import ProductionPlanningService
from .inventory_planning_service import InventoryPlanningService
from .sales_target_service import SalesTargetService
from .reporting_service import ReportingService

__all__ = [
    'ProductionPlanningService',
    'InventoryPlanningService',
    'SalesTargetService',
    'ReportingService'
]
