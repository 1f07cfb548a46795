# textile_planning/batch/nightly_job.py
import logging
from datetime import date, datetime
from typing import Dict, Optional

from ..config import config
from ..db import session_scope
from ..logging_setup import get_logger, logger as log_manager
from ..services.inventory_planning_service import InventoryPlanningService
from ..services.planning_service import ProductionPlanningService
from ..services.reporting_service import ReportingService
from ..utils.date_utils import add_days

logger = get_logger('nightly_job')
logger.setLevel(logging.INFO)

def release_expired_holds(as_of: date) -> Dict:
    """Delete purchase holds that ended before ``as_of``.

    Args:
        as_of: Reference date

    Returns:
        Dictionary with release results
    """
    logger.info(f"Releasing purchase holds expired before {as_of.isoformat()}")

    with session_scope() as session:
        released = ProductionPlanningService(session).release_expired_holds(as_of)

    return {
        'success': True,
        'released_holds': released
    }

def summarize_inventory_planning(as_of: date, months: Optional[int] = None) -> Dict:
    """Log the categories with the largest shortfall.

    Args:
        as_of: Reference date
        months: Forecast horizon; ``PLANNING.default_months`` when omitted

    Returns:
        Dictionary with the top categories
    """
    top_n = config.batch_config['report_top_n']

    with session_scope() as session:
        analysis = InventoryPlanningService(session).analyze(months, as_of)
        top = [category.to_dict() for category in analysis.top(top_n) if category.shortfall > 0]

    for rank, category in enumerate(top, 1):
        logger.info(
            f"#{rank} {category['category']}: shortfall {category['shortfall']} "
            f"({category['urgency']}) - {category['recommendation']}"
        )

    return {
        'success': True,
        'total_shortfall': analysis.total_shortfall,
        'products_short': len(analysis.needs_planning),
        'top_categories': top
    }

def summarize_capacity(as_of: date, horizon_days: int = 30) -> Dict:
    """Log booked versus available capacity for the coming days."""
    with session_scope() as session:
        report = ReportingService(session).capacity_utilization_report(as_of, add_days(as_of, horizon_days - 1))

    for row in report['data']:
        logger.info(
            f"Line {row['line_name']}: {row['avg_utilization']}% average utilization, "
            f"{row['full_days']} full day(s) in the next {horizon_days} days"
        )

    return {
        'success': True,
        'lines': report['summary']['lines'],
        'available_quantity': report['summary']['available_quantity']
    }

def run_nightly_job(as_of: Optional[date] = None) -> Dict:
    """Run the nightly job.

    Args:
        as_of: Reference date, today when omitted

    Returns:
        Dictionary with job results
    """
    as_of = as_of or date.today()
    log_info = log_manager.batch_start_log('nightly_job', {'as_of': as_of.isoformat()})

    start_time = datetime.now()
    results = {
        'start_time': start_time,
        'end_time': None,
        'duration': None,
        'processes': {}
    }

    try:
        logger.info("# Step 1: Release expired holds")
        results['processes']['release_expired_holds'] = release_expired_holds(as_of)

        logger.info("# Step 2: Inventory planning summary")
        results['processes']['inventory_planning'] = summarize_inventory_planning(as_of)

        logger.info("# Step 3: Capacity summary")
        results['processes']['capacity'] = summarize_capacity(as_of)

        results['success'] = True
    except Exception as e:
        log_manager.log_exception('nightly_job', e, "Error during nightly job")
        results['success'] = False
        results['error'] = str(e)

    results['end_time'] = datetime.now()
    results['duration'] = results['end_time'] - start_time

    log_manager.batch_end_log(log_info, success=results['success'], result_info={
        name: {key: value for key, value in process.items() if key != 'top_categories'}
        for name, process in results['processes'].items()
    })

    return results

if __name__ == "__main__":
    run_nightly_job()
