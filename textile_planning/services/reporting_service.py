# textile_planning/services/reporting_service.py
from datetime import date, datetime
from typing import Dict, List, Optional
import csv
import io
import json
import logging

import numpy as np
from sqlalchemy.orm import Session, joinedload

from ..core.capacity import capacity_usage_by_date
from ..exceptions import NotFoundError, ReportingError
from ..models import PlannedProduction
from .inventory_planning_service import InventoryPlanningService
from .planning_service import ProductionPlanningService
from ..utils.date_utils import add_days, days_between

logger = logging.getLogger(__name__)

class ReportingService:
    """Service for production and inventory planning reports."""

    def __init__(self, session: Session):
        """Initialize the reporting service.

        Args:
            session: Database session
        """
        self.session = session
        self.planning = ProductionPlanningService(session)

    def line_plan_report(self, line_id: int, from_date: Optional[date] = None,
                         to_date: Optional[date] = None) -> Dict:
        """Allocation entries of a line, one row per entry in date order.

        Args:
            line_id: Production line ID
            from_date: Optional start date filter
            to_date: Optional end date filter

        Returns:
            Dictionary with report data
        """
        line = self.planning.get_production_line(line_id)
        if line is None:
            raise NotFoundError(f"Production line with ID {line_id} not found")

        entries = (
            self.session.query(PlannedProduction)
            .options(joinedload(PlannedProduction.purchase))
            .filter(PlannedProduction.line_id == line_id)
        )
        if from_date is not None:
            entries = entries.filter(PlannedProduction.planned_date >= from_date)
        if to_date is not None:
            entries = entries.filter(PlannedProduction.planned_date <= to_date)
        entries = entries.order_by(PlannedProduction.planned_date, PlannedProduction.order_index).all()

        usage = capacity_usage_by_date(line, entries)
        report_data = []

        for entry in entries:
            report_data.append({
                'date': entry.planned_date.isoformat(),
                'purchase': entry.purchase.name if entry.purchase else entry.purchase_id,
                'supplier': entry.purchase.partner_name if entry.purchase else None,
                'quantity': entry.planned_quantity,
                'order_index': entry.order_index,
                'status': entry.status,
                'day_load': usage[entry.planned_date],
                'day_capacity': line.capacity
            })

        return {
            'report_name': "Production Line Plan",
            'report_date': datetime.now().isoformat(),
            'filters': {
                'line_id': line_id,
                'from_date': from_date.isoformat() if from_date else None,
                'to_date': to_date.isoformat() if to_date else None
            },
            'summary': {
                'line_name': line.name,
                'capacity': line.capacity,
                'entries': len(entries),
                'purchases': len({entry.purchase_id for entry in entries}),
                'total_quantity': sum(entry.planned_quantity for entry in entries),
                'planned_days': len(usage)
            },
            'data': report_data
        }

    def capacity_utilization_report(self, from_date: date, to_date: date) -> Dict:
        """Share of capacity booked on every working day of each active line.

        Args:
            from_date: First day of the period
            to_date: Last day of the period

        Returns:
            Dictionary with one row per production line
        """
        if to_date < from_date:
            raise ReportingError("Report period ends before it starts",
                                 details={'from_date': from_date.isoformat(), 'to_date': to_date.isoformat()})

        period = [add_days(from_date, offset) for offset in range(days_between(from_date, to_date) + 1)]
        report_data = []

        for line in self.planning.get_production_lines(active_only=True):
            calendar = self.planning.build_calendar(line.id)
            working_days = [day for day in period if not calendar.is_non_working_day(line, day)]
            usage = capacity_usage_by_date(line, self.planning.get_line_plan(line.id, from_date, to_date))

            booked = np.array([usage.get(day, 0.0) for day in working_days], dtype=float)
            if len(booked) and line.capacity:
                utilization = booked / float(line.capacity)
            else:
                utilization = np.zeros(len(booked))

            report_data.append({
                'line_id': line.id,
                'line_name': line.name,
                'capacity': line.capacity,
                'working_days': len(working_days),
                'booked_quantity': float(booked.sum()),
                'available_quantity': float(line.capacity * len(working_days) - booked.sum()),
                'avg_utilization': round(float(np.mean(utilization)) * 100, 1) if len(utilization) else 0.0,
                'peak_utilization': round(float(np.max(utilization)) * 100, 1) if len(utilization) else 0.0,
                'full_days': int(np.count_nonzero(utilization >= 1.0)),
                'idle_days': int(np.count_nonzero(booked == 0))
            })

        logger.info(f"Capacity utilization for {len(report_data)} line(s) {from_date} to {to_date}")

        return {
            'report_name': "Capacity Utilization",
            'report_date': datetime.now().isoformat(),
            'filters': {
                'from_date': from_date.isoformat(),
                'to_date': to_date.isoformat()
            },
            'summary': {
                'lines': len(report_data),
                'booked_quantity': sum(row['booked_quantity'] for row in report_data),
                'available_quantity': sum(row['available_quantity'] for row in report_data)
            },
            'data': report_data
        }

    def inventory_planning_report(self, months: Optional[int] = None, as_of: Optional[date] = None,
                                  window: str = 'next_month', top_n: Optional[int] = None) -> Dict:
        """Categories ranked by shortfall with their products flattened into rows."""
        analysis = InventoryPlanningService(self.session).analyze(months, as_of, window)
        categories = analysis.top(top_n) if top_n else analysis.categories

        report_data: List[Dict] = []
        for category in categories:
            for product in category.products:
                row = product.to_dict()
                row['category_shortfall'] = category.shortfall
                row['category_urgency'] = category.urgency
                report_data.append(row)

        return {
            'report_name': "Inventory Planning",
            'report_date': datetime.now().isoformat(),
            'filters': {
                'months': analysis.months,
                'as_of': analysis.as_of.isoformat(),
                'window': window
            },
            'summary': {
                'categories': len(analysis.categories),
                'products_short': len(analysis.needs_planning),
                'total_shortfall': analysis.total_shortfall,
                'recommendations': {c.category: c.recommendation for c in categories}
            },
            'data': report_data
        }

    def export_report_to_csv(self, report: Dict) -> str:
        """Export a report's data rows to CSV.

        Args:
            report: Report dictionary

        Returns:
            CSV data as string
        """
        if 'data' not in report:
            raise ReportingError("Report has no data to export")

        data = report['data']
        if not data:
            return "No data to export"

        output = io.StringIO()
        writer = csv.writer(output)

        header = list(data[0].keys())
        writer.writerow(header)

        for row in data:
            writer.writerow([row.get(col, '') for col in header])

        return output.getvalue()

    def export_report_to_json(self, report: Dict) -> str:
        return json.dumps(report, default=str, indent=2)
