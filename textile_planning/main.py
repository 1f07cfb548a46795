import argparse
import json
import sys
from datetime import date

from textile_planning.db import db, session_scope
from textile_planning.exceptions import PlanningSystemError
from textile_planning.logging_setup import logger, get_logger
from textile_planning.utils.date_utils import convert_to_date

def init_application():
    """Initialize application components."""
    db.initialize()

    log = logger.app_logger
    log.info("Textile Planning System initialized")
    log.info(f"Using database: {db.engine.url.render_as_string(hide_password=True)}")

    return True

def _print_json(data):
    print(json.dumps(data, default=str, indent=2))

def init_db(args):
    """Create the schema, dropping existing tables first when asked."""
    log = get_logger('app')
    db.initialize()
    db.check_connection()

    if args.drop:
        log.warning("Dropping all tables")
        db.drop_all_tables()

    db.create_all_tables()
    log.info("Database schema created")
    return True

def plan_order(args):
    from textile_planning.services.planning_service import ProductionPlanningService

    with session_scope() as session:
        service = ProductionPlanningService(session)
        if args.preview:
            result = service.preview_plan(args.purchase_id, args.line_id, args.start_date)
        else:
            result = service.plan_purchase_order(args.purchase_id, args.line_id, args.start_date,
                                                 insert_index=args.insert_index)

    _print_json(result.to_dict())
    return result.success

def unplan_order(args):
    from textile_planning.services.planning_service import ProductionPlanningService

    with session_scope() as session:
        deleted = ProductionPlanningService(session).unplan_purchase(args.purchase_id)

    print(f"Removed {deleted} allocation entries")
    return True

def hold_order(args):
    from textile_planning.services.planning_service import ProductionPlanningService

    with session_scope() as session:
        service = ProductionPlanningService(session)
        if args.release:
            released = service.release_hold(args.purchase_id)
            print("Hold released" if released else "No hold found")
            return released

        hold = service.hold_purchase(args.purchase_id, held_until=args.until,
                                     months=args.months, reason=args.reason)
        print(f"Purchase {args.purchase_id} held until {hold.held_until.isoformat()}")

    return True

def set_capacity(args):
    from textile_planning.services.planning_service import ProductionPlanningService

    with session_scope() as session:
        summary = ProductionPlanningService(session).update_line_capacity(args.line_id, args.capacity)

    _print_json(summary)
    return not summary['failed']

def add_holiday(args):
    from textile_planning.services.planning_service import ProductionPlanningService

    with session_scope() as session:
        holiday = ProductionPlanningService(session).add_holiday(args.date, args.name, line_ids=args.line)
        print(f"Added holiday {holiday.name} on {holiday.date.isoformat()}")

    return True

def recalculate(args):
    from textile_planning.services.planning_service import ProductionPlanningService

    with session_scope() as session:
        summary = ProductionPlanningService(session).recalculate_line(args.line_id)

    _print_json(summary)
    return not summary['failed']

def inventory_report(args):
    from textile_planning.services.reporting_service import ReportingService

    with session_scope() as session:
        service = ReportingService(session)
        report = service.inventory_planning_report(
            months=args.months, as_of=args.as_of, window=args.window, top_n=args.top
        )
        output = service.export_report_to_csv(report) if args.csv else service.export_report_to_json(report)

    print(output)
    return True

def nightly(args):
    from textile_planning.batch.nightly_job import run_nightly_job

    results = run_nightly_job(args.as_of)
    return results['success']

def _date(value):
    try:
        return convert_to_date(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date: {value} (expected YYYY-MM-DD)")

def build_parser():
    parser = argparse.ArgumentParser(description='Textile Planning System')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    init_parser = subparsers.add_parser('init-db', help='Create the database schema')
    init_parser.add_argument('--drop', action='store_true', help='Drop existing tables before setup')
    init_parser.set_defaults(func=init_db)

    plan_parser = subparsers.add_parser('plan', help='Plan a purchase order on a production line')
    plan_parser.add_argument('purchase_id', type=int)
    plan_parser.add_argument('line_id', type=int)
    plan_parser.add_argument('--start-date', type=_date, default=date.today(), help='First candidate date')
    plan_parser.add_argument('--insert-index', type=int, help='Position within the day')
    plan_parser.add_argument('--preview', action='store_true', help='Calculate without saving')
    plan_parser.set_defaults(func=plan_order)

    unplan_parser = subparsers.add_parser('unplan', help='Move a planned order back to unplanned')
    unplan_parser.add_argument('purchase_id', type=int)
    unplan_parser.set_defaults(func=unplan_order)

    hold_parser = subparsers.add_parser('hold', help='Hold a purchase order out of incoming supply')
    hold_parser.add_argument('purchase_id', type=int)
    hold_parser.add_argument('--until', type=_date, help='Hold end date')
    hold_parser.add_argument('--months', type=int, help='Hold length in months')
    hold_parser.add_argument('--reason', type=str)
    hold_parser.add_argument('--release', action='store_true', help='Release an existing hold')
    hold_parser.set_defaults(func=hold_order)

    capacity_parser = subparsers.add_parser('set-capacity', help='Change a line capacity and replan it')
    capacity_parser.add_argument('line_id', type=int)
    capacity_parser.add_argument('capacity', type=int)
    capacity_parser.set_defaults(func=set_capacity)

    holiday_parser = subparsers.add_parser('holiday', help='Add a holiday for all lines or selected lines')
    holiday_parser.add_argument('date', type=_date)
    holiday_parser.add_argument('name', type=str)
    holiday_parser.add_argument('--line', type=int, action='append', help='Production line ID (repeatable)')
    holiday_parser.set_defaults(func=add_holiday)

    recalc_parser = subparsers.add_parser('recalculate', help='Replan every order of a line')
    recalc_parser.add_argument('line_id', type=int)
    recalc_parser.set_defaults(func=recalculate)

    report_parser = subparsers.add_parser('inventory-report', help='Inventory planning report')
    report_parser.add_argument('--months', type=int, help='Forecast horizon in months')
    report_parser.add_argument('--as-of', type=_date, help='Reference date')
    report_parser.add_argument('--window', choices=['current_month', 'next_month'], default='next_month')
    report_parser.add_argument('--top', type=int, help='Only the N most urgent categories')
    report_parser.add_argument('--csv', action='store_true', help='CSV instead of JSON')
    report_parser.set_defaults(func=inventory_report)

    nightly_parser = subparsers.add_parser('nightly', help='Run the nightly job')
    nightly_parser.add_argument('--as-of', type=_date, help='Reference date')
    nightly_parser.set_defaults(func=nightly)

    return parser

def main(argv=None):
    """Main application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    init_application()

    try:
        ok = args.func(args)
    except PlanningSystemError as e:
        get_logger('app').error(str(e))
        _print_json(e.to_dict())
        return 1

    return 0 if ok else 1

if __name__ == "__main__":
    sys.exit(main())
