import argparse
import sys
from datetime import datetime

from tabulate import tabulate

from wholesale_portal.config import config
from wholesale_portal.core.delivery import CutoffPolicy, compute_next_delivery_date
from wholesale_portal.db import db, session_scope
from wholesale_portal.exceptions import PortalError, ValidationError
from wholesale_portal.logging_setup import logger, get_logger


def init_application():
    """Initialize application components."""
    db.initialize()
    db.test_connection()

    log = logger.app_logger
    log.info("Wholesale Portal initialized")
    log.info(f"Using database type: {db.db_type}")

    return True

def setup_database(args):
    """Create tables and seed default settings."""
    from wholesale_portal.services.settings_service import SettingsService

    log = get_logger('setup')
    init_application()

    if args.drop:
        log.warning("Dropping existing tables")
        db.drop_all_tables()

    db.create_all_tables()

    with session_scope() as session:
        created = SettingsService(session).seed_defaults()

    log.info(f"Database ready, {created} default settings created")
    print(f"Database ready ({created} default settings created)")
    return True

def _parse_now(value):
    if not value:
        return datetime.now()
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid --now value: {value}", code='validation-error', details={'now': value})

def next_delivery(args):
    """Print the next delivery date for a client or an explicit day list."""
    now = _parse_now(args.now)

    if args.client_id:
        from wholesale_portal.models import Client
        from wholesale_portal.services.order_service import OrderService

        init_application()
        with session_scope() as session:
            client = session.get(Client, args.client_id)
            if client is None:
                print(f"Client {args.client_id} not found", file=sys.stderr)
                return False
            delivery_date = OrderService(session).get_next_delivery_date(client, now)
    else:
        if not args.days:
            print("Either --client-id or --days is required", file=sys.stderr)
            return False
        ordering = config.ordering_config
        policy = CutoffPolicy(
            cutoff_time=args.cutoff or ordering['default_cutoff_time'],
            cutoff_day_offset=args.offset if args.offset is not None else ordering['default_cutoff_day_offset']
        )
        days = [day for day in args.days.split(',') if day.strip()]
        delivery_date = compute_next_delivery_date(days, policy, now, weeks=ordering['search_weeks'])

    print(delivery_date.isoformat())
    return True

def auto_confirm(args):
    """Run the auto-confirmation sweep once."""
    from wholesale_portal.batch.auto_confirm import run_auto_confirm_job

    init_application()
    results = run_auto_confirm_job(now=_parse_now(args.now))
    print(f"Confirmed {results['confirmed']} orders")
    return True

def list_orders(args):
    """Print orders as a table."""
    from wholesale_portal.services.order_service import OrderService

    init_application()
    with session_scope() as session:
        orders = OrderService(session).get_orders(status=args.status, limit=args.limit)

        if not orders:
            print("No orders found")
            return True

        table_data = [
            [
                order.id,
                order.client.company_name if order.client else '',
                order.status,
                order.delivery_date.isoformat() if order.delivery_date else '',
                order.estimated_total,
                order.final_total
            ]
            for order in orders
        ]

    print(tabulate(table_data, headers=['Order ID', 'Client', 'Status', 'Delivery', 'Estimated', 'Final']))
    print(f"\nTotal: {len(table_data)}")
    return True

def build_parser():
    parser = argparse.ArgumentParser(description='Wholesale Portal')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    init_parser = subparsers.add_parser('init-db', help='Create tables and default settings')
    init_parser.add_argument('--drop', action='store_true', help='Drop existing tables first')

    delivery_parser = subparsers.add_parser('next-delivery', help='Compute the next delivery date')
    delivery_parser.add_argument('--client-id', type=str, help='Use the delivery days of this client')
    delivery_parser.add_argument('--days', type=str, help='Comma-separated weekdays, e.g. monday,thursday')
    delivery_parser.add_argument('--cutoff', type=str, help='Cutoff time HH:mm')
    delivery_parser.add_argument('--offset', type=int, help='Cutoff day offset')
    delivery_parser.add_argument('--now', type=str, help='Current instant (ISO format)')

    confirm_parser = subparsers.add_parser('auto-confirm', help='Confirm pending orders past their cutoff')
    confirm_parser.add_argument('--now', type=str, help='Current instant (ISO format)')

    orders_parser = subparsers.add_parser('orders', help='List orders')
    orders_parser.add_argument('--status', type=str, help='Filter by status')
    orders_parser.add_argument('--limit', type=int, default=50, help='Maximum number of orders')

    return parser

def main(argv=None):
    """Main application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    commands = {
        'init-db': setup_database,
        'next-delivery': next_delivery,
        'auto-confirm': auto_confirm,
        'orders': list_orders,
    }

    if args.command not in commands:
        parser.print_help()
        return 1

    try:
        return 0 if commands[args.command](args) else 1
    except PortalError as e:
        get_logger('app').error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

if __name__ == "__main__":
    sys.exit(main())
