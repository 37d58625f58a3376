# wholesale_portal/services/order_service.py
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Union
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload, selectinload

from wholesale_portal.batch.auto_confirm import auto_confirm_orders_past_deadline
from wholesale_portal.config import config
from wholesale_portal.core.delivery import compute_next_delivery_date, get_order_deadline
from wholesale_portal.db.interface import SQLAlchemyStore
from wholesale_portal.exceptions import (
    NotFoundError, OrderError, PermissionDeniedError, SchedulingError, ValidationError
)
from wholesale_portal.models import Client, Order, OrderItem, OrderStatus, Product
from wholesale_portal.services.settings_service import SettingsService
from wholesale_portal.utils.date_utils import add_days, to_date
from wholesale_portal.utils.math_utils import (
    calculate_discounted_price, calculate_line_subtotal, sum_amounts
)
from wholesale_portal.utils.validation import validate_order_payload

if TYPE_CHECKING:
    from wholesale_portal.auth.permissions import RequestContext

logger = logging.getLogger(__name__)

SCHEDULING_UNAVAILABLE = 'scheduling-unavailable'


def localized_name(name: Union[Dict[str, str], str, None], locale: Optional[str]) -> str:
    """Pick a product name in the requested locale, falling back to any."""
    if isinstance(name, dict):
        if locale and name.get(locale):
            return name[locale]
        return next((value for value in name.values() if value), '')
    return name or ''


class OrderService:
    """Service for handling order-related operations."""

    def __init__(
        self,
        session: Session,
        store=None,
        settings_service: Optional[SettingsService] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """Initialize the order service.

        Args:
            session: Database session
            store: Order store used for the auto-confirm sweep
            settings_service: Settings service (built from session if omitted)
            clock: Callable returning the current instant
        """
        self.session = session
        self.store = store or SQLAlchemyStore(session)
        self.settings_service = settings_service or SettingsService(self.store)
        self.clock = clock or datetime.now

    def auto_confirm(self) -> int:
        """Confirm pending orders whose cutoff passed.

        Scheduling configuration errors are logged so that read paths keep
        working; they resurface at checkout.

        Returns:
            Number of orders confirmed
        """
        try:
            return auto_confirm_orders_past_deadline(self.store, self.settings_service, self.clock())
        except SchedulingError as e:
            logger.error(f"Auto-confirmation skipped, invalid cutoff settings: {str(e)}")
            return 0

    def get_orders(
        self,
        status: Optional[str] = None,
        client_id: Optional[str] = None,
        client_search: Optional[str] = None,
        order_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        created_from: Optional[date] = None,
        created_to: Optional[date] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Order]:
        """Get orders matching criteria, newest first.

        Args:
            status: Optional order status filter
            client_id: Optional client filter
            client_search: Optional text matched against company, contact name and email
            order_id: Optional partial order id
            date_from: Optional earliest delivery date
            date_to: Optional latest delivery date
            created_from: Optional earliest creation date
            created_to: Optional latest creation date (inclusive, whole day)
            limit: Maximum number of orders
            offset: Number of orders to skip

        Returns:
            List of order objects
        """
        self.auto_confirm()

        if limit is None:
            limit = config.ordering_config['default_order_limit']

        query = self.session.query(Order).options(joinedload(Order.client))

        if status is not None:
            query = query.filter(Order.status == status)

        if client_id is not None:
            query = query.filter(Order.client_id == client_id)

        if order_id:
            query = query.filter(Order.id.ilike(f"%{order_id}%"))

        if date_from is not None:
            query = query.filter(Order.delivery_date >= to_date(date_from))

        if date_to is not None:
            query = query.filter(Order.delivery_date <= to_date(date_to))

        if created_from is not None:
            query = query.filter(Order.created_at >= datetime.combine(to_date(created_from), datetime.min.time()))

        if created_to is not None:
            end = datetime.combine(add_days(to_date(created_to), 1), datetime.min.time())
            query = query.filter(Order.created_at < end)

        if client_search:
            pattern = f"%{client_search.strip()}%"
            query = query.join(Client, Order.client_id == Client.id).filter(or_(
                Client.company_name.ilike(pattern),
                Client.contact_name.ilike(pattern),
                Client.contact_email.ilike(pattern)
            ))

        query = query.order_by(Order.created_at.desc()).offset(offset).limit(limit)

        return query.all()

    def get_order(self, order_id: str) -> Optional[Order]:
        """Get an order with its client and items.

        Args:
            order_id: Order ID

        Returns:
            Order object or None if not found
        """
        self.auto_confirm()

        return (
            self.session.query(Order)
            .options(joinedload(Order.client), selectinload(Order.items))
            .filter(Order.id == order_id)
            .first()
        )

    def get_client_pending_order(self, client_id: str) -> Optional[Order]:
        """Get the client's most recent pending order, if any."""
        return (
            self.session.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.client_id == client_id, Order.status == OrderStatus.PENDING.value)
            .order_by(Order.created_at.desc())
            .first()
        )

    def get_effective_delivery_days(self, client: Client) -> List[str]:
        """Client delivery days, or the client role's defaults when unset."""
        if client.delivery_days:
            return list(client.delivery_days)
        if client.role is not None and client.role.default_delivery_days:
            return list(client.role.default_delivery_days)
        return []

    def get_next_delivery_date(self, client: Client, now: Optional[datetime] = None) -> date:
        """Compute the next delivery date a client can still order for.

        Args:
            client: Client placing the order
            now: Current instant (defaults to the service clock)

        Returns:
            Delivery date

        Raises:
            SchedulingError with code 'scheduling-unavailable' when the
            client has no delivery days or the cutoff settings are invalid
        """
        delivery_days = self.get_effective_delivery_days(client)
        if not delivery_days:
            raise SchedulingError(
                f"No delivery days configured for client {client.id}",
                code=SCHEDULING_UNAVAILABLE
            )

        policy = self.settings_service.get_cutoff_policy()
        try:
            return compute_next_delivery_date(
                delivery_days,
                policy,
                now or self.clock(),
                weeks=config.ordering_config['search_weeks']
            )
        except SchedulingError as e:
            logger.error(f"Cannot schedule delivery for client {client.id}: {str(e)}")
            raise SchedulingError(
                "Delivery scheduling is currently unavailable",
                code=SCHEDULING_UNAVAILABLE,
                details=e.to_dict()
            ) from e

    def _build_items(self, order: Order, items: List[Dict[str, Any]], client: Client) -> List[OrderItem]:
        """Create order lines with name and price snapshots."""
        product_ids = {item['product_id'] for item in items}
        products = {
            product.id: product
            for product in self.session.query(Product).filter(Product.id.in_(product_ids)).all()
        }

        if len(products) != len(product_ids):
            missing = sorted(product_ids - set(products))
            raise OrderError("Unknown products in cart", code='product-mismatch', details={'missing': missing})

        order_items = []
        for item in items:
            product = products[item['product_id']]
            unit_price = calculate_discounted_price(product.base_price, client.remise)
            order_items.append(OrderItem(
                order=order,
                product_id=product.id,
                product_name=localized_name(product.name, client.preferred_locale),
                quantity=item['quantity'],
                unit=product.unit,
                unit_price=unit_price,
                subtotal=calculate_line_subtotal(unit_price, item['quantity'])
            ))
        return order_items

    def submit_order(
        self,
        ctx: "RequestContext",
        items: List[Dict[str, Any]],
        delivery_date: Union[date, str, None] = None,
        notes: Optional[str] = None,
        existing_order_id: Optional[str] = None
    ) -> str:
        """Create a pending order, or replace the content of one still pending.

        Args:
            ctx: Request context of the submitting client
            items: Cart lines with product_id and quantity
            delivery_date: Requested delivery date (next available if omitted)
            notes: Optional notes
            existing_order_id: Pending order to modify instead of creating one

        Returns:
            ID of the created or updated order
        """
        client = ctx.client
        if client is None:
            raise PermissionDeniedError("Client account required")

        errors = validate_order_payload(items, notes, delivery_date)
        if errors:
            code = 'cart-empty' if 'items' in errors else 'validation-error'
            raise ValidationError("Invalid order", code=code, details=errors)

        now = self.clock()
        if delivery_date:
            delivery_date = to_date(delivery_date)
            policy = self.settings_service.get_cutoff_policy()
            if not now < get_order_deadline(delivery_date, policy, now.tzinfo):
                raise OrderError(
                    f"Ordering for {delivery_date.isoformat()} closed",
                    code='cutoff-passed',
                    details={'delivery_date': delivery_date.isoformat()}
                )
        else:
            delivery_date = self.get_next_delivery_date(client, now)

        try:
            if existing_order_id:
                order = self.session.get(Order, existing_order_id)
                if order is None or order.client_id != client.id:
                    raise PermissionDeniedError(f"Order {existing_order_id} cannot be modified")

                # Conditional write: the order may have been confirmed meanwhile
                updated = (
                    self.session.query(Order)
                    .filter(Order.id == order.id, Order.status == OrderStatus.PENDING.value)
                    .update(
                        {'delivery_date': delivery_date, 'notes': notes, 'updated_at': now},
                        synchronize_session='fetch'
                    )
                )
                if updated != 1:
                    raise OrderError(
                        f"Order {existing_order_id} is no longer pending",
                        code='invalid-status'
                    )

                for old_item in list(order.items):
                    self.session.delete(old_item)
                self.session.flush()
                self.session.expire(order, ['items'])
            else:
                order = Order(
                    client_id=client.id,
                    status=OrderStatus.PENDING.value,
                    delivery_date=delivery_date,
                    notes=notes,
                    created_at=now,
                    updated_at=now
                )
                self.session.add(order)

            order_items = self._build_items(order, items, client)
            self.session.add_all(order_items)
            order.estimated_total = sum_amounts(line.subtotal for line in order_items)

            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(
            f"Client {client.id} {'updated' if existing_order_id else 'submitted'} order {order.id} "
            f"for {delivery_date.isoformat()} ({len(order_items)} items)"
        )
        return order.id

    def cancel_order(self, ctx: "RequestContext", order_id: str) -> None:
        """Cancel a pending order owned by the current client.

        Args:
            ctx: Request context of the client
            order_id: Order ID

        Raises:
            PermissionDeniedError, NotFoundError, OrderError ('invalid-status')
        """
        client = ctx.client
        if client is None:
            raise PermissionDeniedError("Client account required")

        order = self.session.get(Order, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", code='not-found')

        if order.client_id != client.id:
            raise PermissionDeniedError(f"Order {order_id} belongs to another client")

        try:
            updated = (
                self.session.query(Order)
                .filter(Order.id == order_id, Order.status == OrderStatus.PENDING.value)
                .update(
                    {'status': OrderStatus.CANCELLED.value, 'updated_at': self.clock()},
                    synchronize_session='fetch'
                )
            )
            if updated != 1:
                raise OrderError(f"Order {order_id} is not pending", code='invalid-status')
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Client {client.id} cancelled order {order_id}")

    def update_order(
        self,
        ctx: "RequestContext",
        order_id: str,
        status: Optional[str] = None,
        final_total: Optional[float] = None,
        notes: Optional[str] = None
    ) -> Order:
        """Update an order on behalf of an employee.

        Args:
            ctx: Request context of the employee
            order_id: Order ID
            status: Optional new status
            final_total: Optional final invoiced total
            notes: Optional notes

        Returns:
            Updated order
        """
        ctx.require_permission('manage_orders')

        errors = {}
        if status is not None:
            try:
                status = OrderStatus.from_string(status).value
            except ValueError as e:
                errors['status'] = str(e)
        if final_total is not None and (isinstance(final_total, bool) or final_total < 0):
            errors['final_total'] = 'Final total must be a non-negative number'
        if notes is not None and len(notes) > 500:
            errors['notes'] = 'Notes cannot exceed 500 characters'
        if errors:
            raise ValidationError("Invalid order update", code='validation-error', details=errors)

        order = self.session.get(Order, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", code='not-found')

        current_status = order.status
        changes = {}
        if status is not None and status != current_status:
            if not OrderStatus.from_string(current_status).can_transition_to(OrderStatus(status)):
                raise OrderError(
                    f"Order {order_id} cannot move from {current_status} to {status}",
                    code='invalid-status',
                    details={'from': current_status, 'to': status}
                )
            changes['status'] = status
        if final_total is not None:
            changes['final_total'] = final_total
        if notes is not None:
            changes['notes'] = notes

        if not changes:
            return order

        changes['updated_at'] = self.clock()

        try:
            # Conditional write: the status may have changed since it was read
            updated = (
                self.session.query(Order)
                .filter(Order.id == order_id, Order.status == current_status)
                .update(changes, synchronize_session='fetch')
            )
            if updated != 1:
                raise OrderError(f"Order {order_id} changed concurrently", code='invalid-status')
            self.session.commit()
        except OrderError:
            self.session.rollback()
            raise
        except Exception as e:
            self.session.rollback()
            raise OrderError(f"Failed to update order {order_id}: {str(e)}", code='update-error')

        logger.info(f"Employee {ctx.user_id} updated order {order_id}: {sorted(changes)}")
        return order
