# wholesale_portal/models.py
import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean, Column, Date, DateTime, Float, ForeignKey, Index, JSON, String, Text
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def generate_uuid():
    return str(uuid.uuid4())


class OrderStatus(enum.Enum):
    """Order lifecycle states.

    Values:
        PENDING: Submitted by a client, still editable and cancellable
        CONFIRMED: Locked for preparation, by an employee or after the cutoff
        SHIPPED: Left the warehouse
        DELIVERED: Received by the client (terminal)
        CANCELLED: Cancelled while pending (terminal)
    """
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'OrderStatus':
        """Create an OrderStatus from a string value.

        Raises:
            ValueError if the string value is not valid
        """
        try:
            return cls(value)
        except ValueError:
            valid = ', '.join(status.value for status in cls)
            raise ValueError(f"Invalid order status: {value}. Valid values are: {valid}")

    def can_transition_to(self, target: 'OrderStatus') -> bool:
        """Check whether an order may move from this status to ``target``."""
        return target in ORDER_STATUS_TRANSITIONS[self]


# Allowed status moves; delivered and cancelled are terminal
ORDER_STATUS_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


class Setting(Base):
    __tablename__ = 'settings'

    key = Column(String(100), primary_key=True)
    value = Column(JSON)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class ClientRole(Base):
    __tablename__ = 'client_roles'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    slug = Column(String(50), nullable=False, unique=True)
    name = Column(JSON, nullable=False)
    description = Column(JSON)
    default_delivery_days = Column(JSON)
    created_at = Column(DateTime, default=datetime.now)

    clients = relationship("Client", back_populates="role")


class Client(Base):
    __tablename__ = 'clients'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_role_id = Column(String(36), ForeignKey('client_roles.id'))
    company_name = Column(String(255))
    contact_name = Column(String(255))
    contact_email = Column(String(255))
    contact_phone = Column(String(50))
    preferred_locale = Column(String(5))
    remise = Column(Float, default=0.0)  # Discount percentage
    delivery_days = Column(JSON)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    role = relationship("ClientRole", back_populates="clients")
    orders = relationship("Order", back_populates="client")


class EmployeeRole(Base):
    __tablename__ = 'employee_roles'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(JSON, nullable=False)
    permissions = Column(JSON)  # {"manage_orders": true, ...}
    created_at = Column(DateTime, default=datetime.now)

    employees = relationship("Employee", back_populates="role")


class Employee(Base):
    __tablename__ = 'employees'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    employee_role_id = Column(String(36), ForeignKey('employee_roles.id'))
    full_name = Column(String(255))
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    role = relationship("EmployeeRole", back_populates="employees")


class Product(Base):
    __tablename__ = 'products'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    sku = Column(String(50))
    name = Column(JSON, nullable=False)  # {"fr": ..., "nl": ..., "en": ...}
    unit = Column(String(20), default='piece')
    base_price = Column(Float, nullable=False)
    approximate_weight = Column(Float)
    active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.now)


class Order(Base):
    __tablename__ = 'orders'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_id = Column(String(36), ForeignKey('clients.id'))
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    delivery_date = Column(Date)
    notes = Column(Text)
    estimated_total = Column(Float)
    final_total = Column(Float)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    client = relationship("Client", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.created_at"
    )

    __table_args__ = (
        Index('ix_orders_status', 'status'),
        Index('ix_orders_client_status', 'client_id', 'status'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'status': self.status,
            'delivery_date': self.delivery_date,
            'notes': self.notes,
            'estimated_total': self.estimated_total,
            'final_total': self.final_total,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


class OrderItem(Base):
    __tablename__ = 'order_items'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    order_id = Column(String(36), ForeignKey('orders.id'), nullable=False)
    product_id = Column(String(36), ForeignKey('products.id'))
    # Snapshots taken at submission time
    product_name = Column(String(255))
    quantity = Column(Float, nullable=False)
    unit = Column(String(20))
    unit_price = Column(Float)
    subtotal = Column(Float)
    created_at = Column(DateTime, default=datetime.now)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
