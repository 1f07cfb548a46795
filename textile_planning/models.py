# textile_planning/models.py
from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime, Boolean, ForeignKey, Text,
    Index, Table, JSON, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import enum

Base = declarative_base()

class PurchaseState(enum.Enum):
    """Lifecycle states of a purchase order.

    Values:
        DRAFT ('draft'): Quotation not yet confirmed upstream
        PURCHASE ('purchase'): Confirmed and waiting to be planned
        PLANNED ('planned'): All pending quantity allocated to a production line
        DONE ('done'): Fully received
    """
    DRAFT = 'draft'
    PURCHASE = 'purchase'
    PLANNED = 'planned'
    DONE = 'done'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

class PlannedStatus(enum.Enum):
    PLANNED = 'planned'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'

class UrgencyLevel(enum.Enum):
    CRITICAL = 'critical'
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'

holiday_production_lines = Table(
    'holiday_production_lines',
    Base.metadata,
    Column('holiday_id', Integer, ForeignKey('holidays.id', ondelete='CASCADE'), primary_key=True),
    Column('production_line_id', Integer, ForeignKey('production_lines.id', ondelete='CASCADE'), primary_key=True)
)

class ProductionLine(Base):
    __tablename__ = 'production_lines'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    capacity = Column(Integer, nullable=False, default=0)  # units per day
    description = Column(Text)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    planned_production = relationship("PlannedProduction", back_populates="line")
    holidays = relationship("Holiday", secondary=holiday_production_lines, back_populates="lines")

class Holiday(Base):
    __tablename__ = 'holidays'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    date = Column(Date, nullable=False, index=True)
    is_global = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())

    lines = relationship("ProductionLine", secondary=holiday_production_lines, back_populates="holidays")

    @property
    def line_ids(self):
        """Ids of the production lines this holiday applies to."""
        return [line.id for line in self.lines]

class Purchase(Base):
    """Purchase order synchronised from the ERP."""
    __tablename__ = 'purchases'

    id = Column(Integer, primary_key=True)
    name = Column(String(255))
    partner_name = Column(String(255))
    date_order = Column(Date)
    expected_date = Column(Date)
    amount_total = Column(Float, default=0.0)
    state = Column(String(20), default=PurchaseState.PURCHASE.value, index=True)
    # Header-level pending quantity as written by the ERP sync
    stored_pending_qty = Column('pending_qty', Float, default=0.0)
    received_qty = Column(Float, default=0.0)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    lines = relationship("PurchaseLine", back_populates="purchase", cascade="all, delete-orphan")
    planned_production = relationship("PlannedProduction", back_populates="purchase")
    holds = relationship("PurchaseHold", back_populates="purchase", cascade="all, delete-orphan")

    @property
    def pending_qty(self):
        """Ordered minus received, floored at zero, summed across the lines."""
        if self.lines:
            return sum(line.pending_qty for line in self.lines)
        return max(0.0, self.stored_pending_qty or 0.0)

    @property
    def product_names(self):
        return [line.product_name for line in self.lines if line.product_name]

class PurchaseLine(Base):
    __tablename__ = 'purchase_lines'

    id = Column(Integer, primary_key=True)
    purchase_id = Column(Integer, ForeignKey('purchases.id', ondelete='CASCADE'), index=True)
    product_id = Column(Integer)
    product_name = Column(String(255), nullable=False)
    product_category = Column(String(255))
    qty_ordered = Column(Float, default=0.0)
    qty_received = Column(Float, default=0.0)
    price_unit = Column(Float, default=0.0)

    purchase = relationship("Purchase", back_populates="lines")

    @property
    def pending_qty(self):
        return max(0.0, (self.qty_ordered or 0.0) - (self.qty_received or 0.0))

class PurchaseHold(Base):
    __tablename__ = 'purchase_holds'

    id = Column(Integer, primary_key=True)
    purchase_id = Column(Integer, ForeignKey('purchases.id', ondelete='CASCADE'), nullable=False, unique=True)
    held_until = Column(Date, nullable=False)
    reason = Column(Text)
    created_at = Column(DateTime, default=func.now())

    purchase = relationship("Purchase", back_populates="holds")

class PlannedProduction(Base):
    """One (purchase, line, date, quantity) allocation entry."""
    __tablename__ = 'planned_production'

    id = Column(Integer, primary_key=True)
    purchase_id = Column(Integer, ForeignKey('purchases.id', ondelete='CASCADE'), nullable=False)
    line_id = Column(Integer, ForeignKey('production_lines.id', ondelete='CASCADE'), nullable=False)
    planned_date = Column(Date, nullable=False)
    planned_quantity = Column(Float, nullable=False)
    actual_quantity = Column(Float)
    status = Column(String(20), default=PlannedStatus.PLANNED.value)
    order_index = Column(Integer, default=0)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    purchase = relationship("Purchase", back_populates="planned_production")
    line = relationship("ProductionLine", back_populates="planned_production")

    __table_args__ = (
        UniqueConstraint('purchase_id', 'line_id', 'planned_date', 'order_index',
                         name='uq_planned_production_slot'),
        Index('idx_planned_production_line_date', 'line_id', 'planned_date'),
        Index('idx_planned_production_purchase', 'purchase_id'),
    )

class Product(Base):
    __tablename__ = 'products'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    default_code = Column(String(64))
    product_category = Column(String(255))
    sub_category = Column(String(255))
    active = Column(Boolean, default=True)

class InventoryItem(Base):
    """Point-in-time stock snapshot for one product."""
    __tablename__ = 'inventory'

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, index=True)
    product_name = Column(String(255))
    product_category = Column(String(255))
    quantity_on_hand = Column(Float, default=0.0)
    quantity_available = Column(Float, default=0.0)
    incoming_qty = Column(Float, default=0.0)
    outgoing_qty = Column(Float, default=0.0)
    reorder_min = Column(Float)
    reorder_max = Column(Float)
    cost = Column(Float, default=0.0)
    location = Column(String(255))

class Invoice(Base):
    """Historical sales document."""
    __tablename__ = 'invoices'

    id = Column(Integer, primary_key=True)
    name = Column(String(255))
    partner_name = Column(String(255), index=True)
    date_order = Column(Date, index=True)
    amount_total = Column(Float, default=0.0)
    state = Column(String(20))

    lines = relationship("InvoiceLine", back_populates="invoice", cascade="all, delete-orphan")

class InvoiceLine(Base):
    __tablename__ = 'invoice_lines'

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey('invoices.id', ondelete='CASCADE'), index=True)
    product_id = Column(Integer)
    product_name = Column(String(255))
    product_category = Column(String(255))
    qty_delivered = Column(Float, default=0.0)
    price_unit = Column(Float, default=0.0)
    price_subtotal = Column(Float, default=0.0)

    invoice = relationship("Invoice", back_populates="lines")

class SalesTarget(Base):
    __tablename__ = 'sales_targets'

    id = Column(Integer, primary_key=True)
    customer_name = Column(String(255), nullable=False, index=True)
    target_year = Column(String(4), nullable=False)
    target_months = Column(JSON, default=list)  # ["01", "02", ...]
    target_data = Column(JSON, default=list)  # [{product_category, quantity, value}]
    adjusted_total_qty = Column(Float, default=0.0)
    adjusted_total_value = Column(Float, default=0.0)
    created_at = Column(DateTime, default=func.now())
