"""
Web Order Models
"""
import enum
from decimal import Decimal
from sqlalchemy import Column, String, Numeric, Integer, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from minimarket.core import Base
from .base import UUIDMixin, TimestampMixin


class WebOrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    RESERVED = "RESERVED"
    PAID = "PAID"
    PREPARED = "PREPARED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, value) -> "WebOrderStatus":
        """Accepts enum members or names; REQUESTED is an alias of PENDING"""
        if isinstance(value, cls):
            return value
        name = str(getattr(value, "value", value)).strip().upper()
        if name == "REQUESTED":
            return cls.PENDING
        return cls(name)


TERMINAL_STATUSES = frozenset({WebOrderStatus.DELIVERED, WebOrderStatus.CANCELLED})


class WebOrder(Base, UUIDMixin, TimestampMixin):
    """Web Order Header"""
    __tablename__ = "web_order"
    
    # Customer
    customer_name = Column(String(200), nullable=False)
    customer_phone = Column(String(30), nullable=False)
    customer_email = Column(String(200))
    
    # Status
    status = Column(String(20), default=WebOrderStatus.PENDING.value, nullable=False, index=True)
    
    # Amounts
    total_amount = Column(Numeric(12, 0), default=Decimal("0"), nullable=False)
    
    # Relationships
    items = relationship("WebOrderItem", back_populates="order", cascade="all, delete-orphan")
    reservations = relationship("StockReservation", back_populates="web_order")
    
    @property
    def is_terminal(self) -> bool:
        return WebOrderStatus(self.status) in TERMINAL_STATUSES

class WebOrderItem(Base, UUIDMixin):
    """Web Order Line (price snapshot at order time)"""
    __tablename__ = "web_order_item"
    
    order_id = Column(UUID(as_uuid=True), ForeignKey("web_order.id"), nullable=False, index=True)
    product_id = Column(UUID(as_uuid=True), ForeignKey("product.id"), nullable=False)
    
    product_name = Column(String(300))
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 0), nullable=False)
    line_total = Column(Numeric(12, 0), nullable=False)
    
    # Relationships
    order = relationship("WebOrder", back_populates="items")
    product = relationship("Product")
