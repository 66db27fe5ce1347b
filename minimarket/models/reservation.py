"""
Stock Reservation Model
"""
import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from minimarket.core import Base
from .base import UUIDMixin, CreatedAtMixin


class ReservationStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CONSUMED = "CONSUMED"
    RELEASED = "RELEASED"


class StockReservation(Base, UUIDMixin, CreatedAtMixin):
    """Quantity held against a product for a pending web order"""
    __tablename__ = "stock_reservation"
    
    product_id = Column(UUID(as_uuid=True), ForeignKey("product.id"), nullable=False)
    web_order_id = Column(UUID(as_uuid=True), ForeignKey("web_order.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    status = Column(String(20), default=ReservationStatus.ACTIVE.value, nullable=False)
    
    expires_at = Column(DateTime(timezone=True))  # Acted on by the expiry sweep only
    closed_at = Column(DateTime(timezone=True))  # When consumed or released
    
    # Relationships
    product = relationship("Product", back_populates="reservations")
    web_order = relationship("WebOrder", back_populates="reservations")
    
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_stock_reservation_quantity"),
        Index("ix_stock_reservation_product_status", "product_id", "status"),
        Index("ix_stock_reservation_order_status", "web_order_id", "status"),
        Index("ix_stock_reservation_expires_at", "expires_at"),
    )
    
    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.ACTIVE.value
    
    def __repr__(self):
        return f"<StockReservation {self.status} {self.quantity} order={self.web_order_id}>"
