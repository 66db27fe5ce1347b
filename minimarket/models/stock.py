"""
Stock & Inventory Models
"""
import enum
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, CheckConstraint, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from minimarket.core import Base
from .base import UUIDMixin, CreatedAtMixin, utcnow


class MovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUST = "ADJUST"


class MovementReason(str, enum.Enum):
    PURCHASE = "purchase"
    SALE = "sale"
    ADJUSTMENT = "adjustment"
    SHRINKAGE = "shrinkage"
    DAMAGE = "damage"
    EXPIRY = "expiry"
    CORRECTION = "correction"
    RETURN = "return"


# Reasons owned by the purchase and sale flows, never valid for a manual adjustment
AUTOMATIC_REASONS = frozenset({MovementReason.PURCHASE, MovementReason.SALE})


class InventoryMovement(Base, UUIDMixin, CreatedAtMixin):
    """
    Stock Movement Ledger (append-only)

    IN/OUT rows carry a positive magnitude, the sign comes from the type.
    ADJUST rows carry a signed, non-zero delta.
    """
    __tablename__ = "inventory_movement"
    
    product_id = Column(UUID(as_uuid=True), ForeignKey("product.id"), nullable=False, index=True)
    
    # Movement info
    movement_type = Column(String(10), nullable=False)  # IN, OUT, ADJUST
    reason = Column(String(30), nullable=False)
    quantity = Column(Integer, nullable=False)
    
    # Supplier document (purchases only)
    document_type = Column(String(30))
    document_number = Column(String(60))
    
    # Metadata
    notes = Column(Text)
    actor_id = Column(UUID(as_uuid=True), ForeignKey("app_user.id"), nullable=False)
    
    # Relationships
    product = relationship("Product", back_populates="movements")
    actor = relationship("AppUser", back_populates="movements")
    
    __table_args__ = (
        CheckConstraint(
            "(movement_type IN ('IN', 'OUT') AND quantity > 0) "
            "OR (movement_type = 'ADJUST' AND quantity <> 0)",
            name="ck_inventory_movement_quantity_sign",
        ),
        Index("ix_inventory_movement_product_created", "product_id", "created_at"),
    )
    
    @property
    def signed_quantity(self) -> int:
        """Contribution of this row to stock on hand"""
        if self.movement_type == MovementType.OUT.value:
            return -self.quantity
        return self.quantity
    
    def __repr__(self):
        return f"<InventoryMovement {self.movement_type}/{self.reason} {self.quantity} product={self.product_id}>"


class StockBalance(Base):
    """
    Running on-hand total per product.

    Updated in the same transaction as each movement insert. The ledger stays
    the source of truth; see StockService.reconcile_balances.
    """
    __tablename__ = "stock_balance"
    
    product_id = Column(UUID(as_uuid=True), ForeignKey("product.id"), primary_key=True)
    on_hand = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    
    product = relationship("Product", back_populates="balance")
