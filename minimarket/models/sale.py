"""
Local (in-store) Sale Models
"""
import enum
from decimal import Decimal
from sqlalchemy import Column, String, Numeric, Integer, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from minimarket.core import Base
from .base import UUIDMixin, CreatedAtMixin


class SaleStatus(str, enum.Enum):
    COMPLETED = "COMPLETED"


class LocalSale(Base, UUIDMixin, CreatedAtMixin):
    """In-store sale. Completed on creation, no reservation phase."""
    __tablename__ = "local_sale"
    
    actor_id = Column(UUID(as_uuid=True), ForeignKey("app_user.id"), nullable=False)
    total_amount = Column(Numeric(12, 0), default=Decimal("0"), nullable=False)
    status = Column(String(20), default=SaleStatus.COMPLETED.value, nullable=False)
    
    # Relationships
    actor = relationship("AppUser", back_populates="local_sales")
    items = relationship("LocalSaleItem", back_populates="sale", cascade="all, delete-orphan")

class LocalSaleItem(Base, UUIDMixin):
    """Local Sale Line (price snapshot at sale time)"""
    __tablename__ = "local_sale_item"
    
    sale_id = Column(UUID(as_uuid=True), ForeignKey("local_sale.id"), nullable=False, index=True)
    product_id = Column(UUID(as_uuid=True), ForeignKey("product.id"), nullable=False)
    
    product_name = Column(String(300))
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 0), nullable=False)
    line_total = Column(Numeric(12, 0), nullable=False)
    
    # Relationships
    sale = relationship("LocalSale", back_populates="items")
    product = relationship("Product")
