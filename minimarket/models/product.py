"""
Product Models
"""
from decimal import Decimal
from sqlalchemy import Column, String, Numeric, Boolean, Integer, Text, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from minimarket.core import Base
from .base import UUIDMixin, TimestampMixin

class Category(Base, UUIDMixin, TimestampMixin):
    """Product category (optionally nested under a parent)"""
    __tablename__ = "category"
    
    name = Column(String(200), nullable=False)
    parent_id = Column(UUID(as_uuid=True), ForeignKey("category.id"), nullable=True)
    visible_web = Column(Boolean, default=True, nullable=False)
    
    # Relationships
    parent = relationship("Category", remote_side="Category.id")
    products = relationship("Product", back_populates="category")

class Product(Base, UUIDMixin, TimestampMixin):
    """Product Master"""
    __tablename__ = "product"
    
    sku = Column(String(100), unique=True, index=True)
    barcode = Column(String(100), index=True)
    name = Column(String(300), nullable=False)
    description = Column(Text)
    category_id = Column(UUID(as_uuid=True), ForeignKey("category.id"), nullable=True, index=True)
    unit = Column(String(30), default="unit", nullable=False)
    price = Column(Numeric(12, 0), default=Decimal("0"), nullable=False)  # Whole-unit currency
    cost = Column(Numeric(12, 0), default=Decimal("0"), nullable=False)
    visible_web = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    low_stock_threshold = Column(Integer, default=3, nullable=False)  # Low stock alert threshold
    
    # Relationships
    category = relationship("Category", back_populates="products")
    movements = relationship("InventoryMovement", back_populates="product")
    balance = relationship("StockBalance", back_populates="product", uselist=False)
    reservations = relationship("StockReservation", back_populates="product")
