"""
Master Tables: AppUser
"""
from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from minimarket.core import Base
from .base import UUIDMixin, TimestampMixin

class AppUser(Base, UUIDMixin, TimestampMixin):
    """Application User (cashier, stock keeper, admin)"""
    __tablename__ = "app_user"
    
    email = Column(String(200), unique=True, nullable=False)
    full_name = Column(String(200), nullable=False)
    role = Column(String(50), nullable=False, default="cashier")  # admin, manager, cashier
    hashed_password = Column(String(255))
    is_active = Column(Boolean, default=True, nullable=False)
    
    # Relationships
    movements = relationship("InventoryMovement", back_populates="actor")
    local_sales = relationship("LocalSale", back_populates="actor")
