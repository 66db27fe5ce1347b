"""
Payment Model
"""
import enum
from sqlalchemy import Column, String, Numeric, Index
from sqlalchemy.dialects.postgresql import UUID
from minimarket.core import Base
from .base import UUIDMixin, CreatedAtMixin


class SaleType(str, enum.Enum):
    LOCAL_SALE = "LOCAL_SALE"
    WEB_ORDER = "WEB_ORDER"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    DEBIT_CARD = "DEBIT_CARD"
    CREDIT_CARD = "CREDIT_CARD"
    TRANSFER = "TRANSFER"


class Payment(Base, UUIDMixin, CreatedAtMixin):
    """Flat payment record (append-only), linked to a sale or order by id only"""
    __tablename__ = "payment"
    
    sale_type = Column(String(20), nullable=False)  # LOCAL_SALE, WEB_ORDER
    reference_id = Column(UUID(as_uuid=True), nullable=False)
    method = Column(String(20), nullable=False)
    amount = Column(Numeric(12, 0), nullable=False)
    
    __table_args__ = (
        Index("ix_payment_reference", "sale_type", "reference_id"),
    )
