"""
Web Order Schemas
"""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from decimal import Decimal

from .sale import SaleItemCreate

class WebOrderCreate(BaseModel):
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    items: List[SaleItemCreate] = []

class WebOrderStatusUpdate(BaseModel):
    status: str
    user_id: Optional[UUID] = None
    payment_method: Optional[str] = None  # Records a payment when moving to PAID

class WebOrderItemResponse(BaseModel):
    product_id: UUID
    product_name: Optional[str]
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True

class WebOrderResponse(BaseModel):
    id: UUID
    customer_name: str
    customer_phone: str
    customer_email: Optional[str]
    status: str
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime
    items: List[WebOrderItemResponse] = []

    class Config:
        from_attributes = True
