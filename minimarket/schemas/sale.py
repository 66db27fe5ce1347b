"""
Local Sale Schemas
"""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from decimal import Decimal

class SaleItemCreate(BaseModel):
    product_id: UUID
    quantity: int

class LocalSaleCreate(BaseModel):
    items: List[SaleItemCreate] = []
    method: str = "CASH"
    user_id: Optional[UUID] = None

class LocalSaleItemResponse(BaseModel):
    product_id: UUID
    product_name: Optional[str]
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True

class LocalSaleResponse(BaseModel):
    id: UUID
    actor_id: UUID
    status: str
    total_amount: Decimal
    created_at: datetime
    items: List[LocalSaleItemResponse] = []

    class Config:
        from_attributes = True
