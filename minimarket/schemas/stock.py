"""
Stock Schemas
"""
from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from datetime import datetime

class PurchaseCreate(BaseModel):
    product_id: UUID
    quantity: int
    document_type: Optional[str] = None
    document_number: Optional[str] = None
    notes: Optional[str] = None
    user_id: Optional[UUID] = None  # Falls back to the authenticated user

class AdjustmentCreate(BaseModel):
    product_id: UUID
    quantity: int  # Signed delta
    reason: Optional[str] = None
    notes: Optional[str] = None
    user_id: Optional[UUID] = None

class MovementResponse(BaseModel):
    id: UUID
    product_id: UUID
    movement_type: str
    reason: str
    quantity: int
    document_type: Optional[str]
    document_number: Optional[str]
    notes: Optional[str]
    actor_id: UUID
    created_at: datetime

    class Config:
        from_attributes = True

class StockLevel(BaseModel):
    product_id: UUID
    stock_on_hand: int
    reserved: int
    available: int

class BalanceDrift(BaseModel):
    product_id: UUID
    projected: int
    ledger: int
