"""
Product Schemas
"""
from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from decimal import Decimal

class CategoryCreate(BaseModel):
    name: str
    parent_id: Optional[UUID] = None
    visible_web: bool = True

class CategoryResponse(BaseModel):
    id: UUID
    name: str
    parent_id: Optional[UUID]
    visible_web: bool

    class Config:
        from_attributes = True

class ProductCreate(BaseModel):
    sku: Optional[str] = None
    barcode: Optional[str] = None
    name: str
    description: Optional[str] = None
    category_id: Optional[UUID] = None
    unit: str = "unit"
    price: Decimal = Decimal("0")
    cost: Decimal = Decimal("0")
    visible_web: bool = True
    low_stock_threshold: int = 3

class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[UUID] = None
    unit: Optional[str] = None
    price: Optional[Decimal] = None
    cost: Optional[Decimal] = None
    visible_web: Optional[bool] = None
    is_active: Optional[bool] = None
    low_stock_threshold: Optional[int] = None

class ProductResponse(BaseModel):
    id: UUID
    sku: Optional[str]
    barcode: Optional[str]
    name: str
    category_id: Optional[UUID] = None
    unit: str
    price: Decimal
    cost: Decimal
    visible_web: bool
    is_active: bool
    low_stock_threshold: int

    class Config:
        from_attributes = True
