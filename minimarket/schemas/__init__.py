# Pydantic Schemas Package
from .order import WebOrderCreate, WebOrderStatusUpdate, WebOrderResponse, WebOrderItemResponse
from .product import CategoryCreate, CategoryResponse, ProductCreate, ProductUpdate, ProductResponse
from .sale import SaleItemCreate, LocalSaleCreate, LocalSaleResponse, LocalSaleItemResponse
from .stock import PurchaseCreate, AdjustmentCreate, MovementResponse, StockLevel, BalanceDrift

__all__ = [
    "WebOrderCreate", "WebOrderStatusUpdate", "WebOrderResponse", "WebOrderItemResponse",
    "CategoryCreate", "CategoryResponse", "ProductCreate", "ProductUpdate", "ProductResponse",
    "SaleItemCreate", "LocalSaleCreate", "LocalSaleResponse", "LocalSaleItemResponse",
    "PurchaseCreate", "AdjustmentCreate", "MovementResponse", "StockLevel", "BalanceDrift",
]
