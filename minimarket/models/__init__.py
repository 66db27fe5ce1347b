from .base import TimestampMixin, CreatedAtMixin, UUIDMixin
from .master import AppUser
from .product import Product, Category
from .stock import InventoryMovement, StockBalance, MovementType, MovementReason, AUTOMATIC_REASONS
from .reservation import StockReservation, ReservationStatus
from .order import WebOrder, WebOrderItem, WebOrderStatus, TERMINAL_STATUSES
from .sale import LocalSale, LocalSaleItem, SaleStatus
from .finance import Payment, SaleType, PaymentMethod
from .audit import AuditLog
from .immutability import register_immutability_listeners

register_immutability_listeners()

__all__ = [
    # Base
    "TimestampMixin", "CreatedAtMixin", "UUIDMixin",
    # Master
    "AppUser",
    # Product
    "Product", "Category",
    # Stock
    "InventoryMovement", "StockBalance", "MovementType", "MovementReason", "AUTOMATIC_REASONS",
    # Reservation
    "StockReservation", "ReservationStatus",
    # Web orders
    "WebOrder", "WebOrderItem", "WebOrderStatus", "TERMINAL_STATUSES",
    # Local sales
    "LocalSale", "LocalSaleItem", "SaleStatus",
    # Payments
    "Payment", "SaleType", "PaymentMethod",
    # Audit
    "AuditLog",
]
