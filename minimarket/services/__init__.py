# Services Package
from .ledger_service import LedgerService
from .reservation_service import ReservationService
from .stock_service import StockService
from .sale_service import SaleService
from .web_order_service import WebOrderService
from .product_service import ProductService
from .dashboard_service import DashboardService

__all__ = [
    "LedgerService",
    "ReservationService",
    "StockService",
    "SaleService",
    "WebOrderService",
    "ProductService",
    "DashboardService",
]
