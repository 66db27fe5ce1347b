from sqlalchemy.orm import Session
from sqlalchemy import func
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo
import logging

from minimarket.core import settings
from minimarket.models import LocalSale, MovementType, Product, StockBalance, WebOrder, WebOrderStatus
from .ledger_service import LedgerService

logger = logging.getLogger(__name__)


class DashboardService:

    @staticmethod
    def store_day_bounds(day: Optional[datetime] = None):
        """
        [start, end) of the store's calendar day, as UTC datetimes.
        Sales are stored in UTC, the store closes its day in local time.
        """
        tz = ZoneInfo(settings.STORE_TIMEZONE)
        local_day = (day or datetime.now(timezone.utc)).astimezone(tz).date()
        start = datetime.combine(local_day, time.min, tzinfo=tz)
        end = datetime.combine(local_day + timedelta(days=1), time.min, tzinfo=tz)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)

    @staticmethod
    def get_low_stock(db: Session, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Active products at or under their threshold, read from the stock_balance projection"""
        on_hand = func.coalesce(StockBalance.on_hand, 0)
        rows = db.query(Product.id, Product.name, on_hand.label("on_hand"), Product.low_stock_threshold)\
            .outerjoin(StockBalance, StockBalance.product_id == Product.id)\
            .filter(Product.is_active == True, on_hand <= Product.low_stock_threshold)\
            .order_by(on_hand.asc(), Product.name)\
            .limit(limit or settings.LOW_STOCK_LIST_LIMIT)\
            .all()

        return [
            {
                "product_id": row.id,
                "name": row.name,
                "stock_on_hand": int(row.on_hand),
                "threshold": row.low_stock_threshold,
            }
            for row in rows
        ]

    @staticmethod
    def get_summary(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Today's sales, pending web orders, low stock and recent adjustments"""
        start, end = DashboardService.store_day_bounds(now)
        limit = settings.DASHBOARD_LIST_LIMIT

        sales_count, sales_total = db.query(
            func.count(LocalSale.id),
            func.coalesce(func.sum(LocalSale.total_amount), 0),
        ).filter(LocalSale.created_at >= start, LocalSale.created_at < end).one()

        pending_query = db.query(WebOrder).filter(WebOrder.status == WebOrderStatus.PENDING.value)
        pending_total = pending_query.count()
        pending = pending_query.order_by(WebOrder.created_at.asc()).limit(limit).all()

        adjustments = LedgerService.recent_movements(db, movement_type=MovementType.ADJUST, limit=limit)

        return {
            "sales_today_total": Decimal(sales_total or 0),
            "sales_today_count": sales_count,
            "pending_web_orders": pending_total,
            "pending_orders": [
                {
                    "id": order.id,
                    "customer_name": order.customer_name,
                    "total_amount": order.total_amount,
                    "created_at": order.created_at,
                }
                for order in pending
            ],
            "low_stock": DashboardService.get_low_stock(db),
            "recent_adjustments": [
                {
                    "id": m.id,
                    "product_id": m.product_id,
                    "product_name": m.product.name if m.product else None,
                    "quantity": m.quantity,
                    "reason": m.reason,
                    "created_at": m.created_at,
                }
                for m in adjustments
            ],
        }
