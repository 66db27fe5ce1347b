"""
Sale Service - in-store (local) sales

A local sale has no reservation phase: it is completed on creation and
immediately takes its quantities out of the ledger.
"""
import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from minimarket.core import transaction
from minimarket.core.exceptions import EntityNotFound, Unauthorized, ValidationError
from minimarket.models import (
    AppUser, LocalSale, LocalSaleItem, Payment, PaymentMethod, SaleStatus, SaleType,
)
from minimarket.schemas.sale import LocalSaleCreate
from .stock_service import StockService

logger = logging.getLogger(__name__)


def parse_payment_method(value) -> PaymentMethod:
    try:
        return PaymentMethod(str(getattr(value, "value", value)).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown payment method: {value}", field="method")


def validate_items(items) -> None:
    """Shared line validation for local sales and web orders"""
    if not items:
        raise ValidationError("At least one item is required", field="items")
    for item in items:
        if item.quantity is None or item.quantity < 1:
            raise ValidationError(f"Quantity must be at least 1 (product {item.product_id})", field="quantity")


def resolve_actor(db: Session, actor_id: Optional[UUID]) -> AppUser:
    if actor_id is None:
        raise Unauthorized("An authenticated user is required")
    actor = db.get(AppUser, actor_id)
    if actor is None:
        raise EntityNotFound("User", actor_id)
    if not actor.is_active:
        raise Unauthorized(f"User {actor.email} is inactive")
    return actor


class SaleService:
    """Local sale business logic"""

    @staticmethod
    def create_local_sale(db: Session, data: LocalSaleCreate, actor_id: Optional[UUID] = None) -> LocalSale:
        """
        Register a completed in-store sale as one unit of work:
        stock check, price snapshot, sale rows, OUT movements and payment.
        """
        actor_id = actor_id or data.user_id
        if actor_id is None:
            raise Unauthorized("An authenticated user is required to register a sale")
        validate_items(data.items)
        method = parse_payment_method(data.method)

        with transaction(db):
            actor = resolve_actor(db, actor_id)
            products = StockService.lock_products(db, [item.product_id for item in data.items])

            # Lines for the same product compete for the same units
            requested = defaultdict(int)
            for item in data.items:
                requested[item.product_id] += item.quantity
            for product_id, quantity in requested.items():
                StockService.check_availability(db, products[product_id], quantity)

            sale = LocalSale(actor_id=actor.id, status=SaleStatus.COMPLETED.value)
            total = Decimal("0")
            for item_data in data.items:
                product = products[item_data.product_id]
                unit_price = Decimal(product.price or 0)
                item = LocalSaleItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=item_data.quantity,
                    unit_price=unit_price,
                    line_total=unit_price * item_data.quantity,
                )
                total += item.line_total
                sale.items.append(item)

            sale.total_amount = total
            db.add(sale)
            db.flush()

            for item in sale.items:
                StockService.record_sale_issue(
                    db,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    actor_id=actor.id,
                    notes=f"Local sale: {sale.id}",
                )

            db.add(Payment(
                sale_type=SaleType.LOCAL_SALE.value,
                reference_id=sale.id,
                method=method.value,
                amount=total,
            ))
            db.flush()
            sale_id = sale.id

        logger.info(f"Local sale {sale_id} completed: {len(data.items)} items, total={total}, method={method.value}")
        return sale

    @staticmethod
    def get_sale(db: Session, sale_id: UUID) -> LocalSale:
        sale = db.get(LocalSale, sale_id)
        if sale is None:
            raise EntityNotFound("LocalSale", sale_id)
        return sale

    @staticmethod
    def list_sales(
        db: Session,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[LocalSale]:
        """Sales in [start, end), newest first"""
        query = db.query(LocalSale)
        if start:
            query = query.filter(LocalSale.created_at >= start)
        if end:
            query = query.filter(LocalSale.created_at < end)
        return query.order_by(LocalSale.created_at.desc()).limit(limit).all()
