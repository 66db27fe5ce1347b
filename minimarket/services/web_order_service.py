"""
Web Order Service - order lifecycle and its reservations

    PENDING -> RESERVED -> PAID -> PREPARED -> DELIVERED
        any non-terminal state -> CANCELLED

DELIVERED consumes the order's reservations into OUT movements, CANCELLED
releases them without touching the ledger. Other transitions only move the
status field.
"""
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from minimarket.core import transaction
from minimarket.core.exceptions import EntityNotFound, InvalidStateTransition, ValidationError
from minimarket.models import (
    AuditLog, Payment, SaleType, TERMINAL_STATUSES, WebOrder, WebOrderItem, WebOrderStatus,
)
from minimarket.schemas.order import WebOrderCreate
from .reservation_service import ReservationService
from .sale_service import parse_payment_method, resolve_actor, validate_items
from .stock_service import StockService

logger = logging.getLogger(__name__)


def parse_status(value) -> WebOrderStatus:
    try:
        return WebOrderStatus.parse(value)
    except ValueError:
        raise ValidationError(f"Unknown order status: {value}", field="status")


class WebOrderService:
    """Web order business logic"""

    @staticmethod
    def create_order(db: Session, data: WebOrderCreate) -> WebOrder:
        """Create a PENDING order and reserve every line against available stock"""
        if not (data.customer_name or "").strip():
            raise ValidationError("customer_name is required", field="customer_name")
        if not (data.customer_phone or "").strip():
            raise ValidationError("customer_phone is required", field="customer_phone")
        validate_items(data.items)

        with transaction(db):
            products = StockService.lock_products(db, [item.product_id for item in data.items])

            requested = defaultdict(int)
            for item in data.items:
                requested[item.product_id] += item.quantity
            for product_id, quantity in requested.items():
                StockService.check_availability(db, products[product_id], quantity)

            order = WebOrder(
                customer_name=data.customer_name.strip(),
                customer_phone=data.customer_phone.strip(),
                customer_email=data.customer_email,
                status=WebOrderStatus.PENDING.value,
            )

            # Calculate totals from current prices
            subtotal = Decimal("0")
            for item_data in data.items:
                product = products[item_data.product_id]
                unit_price = Decimal(product.price or 0)
                item = WebOrderItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=item_data.quantity,
                    unit_price=unit_price,
                    line_total=unit_price * item_data.quantity,
                )
                subtotal += item.line_total
                order.items.append(item)

            order.total_amount = subtotal
            db.add(order)
            db.flush()

            for item in order.items:
                ReservationService.reserve(db, item.product_id, order.id, item.quantity)
            order_id = order.id

        logger.info(f"Web order {order_id} created for {data.customer_name}: {len(data.items)} items reserved, total={subtotal}")
        return order

    @staticmethod
    def get_order(db: Session, order_id: UUID) -> WebOrder:
        order = db.get(WebOrder, order_id)
        if order is None:
            raise EntityNotFound("WebOrder", order_id)
        return order

    @staticmethod
    def list_orders(db: Session, status: Optional[str] = None, limit: int = 100) -> List[WebOrder]:
        """Orders newest first; pending orders oldest first (work queue)"""
        query = db.query(WebOrder)
        if status:
            parsed = parse_status(status)
            query = query.filter(WebOrder.status == parsed.value)
            if parsed == WebOrderStatus.PENDING:
                return query.order_by(WebOrder.created_at.asc()).limit(limit).all()
        return query.order_by(WebOrder.created_at.desc()).limit(limit).all()

    @staticmethod
    def update_status(
        db: Session,
        order_id: UUID,
        new_status,
        actor_id: Optional[UUID] = None,
        payment_method: Optional[str] = None,
        allowed_from: Optional[Iterable[str]] = None,
    ) -> WebOrder:
        """
        Move an order to new_status, applying its reservation side effects.

        allowed_from restricts the source states, checked under the order lock.
        """
        target = parse_status(new_status)
        if payment_method and target != WebOrderStatus.PAID:
            raise ValidationError("payment_method is only accepted when moving to PAID", field="payment_method")
        method = parse_payment_method(payment_method) if payment_method else None

        with transaction(db):
            order = db.query(WebOrder).filter(WebOrder.id == order_id).with_for_update().first()
            if order is None:
                raise EntityNotFound("WebOrder", order_id)

            current = WebOrderStatus(order.status)
            if current in TERMINAL_STATUSES:
                logger.warning(f"Web order {order_id} is already {current.value}, refusing {target.value}")
                raise InvalidStateTransition("WebOrder", order_id, current.value, target.value)
            if allowed_from is not None and current.value not in set(allowed_from):
                logger.info(f"Web order {order_id} moved to {current.value} meanwhile, skipping {target.value}")
                raise InvalidStateTransition("WebOrder", order_id, current.value, target.value)

            if target == WebOrderStatus.DELIVERED and actor_id is None:
                raise ValidationError("user_id is required to deliver an order", field="user_id")
            if actor_id is not None:
                resolve_actor(db, actor_id)

            if target == WebOrderStatus.DELIVERED:
                WebOrderService._consume_reservations(db, order, actor_id)

            elif target == WebOrderStatus.CANCELLED:
                WebOrderService._release_reservations(db, order)

            elif target == WebOrderStatus.PAID and method is not None and not WebOrderService._has_payment(db, order):
                db.add(Payment(
                    sale_type=SaleType.WEB_ORDER.value,
                    reference_id=order.id,
                    method=method.value,
                    amount=order.total_amount,
                ))

            db.add(AuditLog(
                table_name="web_order",
                record_id=str(order.id),
                action="STATUS_CHANGE",
                performed_by=actor_id,
                before_data={"status": current.value},
                after_data={"status": target.value},
            ))

            # Status is written last, after every side effect succeeded
            order.status = target.value

        logger.info(f"Web order {order_id}: {current.value} -> {target.value}")
        return order

    @staticmethod
    def _has_payment(db: Session, order: WebOrder) -> bool:
        return db.query(Payment).filter(
            Payment.sale_type == SaleType.WEB_ORDER.value,
            Payment.reference_id == order.id,
        ).first() is not None

    @staticmethod
    def _consume_reservations(db: Session, order: WebOrder, actor_id: UUID) -> None:
        reservations = ReservationService.active_reservations_for_order(db, order.id)
        products = StockService.lock_products(db, [r.product_id for r in reservations])

        for reservation in reservations:
            # The ledger may have moved since the reservation was taken (shrinkage, ...)
            StockService.check_on_hand(db, products[reservation.product_id], reservation.quantity)
            StockService.record_sale_issue(
                db,
                product_id=reservation.product_id,
                quantity=reservation.quantity,
                actor_id=actor_id,
                notes=f"Web order: {order.id}",
            )
            ReservationService.consume(reservation)
        db.flush()

    @staticmethod
    def _release_reservations(db: Session, order: WebOrder) -> None:
        for reservation in ReservationService.active_reservations_for_order(db, order.id):
            ReservationService.release(reservation)
        db.flush()
