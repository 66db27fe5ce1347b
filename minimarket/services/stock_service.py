"""
Stock Service - Business Logic for Inventory

Single authority over stock-affecting writes. Every read-then-write runs in
one transaction that first locks the product rows involved, then recomputes
availability under that lock:

    available = stock_on_hand (ledger) - reserved (ACTIVE reservations)
"""
import logging
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from minimarket.core import transaction
from minimarket.core.exceptions import EntityNotFound, InsufficientStock, ValidationError
from minimarket.models import (
    AUTOMATIC_REASONS, InventoryMovement, MovementReason, MovementType, Product, StockBalance,
)
from minimarket.schemas.stock import AdjustmentCreate, BalanceDrift, PurchaseCreate, StockLevel
from .ledger_service import LedgerService
from .reservation_service import ReservationService

logger = logging.getLogger(__name__)


class StockService:
    """Stock/Inventory business logic"""

    # ===================== READS =====================

    @staticmethod
    def get_stock_on_hand(db: Session, product_id: UUID) -> int:
        return LedgerService.stock_on_hand(db, product_id)

    @staticmethod
    def get_reserved(db: Session, product_id: UUID) -> int:
        return ReservationService.reserved_quantity(db, product_id)

    @staticmethod
    def get_available(db: Session, product_id: UUID) -> int:
        on_hand = StockService.get_stock_on_hand(db, product_id)
        reserved = StockService.get_reserved(db, product_id)
        available = on_hand - reserved
        if available < 0:
            # Never clamped: a negative read means the locking discipline was bypassed
            logger.error(f"Negative availability observed for product {product_id}: on_hand={on_hand}, reserved={reserved}")
        return available

    @staticmethod
    def get_stock_level(db: Session, product_id: UUID) -> StockLevel:
        """On hand, reserved and available for one product"""
        if db.get(Product, product_id) is None:
            raise EntityNotFound("Product", product_id)
        on_hand = StockService.get_stock_on_hand(db, product_id)
        reserved = StockService.get_reserved(db, product_id)
        return StockLevel(
            product_id=product_id,
            stock_on_hand=on_hand,
            reserved=reserved,
            available=on_hand - reserved,
        )

    @staticmethod
    def get_movements(db: Session, product_id: UUID) -> List[InventoryMovement]:
        if db.get(Product, product_id) is None:
            raise EntityNotFound("Product", product_id)
        return LedgerService.movements_for(db, product_id)

    # ===================== LOCKING & CHECKS =====================

    @staticmethod
    def lock_products(db: Session, product_ids: Iterable[UUID]) -> Dict[UUID, Product]:
        """
        Resolve and row-lock products until the transaction ends.

        Locks are taken in ascending id order so two operations touching the
        same products cannot deadlock each other.
        """
        wanted = sorted(set(product_ids), key=str)
        if not wanted:
            return {}

        products = db.query(Product)\
            .filter(Product.id.in_(wanted))\
            .order_by(Product.id)\
            .with_for_update()\
            .all()
        found = {p.id: p for p in products}

        for product_id in wanted:
            if product_id not in found:
                raise EntityNotFound("Product", product_id)
        return found

    @staticmethod
    def check_availability(db: Session, product: Product, requested_qty: int) -> int:
        """Raise InsufficientStock unless requested_qty fits in available stock"""
        available = StockService.get_available(db, product.id)
        if requested_qty > available:
            logger.warning(f"Insufficient stock for {product.name}: requested={requested_qty}, available={available}")
            raise InsufficientStock(product.id, product.name, requested_qty, available)
        return available

    @staticmethod
    def check_on_hand(db: Session, product: Product, quantity: int) -> int:
        """Raise InsufficientStock unless on hand covers quantity (reservation already counted)"""
        on_hand = StockService.get_stock_on_hand(db, product.id)
        if on_hand - quantity < 0:
            logger.warning(f"On-hand stock no longer covers {product.name}: needed={quantity}, on_hand={on_hand}")
            raise InsufficientStock(product.id, product.name, quantity, on_hand)
        return on_hand

    # ===================== WRITES =====================

    @staticmethod
    def register_purchase(db: Session, data: PurchaseCreate, actor_id: Optional[UUID] = None) -> InventoryMovement:
        """Record goods received from a supplier (IN / purchase)"""
        actor_id = actor_id or data.user_id

        if data.quantity is None or data.quantity <= 0:
            raise ValidationError("quantity must be positive for purchases", field="quantity")
        if not (data.document_type or "").strip():
            raise ValidationError("document_type is required for purchases", field="document_type")
        if not (data.document_number or "").strip():
            raise ValidationError("document_number is required for purchases", field="document_number")
        if actor_id is None:
            raise ValidationError("user_id is required", field="user_id")

        with transaction(db):
            StockService.lock_products(db, [data.product_id])
            movement = LedgerService.append(
                db,
                product_id=data.product_id,
                movement_type=MovementType.IN,
                reason=MovementReason.PURCHASE,
                quantity=data.quantity,
                actor_id=actor_id,
                document_type=data.document_type.strip(),
                document_number=data.document_number.strip(),
                notes=data.notes,
            )

        logger.info(f"Purchase registered: product={data.product_id} qty={data.quantity} doc={data.document_type} {data.document_number}")
        return movement

    @staticmethod
    def register_adjustment(db: Session, data: AdjustmentCreate, actor_id: Optional[UUID] = None) -> InventoryMovement:
        """Manual correction of stock (ADJUST, signed delta)"""
        actor_id = actor_id or data.user_id

        if not data.reason:
            raise ValidationError("reason is required", field="reason")
        try:
            reason = MovementReason(str(getattr(data.reason, "value", data.reason)).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown adjustment reason: {data.reason}", field="reason")
        if reason in AUTOMATIC_REASONS:
            raise ValidationError("Adjustment reason cannot be purchase or sale", field="reason")
        if not data.quantity:
            raise ValidationError("quantity cannot be 0 for adjustments", field="quantity")
        if actor_id is None:
            raise ValidationError("user_id is required", field="user_id")

        with transaction(db):
            product = StockService.lock_products(db, [data.product_id])[data.product_id]

            on_hand = StockService.get_stock_on_hand(db, product.id)
            projected = on_hand + data.quantity
            if projected < 0:
                logger.warning(f"Adjustment rejected for {product.name}: on_hand={on_hand}, delta={data.quantity}")
                raise InsufficientStock(
                    product.id, product.name, -data.quantity, on_hand,
                    message=f"Stock for {product.name} cannot go negative: on_hand={on_hand}, delta={data.quantity}",
                )
            if data.quantity < 0:
                # A decrease must also leave room for every active reservation
                StockService.check_availability(db, product, -data.quantity)

            movement = LedgerService.append(
                db,
                product_id=product.id,
                movement_type=MovementType.ADJUST,
                reason=reason,
                quantity=data.quantity,
                actor_id=actor_id,
                notes=data.notes,
            )

        logger.info(f"Adjustment registered: product={data.product_id} delta={data.quantity} reason={reason.value}")
        return movement

    @staticmethod
    def record_sale_issue(
        db: Session,
        product_id: UUID,
        quantity: int,
        actor_id: UUID,
        notes: Optional[str] = None,
    ) -> InventoryMovement:
        """
        OUT / sale movement for a local sale or a delivered web order.

        Runs inside the caller's transaction, after the caller has locked the
        product and checked stock.
        """
        return LedgerService.append(
            db,
            product_id=product_id,
            movement_type=MovementType.OUT,
            reason=MovementReason.SALE,
            quantity=quantity,
            actor_id=actor_id,
            notes=notes,
        )

    # ===================== PROJECTION =====================

    @staticmethod
    def reconcile_balances(db: Session, fix: bool = False) -> List[BalanceDrift]:
        """
        Compare the stock_balance projection with the ledger aggregate.

        Returns every product whose projection differs; with fix=True the
        projection is rewritten from the ledger.
        """
        with transaction(db):
            ledger = LedgerService.ledger_totals(db)
            balances = {b.product_id: b for b in db.query(StockBalance).with_for_update().all()}

            drift = []
            for product_id in set(ledger) | set(balances):
                expected = ledger.get(product_id, 0)
                balance = balances.get(product_id)
                projected = balance.on_hand if balance else 0
                if projected == expected:
                    continue

                drift.append(BalanceDrift(product_id=product_id, projected=projected, ledger=expected))
                logger.warning(f"Stock balance drift for product {product_id}: projected={projected}, ledger={expected}")

                if fix:
                    if balance is None:
                        db.add(StockBalance(product_id=product_id, on_hand=expected))
                    else:
                        balance.on_hand = expected

        if drift:
            logger.info(f"Reconciliation found {len(drift)} drifted balances (fixed={fix})")
        return drift
