"""
Ledger Service - append-only stock movement ledger

Stock on hand is never stored as ground truth: it is the aggregate of every
movement for the product. IN and ADJUST add their quantity (ADJUST may be
negative), OUT subtracts it.

Nothing here commits. Callers own the transaction (see StockService).
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from minimarket.core.exceptions import EntityNotFound, ValidationError
from minimarket.models import AppUser, InventoryMovement, MovementReason, MovementType, Product, StockBalance

logger = logging.getLogger(__name__)

# Signed contribution of one ledger row
_SIGNED_QUANTITY = case(
    (InventoryMovement.movement_type == MovementType.OUT.value, -InventoryMovement.quantity),
    else_=InventoryMovement.quantity,
)


class LedgerService:
    """Movement ledger primitives"""

    @staticmethod
    def append(
        db: Session,
        product_id: UUID,
        movement_type: MovementType,
        reason: MovementReason,
        quantity: int,
        actor_id: UUID,
        document_type: Optional[str] = None,
        document_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> InventoryMovement:
        """Append one movement and move the running balance with it"""
        movement_type = MovementType(movement_type)
        reason = MovementReason(reason)

        if movement_type in (MovementType.IN, MovementType.OUT) and quantity <= 0:
            raise ValidationError(f"{movement_type.value} movements carry a positive quantity", field="quantity")
        if movement_type == MovementType.ADJUST and quantity == 0:
            raise ValidationError("ADJUST movements carry a non-zero delta", field="quantity")

        if db.get(Product, product_id) is None:
            raise EntityNotFound("Product", product_id)
        if actor_id is None or db.get(AppUser, actor_id) is None:
            raise EntityNotFound("User", actor_id)

        movement = InventoryMovement(
            product_id=product_id,
            movement_type=movement_type.value,
            reason=reason.value,
            quantity=quantity,
            document_type=document_type,
            document_number=document_number,
            notes=notes,
            actor_id=actor_id,
        )
        db.add(movement)
        LedgerService._apply_to_balance(db, product_id, movement.signed_quantity)
        db.flush()

        logger.debug(f"Ledger append: {movement_type.value}/{reason.value} qty={quantity} product={product_id}")
        return movement

    @staticmethod
    def _apply_to_balance(db: Session, product_id: UUID, delta: int) -> StockBalance:
        balance = db.get(StockBalance, product_id, with_for_update=True)
        if balance is None:
            balance = StockBalance(product_id=product_id, on_hand=0)
            db.add(balance)
        balance.on_hand = (balance.on_hand or 0) + delta
        return balance

    @staticmethod
    def stock_on_hand(db: Session, product_id: UUID) -> int:
        """Live aggregate over the ledger (0 when the product has no movements)"""
        total = db.query(func.coalesce(func.sum(_SIGNED_QUANTITY), 0))\
            .filter(InventoryMovement.product_id == product_id)\
            .scalar()
        return int(total or 0)

    @staticmethod
    def ledger_totals(db: Session) -> dict:
        """Stock on hand for every product that has movements"""
        rows = db.query(InventoryMovement.product_id, func.sum(_SIGNED_QUANTITY))\
            .group_by(InventoryMovement.product_id)\
            .all()
        return {product_id: int(total or 0) for product_id, total in rows}

    @staticmethod
    def movements_for(
        db: Session,
        product_id: UUID,
        movement_type: Optional[MovementType] = None,
        limit: Optional[int] = None,
    ) -> List[InventoryMovement]:
        """Ledger history for one product, newest first"""
        query = db.query(InventoryMovement).filter(InventoryMovement.product_id == product_id)

        if movement_type:
            query = query.filter(InventoryMovement.movement_type == MovementType(movement_type).value)

        query = query.order_by(InventoryMovement.created_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def recent_movements(
        db: Session,
        movement_type: Optional[MovementType] = None,
        limit: int = 50,
    ) -> List[InventoryMovement]:
        """Get recent stock movements across products"""
        query = db.query(InventoryMovement)

        if movement_type:
            query = query.filter(InventoryMovement.movement_type == MovementType(movement_type).value)

        return query.order_by(InventoryMovement.created_at.desc()).limit(limit).all()
