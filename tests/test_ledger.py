import uuid

import pytest

from minimarket.core.exceptions import EntityNotFound, ImmutableRecordError, ValidationError
from minimarket.models import InventoryMovement, MovementReason, MovementType, Payment, StockBalance
from minimarket.schemas import AdjustmentCreate
from minimarket.services import LedgerService, StockService

from conftest import make_product, stock_up


def test_no_movements_means_zero_stock(db, product):
    assert LedgerService.stock_on_hand(db, product.id) == 0
    assert LedgerService.movements_for(db, product.id) == []


def test_stock_is_sum_of_signed_movements(db, product, user):
    LedgerService.append(db, product.id, MovementType.IN, MovementReason.PURCHASE, 10, user.id)
    LedgerService.append(db, product.id, MovementType.OUT, MovementReason.SALE, 3, user.id)
    LedgerService.append(db, product.id, MovementType.ADJUST, MovementReason.SHRINKAGE, -2, user.id)
    LedgerService.append(db, product.id, MovementType.ADJUST, MovementReason.CORRECTION, 4, user.id)
    db.commit()

    assert LedgerService.stock_on_hand(db, product.id) == 9
    assert db.get(StockBalance, product.id).on_hand == 9


@pytest.mark.parametrize("movement_type,quantity", [
    (MovementType.IN, 0),
    (MovementType.IN, -5),
    (MovementType.OUT, -1),
    (MovementType.ADJUST, 0),
])
def test_append_rejects_quantities_breaking_sign_convention(db, product, user, movement_type, quantity):
    with pytest.raises(ValidationError):
        LedgerService.append(db, product.id, movement_type, MovementReason.CORRECTION, quantity, user.id)


def test_append_requires_known_product_and_actor(db, product, user):
    with pytest.raises(EntityNotFound) as exc:
        LedgerService.append(db, uuid.uuid4(), MovementType.IN, MovementReason.PURCHASE, 1, user.id)
    assert exc.value.entity_type == "Product"

    with pytest.raises(EntityNotFound) as exc:
        LedgerService.append(db, product.id, MovementType.IN, MovementReason.PURCHASE, 1, uuid.uuid4())
    assert exc.value.entity_type == "User"


def test_movements_newest_first_and_filtered(db, product, user):
    stock_up(db, product, 5, user, document_number="F-1")
    stock_up(db, product, 7, user, document_number="F-2")
    StockService.register_adjustment(db, _adjustment(product, -1), actor_id=user.id)

    history = LedgerService.movements_for(db, product.id)
    assert [m.quantity for m in history] == [-1, 7, 5]

    adjustments = LedgerService.recent_movements(db, movement_type=MovementType.ADJUST)
    assert len(adjustments) == 1
    assert adjustments[0].reason == MovementReason.SHRINKAGE.value


def test_movement_cannot_be_updated(db, product, user):
    movement = stock_up(db, product, 5, user)

    movement.quantity = 50
    with pytest.raises(ImmutableRecordError):
        db.commit()
    db.rollback()

    assert LedgerService.stock_on_hand(db, product.id) == 5


def test_movement_cannot_be_deleted(db, product, user):
    movement = stock_up(db, product, 5, user)

    db.delete(movement)
    with pytest.raises(ImmutableRecordError):
        db.commit()
    db.rollback()

    with pytest.raises(ImmutableRecordError):
        db.query(InventoryMovement).filter(InventoryMovement.product_id == product.id).delete()
    db.rollback()

    with pytest.raises(ImmutableRecordError):
        db.query(Payment).update({"amount": 0})
    db.rollback()

    assert db.query(InventoryMovement).count() == 1


def test_reconcile_reports_and_repairs_drift(db, user):
    milk = make_product(db, "Leche")
    bread = make_product(db, "Pan")
    stock_up(db, milk, 10, user)
    stock_up(db, bread, 4, user)

    assert StockService.reconcile_balances(db) == []

    db.get(StockBalance, milk.id).on_hand = 3
    db.commit()

    drift = StockService.reconcile_balances(db)
    assert len(drift) == 1
    assert drift[0].product_id == milk.id
    assert (drift[0].projected, drift[0].ledger) == (3, 10)
    # Reporting alone leaves the projection untouched
    assert db.get(StockBalance, milk.id).on_hand == 3

    StockService.reconcile_balances(db, fix=True)
    assert db.get(StockBalance, milk.id).on_hand == 10
    assert StockService.reconcile_balances(db) == []


def _adjustment(product, quantity, reason="shrinkage"):
    return AdjustmentCreate(product_id=product.id, quantity=quantity, reason=reason)
