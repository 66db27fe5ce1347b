import uuid

import pytest

from minimarket.core.exceptions import EntityNotFound, InsufficientStock, ValidationError
from minimarket.models import InventoryMovement, MovementType
from minimarket.schemas import AdjustmentCreate, PurchaseCreate, WebOrderCreate
from minimarket.services import StockService, WebOrderService

from conftest import stock_up


def adjust(db, product, user, quantity, reason="shrinkage"):
    return StockService.register_adjustment(
        db, AdjustmentCreate(product_id=product.id, quantity=quantity, reason=reason), actor_id=user.id
    )


def test_purchase_adds_stock(db, product, user):
    assert StockService.get_stock_on_hand(db, product.id) == 0

    movement = stock_up(db, product, 30, user, document_number="F-1")

    assert movement.movement_type == MovementType.IN.value
    assert movement.reason == "purchase"
    assert movement.document_number == "F-1"
    assert StockService.get_stock_on_hand(db, product.id) == 30
    assert StockService.get_available(db, product.id) == 30


@pytest.mark.parametrize("changes,field", [
    ({"quantity": 0}, "quantity"),
    ({"quantity": -3}, "quantity"),
    ({"document_type": "  "}, "document_type"),
    ({"document_number": None}, "document_number"),
])
def test_purchase_validation(db, product, user, changes, field):
    data = {"product_id": product.id, "quantity": 5, "document_type": "FACTURA", "document_number": "F-9"}
    data.update(changes)

    with pytest.raises(ValidationError) as exc:
        StockService.register_purchase(db, PurchaseCreate(**data), actor_id=user.id)
    assert exc.value.field == field
    assert db.query(InventoryMovement).count() == 0


def test_purchase_for_unknown_product(db, user):
    data = PurchaseCreate(product_id=uuid.uuid4(), quantity=1, document_type="FACTURA", document_number="F-1")
    with pytest.raises(EntityNotFound):
        StockService.register_purchase(db, data, actor_id=user.id)


def test_adjustment_cannot_make_stock_negative(db, product, user):
    stock_up(db, product, 10, user)

    with pytest.raises(InsufficientStock) as exc:
        adjust(db, product, user, -15)
    assert exc.value.product_id == product.id
    assert exc.value.available == 10

    assert StockService.get_stock_on_hand(db, product.id) == 10
    assert db.query(InventoryMovement).filter(InventoryMovement.movement_type == MovementType.ADJUST.value).count() == 0


@pytest.mark.parametrize("quantity", [5, -5])
@pytest.mark.parametrize("reason", ["purchase", "sale", "SALE"])
def test_adjustment_rejects_automatic_reasons(db, product, user, reason, quantity):
    stock_up(db, product, 10, user)

    with pytest.raises(ValidationError) as exc:
        adjust(db, product, user, quantity, reason=reason)
    assert exc.value.field == "reason"
    assert StockService.get_stock_on_hand(db, product.id) == 10


def test_adjustment_rejects_zero_and_unknown_reason(db, product, user):
    with pytest.raises(ValidationError):
        adjust(db, product, user, 0)
    with pytest.raises(ValidationError):
        adjust(db, product, user, 3, reason="gift")
    with pytest.raises(ValidationError):
        adjust(db, product, user, 3, reason=None)


def test_adjustment_both_directions(db, product, user):
    stock_up(db, product, 10, user)

    adjust(db, product, user, -4, reason="damage")
    adjust(db, product, user, 2, reason="correction")

    assert StockService.get_stock_on_hand(db, product.id) == 8


def test_adjustment_cannot_eat_into_reserved_stock(db, product, user):
    stock_up(db, product, 5, user)
    WebOrderService.create_order(db, WebOrderCreate(
        customer_name="Ana", customer_phone="+56911111111",
        items=[{"product_id": product.id, "quantity": 4}],
    ))

    # On hand would stay at 3, but only 1 unit is not promised to the order
    with pytest.raises(InsufficientStock):
        adjust(db, product, user, -2)

    adjust(db, product, user, -1)
    level = StockService.get_stock_level(db, product.id)
    assert (level.stock_on_hand, level.reserved, level.available) == (4, 4, 0)


def test_stock_level_for_unknown_product(db):
    with pytest.raises(EntityNotFound):
        StockService.get_stock_level(db, uuid.uuid4())
