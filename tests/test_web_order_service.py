import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from minimarket.core import settings
from minimarket.core.exceptions import (
    EntityNotFound, InsufficientStock, InvalidStateTransition, Unauthorized, ValidationError,
)
from minimarket.jobs import sweep_expired_reservations
from minimarket.models import (
    AuditLog, InventoryMovement, MovementReason, MovementType, Payment, ReservationStatus, SaleType, StockReservation,
    WebOrderStatus,
)
from minimarket.models.base import utcnow
from minimarket.schemas import LocalSaleCreate, WebOrderCreate
from minimarket.services import LedgerService, ReservationService, SaleService, StockService, WebOrderService

from conftest import make_product, make_user, stock_up


def order_for(*lines, name="Ana Perez", phone="+56912345678"):
    return WebOrderCreate(
        customer_name=name,
        customer_phone=phone,
        items=[{"product_id": product.id, "quantity": qty} for product, qty in lines],
    )


@pytest.fixture
def reserved_order(db, product, user):
    """On hand 5, one PENDING web order holding all 5"""
    stock_up(db, product, 5, user)
    return WebOrderService.create_order(db, order_for((product, 5)))


def movement_count(db):
    return db.query(InventoryMovement).count()


def test_create_order_reserves_stock(db, product, user, reserved_order):
    assert reserved_order.status == WebOrderStatus.PENDING.value
    assert reserved_order.total_amount == Decimal("5000")

    level = StockService.get_stock_level(db, product.id)
    assert (level.stock_on_hand, level.reserved, level.available) == (5, 5, 0)

    reservations = ReservationService.active_reservations_for_order(db, reserved_order.id)
    assert [(r.product_id, r.quantity) for r in reservations] == [(product.id, 5)]


def test_local_sale_cannot_take_reserved_units(db, product, user, reserved_order):
    data = LocalSaleCreate(items=[{"product_id": product.id, "quantity": 1}])
    with pytest.raises(InsufficientStock):
        SaleService.create_local_sale(db, data, actor_id=user.id)
    assert StockService.get_stock_on_hand(db, product.id) == 5


def test_second_order_cannot_oversell(db, product, reserved_order):
    with pytest.raises(InsufficientStock):
        WebOrderService.create_order(db, order_for((product, 1), name="Luis"))
    assert StockService.get_reserved(db, product.id) == 5


def test_cancel_releases_reservations(db, product, reserved_order):
    before = movement_count(db)

    order = WebOrderService.update_status(db, reserved_order.id, "CANCELLED")

    assert order.status == WebOrderStatus.CANCELLED.value
    reservation = db.query(StockReservation).one()
    assert reservation.status == ReservationStatus.RELEASED.value
    assert reservation.closed_at is not None
    assert StockService.get_reserved(db, product.id) == 0
    assert StockService.get_available(db, product.id) == 5
    assert movement_count(db) == before


def test_deliver_consumes_reservations(db, product, user, reserved_order):
    order = WebOrderService.update_status(db, reserved_order.id, "DELIVERED", actor_id=user.id)

    assert order.status == WebOrderStatus.DELIVERED.value
    outs = db.query(InventoryMovement).filter(InventoryMovement.movement_type == MovementType.OUT.value).all()
    assert len(outs) == 1
    assert outs[0].quantity == 5
    assert outs[0].notes == f"Web order: {order.id}"
    assert outs[0].actor_id == user.id

    assert db.query(StockReservation).one().status == ReservationStatus.CONSUMED.value
    level = StockService.get_stock_level(db, product.id)
    assert (level.stock_on_hand, level.reserved, level.available) == (0, 0, 0)


def test_full_lifecycle(db, product, user, reserved_order):
    for status in ("RESERVED", "PAID", "PREPARED", "DELIVERED"):
        WebOrderService.update_status(db, reserved_order.id, status, actor_id=user.id)

    assert WebOrderService.get_order(db, reserved_order.id).status == "DELIVERED"
    trail = db.query(AuditLog).filter(AuditLog.record_id == str(reserved_order.id)).all()
    assert sorted(a.after_data["status"] for a in trail) == ["DELIVERED", "PAID", "PREPARED", "RESERVED"]


def test_deliver_requires_actor(db, reserved_order):
    with pytest.raises(ValidationError):
        WebOrderService.update_status(db, reserved_order.id, "DELIVERED")
    with pytest.raises(EntityNotFound):
        WebOrderService.update_status(db, reserved_order.id, "DELIVERED", actor_id=uuid.uuid4())

    assert WebOrderService.get_order(db, reserved_order.id).status == "PENDING"
    assert db.query(StockReservation).one().status == ReservationStatus.ACTIVE.value


@pytest.mark.parametrize("terminal", ["CANCELLED", "DELIVERED"])
@pytest.mark.parametrize("target", ["PAID", "CANCELLED", "DELIVERED"])
def test_terminal_orders_do_not_move(db, user, reserved_order, terminal, target):
    WebOrderService.update_status(db, reserved_order.id, terminal, actor_id=user.id)
    before = movement_count(db)

    with pytest.raises(InvalidStateTransition) as exc:
        WebOrderService.update_status(db, reserved_order.id, target, actor_id=user.id)
    assert exc.value.current == terminal
    assert exc.value.target == target
    assert movement_count(db) == before


def test_unknown_order_and_status(db, reserved_order):
    with pytest.raises(EntityNotFound):
        WebOrderService.update_status(db, uuid.uuid4(), "PAID")
    with pytest.raises(ValidationError):
        WebOrderService.update_status(db, reserved_order.id, "SHIPPED")


def test_requested_is_pending(db, reserved_order):
    order = WebOrderService.update_status(db, reserved_order.id, "requested")
    assert order.status == WebOrderStatus.PENDING.value


def test_delivery_rechecks_on_hand(db, product, user, reserved_order):
    # Simulate shrinkage that bypassed the reservation check
    LedgerService.append(db, product.id, MovementType.ADJUST, MovementReason.SHRINKAGE, -2, user.id)
    db.commit()

    with pytest.raises(InsufficientStock):
        WebOrderService.update_status(db, reserved_order.id, "DELIVERED", actor_id=user.id)

    assert WebOrderService.get_order(db, reserved_order.id).status == "PENDING"
    assert db.query(StockReservation).one().status == ReservationStatus.ACTIVE.value
    assert StockService.get_stock_on_hand(db, product.id) == 3


def test_paid_with_method_records_payment(db, reserved_order):
    WebOrderService.update_status(db, reserved_order.id, "PAID", payment_method="transfer")

    payment = db.query(Payment).one()
    assert payment.sale_type == SaleType.WEB_ORDER.value
    assert payment.reference_id == reserved_order.id
    assert payment.method == "TRANSFER"
    assert payment.amount == Decimal("5000")


def test_repeated_paid_records_one_payment(db, reserved_order):
    WebOrderService.update_status(db, reserved_order.id, "PAID", payment_method="CASH")
    WebOrderService.update_status(db, reserved_order.id, "PAID", payment_method="CASH")

    assert db.query(Payment).count() == 1
    assert db.query(Payment).one().amount == Decimal("5000")


@pytest.mark.parametrize("target", ["RESERVED", "CANCELLED"])
def test_payment_method_only_with_paid(db, reserved_order, target):
    with pytest.raises(ValidationError):
        WebOrderService.update_status(db, reserved_order.id, target, payment_method="CASH")

    assert WebOrderService.get_order(db, reserved_order.id).status == "PENDING"
    assert db.query(Payment).count() == 0


def test_inactive_actor_cannot_move_orders(db, reserved_order):
    former = make_user(db, email="former@minimarket.cl", active=False)

    with pytest.raises(Unauthorized):
        WebOrderService.update_status(db, reserved_order.id, "DELIVERED", actor_id=former.id)
    with pytest.raises(Unauthorized):
        WebOrderService.update_status(db, reserved_order.id, "RESERVED", actor_id=former.id)

    assert WebOrderService.get_order(db, reserved_order.id).status == "PENDING"
    assert db.query(StockReservation).one().status == ReservationStatus.ACTIVE.value


def test_allowed_from_is_checked_against_current_status(db, product, reserved_order):
    WebOrderService.update_status(db, reserved_order.id, "PAID")

    with pytest.raises(InvalidStateTransition) as exc:
        WebOrderService.update_status(db, reserved_order.id, "CANCELLED", allowed_from={"PENDING", "RESERVED"})
    assert exc.value.current == "PAID"

    assert WebOrderService.get_order(db, reserved_order.id).status == "PAID"
    assert StockService.get_reserved(db, product.id) == 5


def test_paid_without_method_is_status_only(db, reserved_order):
    WebOrderService.update_status(db, reserved_order.id, "PAID")
    assert db.query(Payment).count() == 0


def test_multi_item_order_is_all_or_nothing(db, user):
    milk = make_product(db, "Leche")
    bread = make_product(db, "Pan", price=300)
    stock_up(db, milk, 3, user)
    stock_up(db, bread, 1, user)

    with pytest.raises(InsufficientStock):
        WebOrderService.create_order(db, order_for((milk, 2), (bread, 2)))

    assert db.query(StockReservation).count() == 0
    assert WebOrderService.list_orders(db) == []


@pytest.mark.parametrize("changes", [{"name": " "}, {"phone": None}])
def test_customer_fields_required(db, product, user, changes):
    stock_up(db, product, 1, user)
    with pytest.raises(ValidationError):
        WebOrderService.create_order(db, order_for((product, 1), **changes))


def test_order_requires_items(db):
    with pytest.raises(ValidationError):
        WebOrderService.create_order(db, order_for())


def test_pending_orders_listed_oldest_first(db, product, user):
    stock_up(db, product, 10, user)
    first = WebOrderService.create_order(db, order_for((product, 1), name="Primera"))
    second = WebOrderService.create_order(db, order_for((product, 1), name="Segunda"))
    WebOrderService.update_status(db, second.id, "RESERVED")
    third = WebOrderService.create_order(db, order_for((product, 1), name="Tercera"))

    pending = WebOrderService.list_orders(db, status="PENDING")
    assert [o.id for o in pending] == [first.id, third.id]
    assert len(WebOrderService.list_orders(db)) == 3


def test_release_and_consume_are_idempotent(db, reserved_order):
    reservation = db.query(StockReservation).one()

    assert ReservationService.release(reservation) is True
    assert ReservationService.release(reservation) is False
    with pytest.raises(InvalidStateTransition):
        ReservationService.consume(reservation)
    db.rollback()


def test_consume_is_idempotent_and_blocks_release(db, reserved_order):
    reservation = db.query(StockReservation).one()

    assert ReservationService.consume(reservation) is True
    assert ReservationService.consume(reservation) is False
    with pytest.raises(InvalidStateTransition):
        ReservationService.release(reservation)
    assert reservation.status == ReservationStatus.CONSUMED.value
    db.rollback()


def test_sweep_cancels_expired_orders(db, product, user, monkeypatch):
    monkeypatch.setattr(settings, "RESERVATION_TTL_MINUTES", 30)
    stock_up(db, product, 4, user)
    stale = WebOrderService.create_order(db, order_for((product, 2), name="Stale"))
    paid = WebOrderService.create_order(db, order_for((product, 2), name="Paid"))
    WebOrderService.update_status(db, paid.id, "PAID")

    assert sweep_expired_reservations(db) == []

    cancelled = sweep_expired_reservations(db, now=utcnow() + timedelta(hours=1))

    assert cancelled == [str(stale.id)]
    assert WebOrderService.get_order(db, stale.id).status == "CANCELLED"
    assert WebOrderService.get_order(db, paid.id).status == "PAID"
    assert StockService.get_reserved(db, product.id) == 2
