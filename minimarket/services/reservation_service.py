"""
Reservation Service - quantity held against stock for pending web orders
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from minimarket.core.config import settings
from minimarket.core.exceptions import InvalidStateTransition, ValidationError
from minimarket.models import ReservationStatus, StockReservation
from minimarket.models.base import utcnow

logger = logging.getLogger(__name__)


class ReservationService:
    """
    Reservation lifecycle: ACTIVE -> CONSUMED (delivered) or ACTIVE -> RELEASED
    (cancelled). Both end states are terminal.

    Availability is not checked here; the caller checks it under the same
    product lock before calling reserve().
    """

    @staticmethod
    def reserve(
        db: Session,
        product_id: UUID,
        web_order_id: UUID,
        quantity: int,
        expires_at: Optional[datetime] = None,
    ) -> StockReservation:
        """Create an ACTIVE reservation"""
        if quantity < 1:
            raise ValidationError("Reservation quantity must be at least 1", field="quantity")

        if expires_at is None and settings.RESERVATION_TTL_MINUTES > 0:
            expires_at = utcnow() + timedelta(minutes=settings.RESERVATION_TTL_MINUTES)

        reservation = StockReservation(
            product_id=product_id,
            web_order_id=web_order_id,
            quantity=quantity,
            status=ReservationStatus.ACTIVE.value,
            expires_at=expires_at,
        )
        db.add(reservation)
        db.flush()
        return reservation

    @staticmethod
    def reserved_quantity(db: Session, product_id: UUID) -> int:
        """Sum of ACTIVE reservations for a product"""
        total = db.query(func.coalesce(func.sum(StockReservation.quantity), 0)).filter(
            StockReservation.product_id == product_id,
            StockReservation.status == ReservationStatus.ACTIVE.value,
        ).scalar()
        return int(total or 0)

    @staticmethod
    def active_reservations_for_order(db: Session, web_order_id: UUID) -> List[StockReservation]:
        return db.query(StockReservation).filter(
            StockReservation.web_order_id == web_order_id,
            StockReservation.status == ReservationStatus.ACTIVE.value,
        ).order_by(StockReservation.created_at, StockReservation.product_id).all()

    @staticmethod
    def consume(reservation: StockReservation) -> bool:
        """Mark consumed. Returns False when it already was."""
        return ReservationService._close(reservation, ReservationStatus.CONSUMED)

    @staticmethod
    def release(reservation: StockReservation) -> bool:
        """Mark released. Returns False when it already was."""
        return ReservationService._close(reservation, ReservationStatus.RELEASED)

    @staticmethod
    def _close(reservation: StockReservation, target: ReservationStatus) -> bool:
        current = ReservationStatus(reservation.status)
        if current == target:
            return False
        if current != ReservationStatus.ACTIVE:
            raise InvalidStateTransition("StockReservation", reservation.id, current.value, target.value)

        reservation.status = target.value
        reservation.closed_at = utcnow()
        logger.debug(f"Reservation {reservation.id} {current.value} -> {target.value}")
        return True

    @staticmethod
    def expired_reservations(db: Session, now: Optional[datetime] = None) -> List[StockReservation]:
        """ACTIVE reservations past their expiry (read by the sweep job)"""
        now = now or utcnow()
        return db.query(StockReservation).filter(
            StockReservation.status == ReservationStatus.ACTIVE.value,
            StockReservation.expires_at.isnot(None),
            StockReservation.expires_at <= now,
        ).order_by(StockReservation.expires_at).all()
