"""
Reservation Sweep Scheduler - cancels web orders whose stock holds expired

Only runs when RESERVATION_TTL_MINUTES > 0 (otherwise reservations carry no
expiry). Expired orders are cancelled through WebOrderService.update_status,
which releases their reservations.
"""
from datetime import datetime
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from minimarket.core import settings
from minimarket.core.database import SessionLocal
from minimarket.core.exceptions import MiniMarketError
from minimarket.models import WebOrder, WebOrderStatus
from minimarket.services import ReservationService, WebOrderService

logger = logging.getLogger(__name__)

# States in which an order is still only holding stock
SWEEPABLE_STATUSES = frozenset({WebOrderStatus.PENDING.value, WebOrderStatus.RESERVED.value})

# Global scheduler instance
_scheduler = None


def sweep_expired_reservations(db: Session, now: Optional[datetime] = None) -> List[str]:
    """Cancel every PENDING/RESERVED order holding an expired reservation. Returns cancelled order ids."""
    order_ids = []
    for reservation in ReservationService.expired_reservations(db, now):
        if reservation.web_order_id not in order_ids:
            order_ids.append(reservation.web_order_id)

    cancelled = []
    for order_id in order_ids:
        order = db.get(WebOrder, order_id)
        if order is None or order.status not in SWEEPABLE_STATUSES:
            # Paid/prepared orders keep their hold until someone acts on them
            logger.info(f"Skipping expired reservations of order {order_id} (status={order.status if order else None})")
            continue
        try:
            WebOrderService.update_status(
                db, order_id, WebOrderStatus.CANCELLED, allowed_from=SWEEPABLE_STATUSES
            )
            cancelled.append(str(order_id))
        except MiniMarketError as e:
            logger.error(f"Could not cancel expired order {order_id}: {e.code} {e.message}")

    if cancelled:
        logger.info(f"Reservation sweep cancelled {len(cancelled)} orders")
    return cancelled


class ReservationSweepScheduler:
    """
    Runs the reservation sweep on an interval
    """

    def __init__(self):
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        self.scheduler = AsyncIOScheduler()
        self.is_running = False

    def start(self):
        """Start the scheduler"""
        if self.is_running:
            return

        from apscheduler.triggers.interval import IntervalTrigger
        self.scheduler.add_job(
            func=self._run_sweep,
            trigger=IntervalTrigger(minutes=settings.RESERVATION_SWEEP_INTERVAL_MINUTES),
            id="reservation_sweep",
            name="Expired reservation sweep",
            replace_existing=True,
            max_instances=1,  # Prevent overlapping sweeps
        )
        self.scheduler.start()
        self.is_running = True
        logger.info(f"Reservation sweep scheduled every {settings.RESERVATION_SWEEP_INTERVAL_MINUTES} minutes")

    def stop(self):
        """Stop the scheduler"""
        if self.is_running:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Reservation sweep scheduler stopped")

    def _run_sweep(self):
        db = SessionLocal()
        try:
            sweep_expired_reservations(db)
        except Exception as e:
            logger.error(f"Reservation sweep failed: {e}")
        finally:
            db.close()


# ========== Global Functions ==========

def get_scheduler() -> ReservationSweepScheduler:
    """Get or create the global scheduler instance"""
    global _scheduler
    if _scheduler is None:
        _scheduler = ReservationSweepScheduler()
    return _scheduler


def start_scheduler():
    """Start the global scheduler (no-op when reservations never expire)"""
    if not settings.SCHEDULER_ENABLED or settings.RESERVATION_TTL_MINUTES <= 0:
        logger.info("Reservation sweep disabled")
        return
    get_scheduler().start()


def stop_scheduler():
    """Stop the global scheduler"""
    global _scheduler
    if _scheduler:
        _scheduler.stop()
        _scheduler = None


if __name__ == "__main__":
    """
    Run one sweep standalone:
    python -m minimarket.jobs.reservation_sweep
    """
    from minimarket.core.logging import setup_logging

    setup_logging()
    db = SessionLocal()
    try:
        print(f"Cancelled orders: {sweep_expired_reservations(db)}")
    finally:
        db.close()
