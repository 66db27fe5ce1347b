# Jobs Package - Scheduled background tasks
from .reservation_sweep import ReservationSweepScheduler, start_scheduler, stop_scheduler, sweep_expired_reservations

__all__ = ["ReservationSweepScheduler", "start_scheduler", "stop_scheduler", "sweep_expired_reservations"]
