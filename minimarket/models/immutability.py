"""
Append-only enforcement for ledger rows.

InventoryMovement and Payment are facts: once flushed they are never updated
or deleted. Mapper events catch unit-of-work changes, the session event
catches ORM bulk UPDATE/DELETE statements.
"""
import logging

from sqlalchemy import event
from sqlalchemy.orm import Session

from minimarket.core.exceptions import ImmutableRecordError
from .finance import Payment
from .stock import InventoryMovement

logger = logging.getLogger(__name__)

APPEND_ONLY_MODELS = (InventoryMovement, Payment)


def _refuse_update(mapper, connection, target):
    logger.error(f"Blocked UPDATE on append-only {type(target).__name__} {target.id}")
    raise ImmutableRecordError(type(target).__name__, target.id, "UPDATE")


def _refuse_delete(mapper, connection, target):
    logger.error(f"Blocked DELETE on append-only {type(target).__name__} {target.id}")
    raise ImmutableRecordError(type(target).__name__, target.id, "DELETE")


def _refuse_bulk_write(orm_execute_state):
    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return
    mapper = orm_execute_state.bind_mapper
    if mapper is not None and issubclass(mapper.class_, APPEND_ONLY_MODELS):
        operation = "UPDATE" if orm_execute_state.is_update else "DELETE"
        raise ImmutableRecordError(mapper.class_.__name__, None, operation)


def register_immutability_listeners():
    """Install the listeners once; safe to call repeatedly."""
    for model in APPEND_ONLY_MODELS:
        if not event.contains(model, "before_update", _refuse_update):
            event.listen(model, "before_update", _refuse_update)
        if not event.contains(model, "before_delete", _refuse_delete):
            event.listen(model, "before_delete", _refuse_delete)
    if not event.contains(Session, "do_orm_execute", _refuse_bulk_write):
        event.listen(Session, "do_orm_execute", _refuse_bulk_write)
