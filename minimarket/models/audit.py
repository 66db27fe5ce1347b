"""
Audit Log Model
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID, JSONB
from minimarket.core import Base
from .base import UUIDMixin, utcnow

class AuditLog(Base, UUIDMixin):
    """Audit Log for tracking status changes"""
    __tablename__ = "audit_log"
    
    table_name = Column(String(100), nullable=False, index=True)
    record_id = Column(String(50), nullable=False, index=True)
    
    action = Column(String(20), nullable=False)  # STATUS_CHANGE, RECONCILE
    
    performed_by = Column(UUID(as_uuid=True), ForeignKey("app_user.id"))
    performed_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    
    # Before/After data
    before_data = Column(JSON().with_variant(JSONB, "postgresql"))
    after_data = Column(JSON().with_variant(JSONB, "postgresql"))
