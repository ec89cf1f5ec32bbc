"""
Automated Message Log ORM Model
SQLAlchemy model representing the 'automated_message_logs' table.

One row per trigger activation. The dispatch poller moves each row from
'pending' to exactly one terminal state ('sent' or 'failed').
Rows are never deleted by this service (audit trail).
"""
from sqlalchemy import Column, Text, String, Integer, Index, ForeignKey, UniqueConstraint
from app.shared.db.base import Base, UUIDPrimaryKeyMixin, TimestampMixin, UTCDateTime


class AutomatedMessageLog(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """ORM Model for the automated_message_logs table."""
    __tablename__ = "automated_message_logs"

    # ============================================
    # REFERENCES
    # ============================================
    trigger_id = Column(
        String(36),
        ForeignKey("column_message_triggers.id", ondelete="SET NULL"),
        nullable=True
    )
    lead_id = Column(String(36), nullable=False)
    user_id = Column(String(36), nullable=False)

    # ============================================
    # MESSAGE
    # ============================================
    message_content = Column(Text, nullable=False)   # Rendered text, sent verbatim
    whatsapp_number = Column(Text, nullable=False)   # Destination phone as given by the CRM
    instance_name = Column(Text, nullable=False)     # WhatsApp connection used to send

    # ============================================
    # DELIVERY STATUS
    # ============================================
    status = Column(Text, nullable=False, default="pending")  # pending / sent / failed
    scheduled_for = Column(UTCDateTime(), nullable=False)      # When it becomes due
    sent_at = Column(UTCDateTime(), nullable=True)             # Set only when sent
    error_message = Column(Text, nullable=True)                # Set only when failed

    # ============================================
    # RETRY BOOKKEEPING
    # ============================================
    retry_count = Column(Integer, nullable=False, default=0)
    last_retry_at = Column(UTCDateTime(), nullable=True)
    last_retry_error = Column(Text, nullable=True)

    # ============================================
    # IDEMPOTENCY
    # ============================================
    move_event_id = Column(Text, nullable=True)  # Caller-supplied id of the lead move

    # ============================================
    # INDEXES
    # ============================================
    __table_args__ = (
        UniqueConstraint("trigger_id", "move_event_id", name="uq_message_logs_trigger_move_event"),
        Index("idx_message_logs_status_scheduled", "status", "scheduled_for"),
        Index("idx_message_logs_lead_id", "lead_id"),
        Index("idx_message_logs_user_id", "user_id"),
    )

    def __repr__(self):
        return f"<AutomatedMessageLog(id={self.id}, trigger_id={self.trigger_id}, status='{self.status}')>"
