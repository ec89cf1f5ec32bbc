"""
Column Message Trigger ORM Model
SQLAlchemy model representing the 'column_message_triggers' table.

A trigger belongs to one kanban column and one user. When a lead enters
and/or leaves the column, the trigger schedules a WhatsApp message.
"""
from sqlalchemy import Column, Text, String, Float, Boolean, Index, CheckConstraint
from app.shared.db.base import Base, UUIDPrimaryKeyMixin, TimestampMixin


class ColumnMessageTrigger(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """ORM Model for the column_message_triggers table."""
    __tablename__ = "column_message_triggers"

    # ============================================
    # OWNERSHIP
    # ============================================
    user_id = Column(String(36), nullable=False)
    # No FK: lead_columns is owned by the kanban board; deleted columns orphan their triggers
    column_id = Column(String(36), nullable=False)

    # ============================================
    # MESSAGE
    # ============================================
    message_title = Column(Text, nullable=False)
    message_content = Column(Text, nullable=False)  # May contain {{nombre}}, {{telefono}}...

    # ============================================
    # FIRING RULE
    # ============================================
    trigger_condition = Column(Text, nullable=False, default="on_enter")  # on_enter / on_exit / on_both
    delay_hours = Column(Float, nullable=True)  # NULL or 0 = send immediately
    is_active = Column(Boolean, nullable=False, default=True)

    # ============================================
    # INDEXES
    # ============================================
    __table_args__ = (
        CheckConstraint("delay_hours IS NULL OR delay_hours >= 0", name="ck_triggers_delay_non_negative"),
        CheckConstraint(
            "trigger_condition IN ('on_enter', 'on_exit', 'on_both')",
            name="ck_triggers_condition"
        ),
        Index("idx_triggers_user_id", "user_id"),
        Index("idx_triggers_column_active", "column_id", "is_active"),
    )

    def __repr__(self):
        return f"<ColumnMessageTrigger(id={self.id}, column_id={self.column_id}, condition='{self.trigger_condition}', active={self.is_active})>"
