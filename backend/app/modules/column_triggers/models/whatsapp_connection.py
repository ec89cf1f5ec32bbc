"""
WhatsApp Connection ORM Model
Read-only view of the 'whatsapp_connections' table.

Connections are created by the WhatsApp onboarding flow; this service only
looks up which instance a user can currently send through.
"""
from sqlalchemy import Column, Text, String, Index
from app.shared.db.base import Base, UUIDPrimaryKeyMixin, UTCDateTime, utc_now


class WhatsAppConnection(UUIDPrimaryKeyMixin, Base):
    """ORM Model for the whatsapp_connections table."""
    __tablename__ = "whatsapp_connections"

    user_id = Column(String(36), nullable=False)
    name = Column(Text, nullable=False)      # Instance name used by the gateway
    status = Column(Text, nullable=False)    # 'conectado' when usable
    created_at = Column(UTCDateTime(), default=utc_now, nullable=False)

    __table_args__ = (
        Index("idx_whatsapp_connections_user_status", "user_id", "status"),
    )

    def __repr__(self):
        return f"<WhatsAppConnection(id={self.id}, name='{self.name}', status='{self.status}')>"
