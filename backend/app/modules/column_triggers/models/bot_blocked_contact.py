"""
Bot Blocked Contact ORM Model
Read-only view of the 'contacto_bloqueado_bot' table.

CRM users block a number from all automated messaging; the dispatch
poller checks it right before each send.
"""
from sqlalchemy import Column, Text, String, Index
from app.shared.db.base import Base, UUIDPrimaryKeyMixin, UTCDateTime, utc_now


class BotBlockedContact(UUIDPrimaryKeyMixin, Base):
    """ORM Model for the contacto_bloqueado_bot table."""
    __tablename__ = "contacto_bloqueado_bot"

    user_id = Column(String(36), nullable=False)
    numero = Column(Text, nullable=False)    # Number exactly as stored on the lead
    created_at = Column(UTCDateTime(), default=utc_now, nullable=False)

    __table_args__ = (
        Index("idx_bot_blocked_user_numero", "user_id", "numero"),
    )

    def __repr__(self):
        return f"<BotBlockedContact(user_id={self.user_id}, numero='{self.numero}')>"
