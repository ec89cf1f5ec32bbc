"""
Lead Column ORM Model
Read-only view of the kanban 'lead_columns' table, used to label triggers.
"""
from sqlalchemy import Column, Text, String
from app.shared.db.base import Base, UUIDPrimaryKeyMixin


class LeadColumn(UUIDPrimaryKeyMixin, Base):
    """ORM Model for the lead_columns table."""
    __tablename__ = "lead_columns"

    user_id = Column(String(36), nullable=False)
    name = Column(Text, nullable=False)
    color = Column(Text, nullable=True)

    def __repr__(self):
        return f"<LeadColumn(id={self.id}, name='{self.name}')>"
