"""
WhatsApp Connection Repository
Read-only lookups on the whatsapp_connections table.
"""
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.column_triggers.models.whatsapp_connection import WhatsAppConnection
from app.shared.core.constants import WHATSAPP_CONNECTED_STATUS
from app.shared.db.errors import translate_db_errors


class WhatsAppConnectionRepository:
    """Repository for resolving a user's sending instance."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    @translate_db_errors("resolve whatsapp connection")
    async def get_connected_instance_name(self, user_id: str) -> Optional[str]:
        """
        Name of the user's connected WhatsApp instance.
        Returns None when the user has no connected instance.
        """
        query = (
            select(WhatsAppConnection.name)
            .where(
                WhatsAppConnection.user_id == user_id,
                WhatsAppConnection.status == WHATSAPP_CONNECTED_STATUS
            )
            .order_by(WhatsAppConnection.created_at.asc())
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.scalars().first()
