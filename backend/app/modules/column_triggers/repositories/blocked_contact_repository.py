"""
Bot Blocked Contact Repository
Read-only lookups on the contacto_bloqueado_bot table.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.column_triggers.models.bot_blocked_contact import BotBlockedContact
from app.shared.db.errors import translate_db_errors


class BlockedContactRepository:
    """Repository for per-user bot blocks."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    @translate_db_errors("check blocked contact")
    async def is_blocked(self, user_id: str, numero: str) -> bool:
        """True when the user blocked this number from automated messages."""
        query = (
            select(BotBlockedContact.id)
            .where(
                BotBlockedContact.user_id == user_id,
                BotBlockedContact.numero == numero
            )
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.scalars().first() is not None
