"""
Dispatch Poller
Sends ledger entries that are due and records how each send went.

Meant to be driven by a cron (see POST /column-triggers/dispatch/run) or
by running this module directly. One call to `run_once` is one pass:

    pending & due  ──number blocked from bot──▶  failed (not sent)
                   ──send ok──▶  sent
                   ──send failed, retries left──▶  pending (rescheduled)
                   ──send failed, retries used up──▶  failed

Each entry is committed on its own so a crash mid-batch never re-sends
messages already marked as sent, and a storage error on one entry
leaves it pending without stopping the rest of the batch.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.column_triggers.repositories.blocked_contact_repository import BlockedContactRepository
from app.modules.column_triggers.repositories.message_log_repository import MessageLogRepository
from app.modules.column_triggers.services.whatsapp_dispatcher import (
    DispatchResult,
    MessageDispatcher,
    WhatsAppTextDispatcher,
)
from app.shared.core.config import settings
from app.shared.core.constants import BLOCKED_CONTACT_ERROR
from app.shared.core.logging import set_correlation_id, setup_logging
from app.shared.db.base import utc_now
from app.shared.utils.exceptions import InvalidStateError, EntityNotFoundError, PersistenceError

logger = logging.getLogger("dispatch_poller")


class DispatchPoller:
    """Pulls due messages from the ledger and hands them to a dispatcher."""

    def __init__(
        self,
        db: AsyncSession,
        dispatcher: MessageDispatcher,
        batch_size: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[timedelta] = None
    ):
        self.db = db
        self.dispatcher = dispatcher
        self.log_repo = MessageLogRepository(db)
        self.block_repo = BlockedContactRepository(db)
        self.batch_size = batch_size or settings.DISPATCH_BATCH_SIZE
        self.max_retries = settings.DISPATCH_MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = retry_delay or timedelta(minutes=settings.DISPATCH_RETRY_DELAY_MINUTES)

    async def run_once(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Process one batch of due messages.

        Returns:
            Summary dict: total, sent, failed, retrying, skipped, blocked, errored
        """
        now = now or utc_now()
        summary = {
            "total": 0, "sent": 0, "failed": 0, "retrying": 0,
            "skipped": 0, "blocked": 0, "errored": 0
        }

        due = await self.log_repo.list_due_pending(now, limit=self.batch_size)
        summary["total"] = len(due)

        if not due:
            logger.info("No pending messages to process")
            return summary

        logger.info(f"Found {len(due)} pending messages to process")

        for entry in due:
            outcome = await self._process_entry(entry, now)
            summary[outcome] += 1

        logger.info(f"Dispatch pass complete: {summary}")
        return summary

    async def _process_entry(self, entry: Dict, now: datetime) -> str:
        """Send one entry and record the outcome. Returns the summary bucket."""
        try:
            if await self.block_repo.is_blocked(entry["user_id"], entry["whatsapp_number"]):
                await self.log_repo.mark_failed(entry["id"], BLOCKED_CONTACT_ERROR)
                await self.db.commit()
                logger.info(f"Message {entry['id']} not sent: {entry['whatsapp_number']} is blocked from bot")
                return "blocked"

            try:
                result = await self.dispatcher.send_text(
                    entry["instance_name"],
                    entry["whatsapp_number"],
                    entry["message_content"]
                )
            except Exception as e:
                logger.error(f"Dispatcher raised for message {entry['id']}: {str(e)}")
                result = DispatchResult(success=False, error=f"Exception: {str(e)}")

            if result.success:
                await self.log_repo.mark_sent(entry["id"], now)
                outcome = "sent"
                logger.info(f"Message {entry['id']} sent to {entry['whatsapp_number']}")
            elif entry["retry_count"] < self.max_retries:
                await self.log_repo.record_retry(entry["id"], result.error or "Unknown error", now, self.retry_delay)
                outcome = "retrying"
                logger.warning(
                    f"Message {entry['id']} failed, retry {entry['retry_count'] + 1}/{self.max_retries} "
                    f"at {now + self.retry_delay}: {result.error}"
                )
            else:
                await self.log_repo.mark_failed(
                    entry["id"],
                    f"Failed after {self.max_retries} retries. Last error: {result.error}"
                )
                outcome = "failed"
                logger.error(f"Max retries reached for message {entry['id']}")

            await self.db.commit()
            return outcome

        except (InvalidStateError, EntityNotFoundError) as e:
            # Another worker finished (or removed) this entry first
            await self.db.rollback()
            logger.warning(f"Skipping message {entry['id']}: {e.message}")
            return "skipped"

        except (PersistenceError, SQLAlchemyError) as e:
            # Entry stays pending and is picked up again by a later pass
            await self.db.rollback()
            logger.error(f"Could not record outcome for message {entry['id']}: {str(e)}")
            return "errored"


async def run_dispatch_pass() -> Dict[str, int]:
    """Open a session, run one pass with the gateway dispatcher, close everything."""
    from app.shared.db.session import AsyncSessionLocal
    from app.shared.utils.http_client import http_client_manager

    set_correlation_id(prefix="poll")
    try:
        async with AsyncSessionLocal() as session:
            poller = DispatchPoller(session, WhatsAppTextDispatcher())
            return await poller.run_once()
    finally:
        await http_client_manager.close()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(run_dispatch_pass())
