# backend/tests/services/test_dispatch_poller.py
"""
Dispatch Poller Tests

The ledger repository and the dispatcher are mocks; only the poller's
decisions are under test.

Tests covered:
1. Empty ledger: nothing sent, nothing committed
2. Successful send marks the entry sent at `now`
3. Failed send with retries left reschedules the entry
4. Failed send on the last retry marks the entry failed
5. A dispatcher that raises is treated as a failed send
6. Entry finished by another worker is skipped, batch continues
7. Batch size is passed to the due query
8. A storage error on one entry is rolled back, the next entry still goes out
9. A number blocked from bot is marked failed without sending
"""

import asyncio
from datetime import timedelta
from unittest.mock import MagicMock, AsyncMock

from sqlalchemy.exc import OperationalError

from app.modules.column_triggers.services.dispatch_poller import DispatchPoller
from app.modules.column_triggers.services.whatsapp_dispatcher import DispatchResult
from app.shared.core.constants import BLOCKED_CONTACT_ERROR
from app.shared.utils.exceptions import InvalidStateError, PersistenceError


def _entry(log_id="log-1", retry_count=0):
    return {
        "id": log_id,
        "user_id": "user-1",
        "instance_name": "ventas",
        "whatsapp_number": "+5491122334455",
        "message_content": "Hola Carlos",
        "retry_count": retry_count,
        "status": "pending",
    }


def _poller(mock_db, entries, result=None, **kwargs):
    dispatcher = MagicMock()
    dispatcher.send_text = AsyncMock(return_value=result or DispatchResult(success=True, status_code=200))

    poller = DispatchPoller(mock_db, dispatcher, max_retries=3, retry_delay=timedelta(minutes=5), **kwargs)
    poller.log_repo = MagicMock()
    poller.log_repo.list_due_pending = AsyncMock(return_value=entries)
    poller.log_repo.mark_sent = AsyncMock(return_value={})
    poller.log_repo.mark_failed = AsyncMock(return_value={})
    poller.log_repo.record_retry = AsyncMock(return_value={})
    poller.block_repo = MagicMock()
    poller.block_repo.is_blocked = AsyncMock(return_value=False)
    return poller, dispatcher


def test_empty_ledger(mock_db, fixed_now):
    async def test_logic():
        poller, dispatcher = _poller(mock_db, [])
        summary = await poller.run_once(now=fixed_now)

        assert summary == {
            "total": 0, "sent": 0, "failed": 0, "retrying": 0,
            "skipped": 0, "blocked": 0, "errored": 0
        }
        dispatcher.send_text.assert_not_called()
        mock_db.commit.assert_not_called()

    asyncio.run(test_logic())


def test_successful_send_marks_sent(mock_db, fixed_now):
    async def test_logic():
        poller, dispatcher = _poller(mock_db, [_entry()])
        summary = await poller.run_once(now=fixed_now)

        assert summary["sent"] == 1
        dispatcher.send_text.assert_awaited_once_with("ventas", "+5491122334455", "Hola Carlos")
        poller.log_repo.mark_sent.assert_awaited_once_with("log-1", fixed_now)
        poller.log_repo.mark_failed.assert_not_called()
        mock_db.commit.assert_awaited_once()

    asyncio.run(test_logic())


def test_failed_send_with_retries_left_is_rescheduled(mock_db, fixed_now):
    async def test_logic():
        poller, _ = _poller(
            mock_db,
            [_entry(retry_count=2)],
            result=DispatchResult(success=False, error="API Error 502: bad gateway", status_code=502)
        )
        summary = await poller.run_once(now=fixed_now)

        assert summary["retrying"] == 1
        poller.log_repo.record_retry.assert_awaited_once_with(
            "log-1", "API Error 502: bad gateway", fixed_now, timedelta(minutes=5)
        )
        poller.log_repo.mark_failed.assert_not_called()

    asyncio.run(test_logic())


def test_failed_send_after_max_retries_marks_failed(mock_db, fixed_now):
    async def test_logic():
        poller, _ = _poller(
            mock_db,
            [_entry(retry_count=3)],
            result=DispatchResult(success=False, error="API Error 400: invalid chat", status_code=400)
        )
        summary = await poller.run_once(now=fixed_now)

        assert summary["failed"] == 1
        poller.log_repo.mark_failed.assert_awaited_once_with(
            "log-1", "Failed after 3 retries. Last error: API Error 400: invalid chat"
        )
        poller.log_repo.record_retry.assert_not_called()

    asyncio.run(test_logic())


def test_dispatcher_exception_counts_as_failed_send(mock_db, fixed_now):
    async def test_logic():
        poller, dispatcher = _poller(mock_db, [_entry()])
        dispatcher.send_text = AsyncMock(side_effect=RuntimeError("boom"))

        summary = await poller.run_once(now=fixed_now)

        assert summary["retrying"] == 1
        args = poller.log_repo.record_retry.await_args.args
        assert args[1] == "Exception: boom"

    asyncio.run(test_logic())


def test_entry_finished_elsewhere_is_skipped(mock_db, fixed_now):
    async def test_logic():
        poller, _ = _poller(mock_db, [_entry("log-1"), _entry("log-2")])
        poller.log_repo.mark_sent = AsyncMock(side_effect=[
            InvalidStateError("AutomatedMessageLog", "log-1", "sent", "sent"),
            {},
        ])

        summary = await poller.run_once(now=fixed_now)

        assert summary["skipped"] == 1
        assert summary["sent"] == 1
        assert summary["errored"] == 0
        mock_db.rollback.assert_awaited_once()
        assert mock_db.commit.await_count == 1

    asyncio.run(test_logic())


def test_batch_size_limits_due_query(mock_db, fixed_now):
    async def test_logic():
        poller, _ = _poller(mock_db, [], batch_size=10)
        await poller.run_once(now=fixed_now)

        poller.log_repo.list_due_pending.assert_awaited_once_with(fixed_now, limit=10)

    asyncio.run(test_logic())


def test_storage_error_does_not_abort_batch(mock_db, fixed_now):
    async def test_logic():
        poller, dispatcher = _poller(mock_db, [_entry("log-1"), _entry("log-2")])
        poller.log_repo.mark_sent = AsyncMock(side_effect=[
            PersistenceError("mark message sent"),
            {},
        ])

        summary = await poller.run_once(now=fixed_now)

        assert summary["errored"] == 1
        assert summary["sent"] == 1
        assert dispatcher.send_text.await_count == 2
        assert poller.log_repo.mark_sent.await_args_list[1].args == ("log-2", fixed_now)
        mock_db.rollback.assert_awaited_once()
        assert mock_db.commit.await_count == 1

    asyncio.run(test_logic())


def test_commit_failure_is_contained(mock_db, fixed_now):
    async def test_logic():
        poller, _ = _poller(mock_db, [_entry("log-1"), _entry("log-2")])
        mock_db.commit = AsyncMock(side_effect=[
            OperationalError("COMMIT", {}, Exception("database is locked")),
            None,
        ])

        summary = await poller.run_once(now=fixed_now)

        assert summary["errored"] == 1
        assert summary["sent"] == 1
        mock_db.rollback.assert_awaited_once()

    asyncio.run(test_logic())


def test_blocked_number_is_not_sent(mock_db, fixed_now):
    async def test_logic():
        poller, dispatcher = _poller(mock_db, [_entry()])
        poller.block_repo.is_blocked = AsyncMock(return_value=True)

        summary = await poller.run_once(now=fixed_now)

        assert summary["blocked"] == 1
        assert summary["sent"] == 0
        dispatcher.send_text.assert_not_called()
        poller.block_repo.is_blocked.assert_awaited_once_with("user-1", "+5491122334455")
        poller.log_repo.mark_failed.assert_awaited_once_with("log-1", BLOCKED_CONTACT_ERROR)
        mock_db.commit.assert_awaited_once()

    asyncio.run(test_logic())
