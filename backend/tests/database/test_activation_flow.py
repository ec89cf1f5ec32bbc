# backend/tests/database/test_activation_flow.py
"""
Lead Move → Ledger → Dispatch, end to end on SQLite.

Tests covered:
1. A lead entering a column with a delayed trigger gets one pending entry
   with the rendered message and the right scheduled_for
2. Enter and exit triggers both fire for a single move
3. No connected instance: trigger skipped, nothing recorded
4. Same move_event_id twice schedules nothing new
5. A trigger failing mid-write is rolled back without losing the others
6. Poller sends due entries and leaves future ones pending
7. A number the user blocked from bot is marked failed, never sent
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from sqlalchemy import select, func

from app.modules.column_triggers.models import AutomatedMessageLog, WhatsAppConnection, LeadColumn, BotBlockedContact
from app.modules.column_triggers.repositories.trigger_repository import TriggerRepository
from app.modules.column_triggers.repositories.message_log_repository import MessageLogRepository
from app.modules.column_triggers.services.activation_service import TriggerActivationService, LeadMoveEvent
from app.modules.column_triggers.services.dispatch_poller import DispatchPoller
from app.modules.column_triggers.services.whatsapp_dispatcher import DispatchResult

from db_helpers import open_test_session, close_test_session

NOW = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


async def _seed_board(session, connected=True):
    """Two columns plus the user's WhatsApp connections (one stale, one optionally live)."""
    session.add(LeadColumn(id="col-principal", user_id="user-1", name="Principal", color="#3366ff"))
    session.add(LeadColumn(id="col-nuevos", user_id="user-1", name="Nuevos", color="#999999"))
    session.add(WhatsAppConnection(
        user_id="user-1",
        name="old-instance",
        status="desconectado",
        created_at=NOW - timedelta(days=30)
    ))
    if connected:
        session.add(WhatsAppConnection(
            user_id="user-1",
            name="ventas",
            status="conectado",
            created_at=NOW - timedelta(days=1)
        ))
    await session.flush()


async def _add_trigger(session, column_id, condition="on_enter", content="Hola {{nombre}}", delay_hours=None):
    return await TriggerRepository(session).create({
        "user_id": "user-1",
        "column_id": column_id,
        "message_title": f"{condition} {column_id}",
        "message_content": content,
        "trigger_condition": condition,
        "delay_hours": delay_hours,
    })


async def _ledger_count(session) -> int:
    result = await session.execute(select(func.count()).select_from(AutomatedMessageLog))
    return result.scalar()


def _carlos(**overrides):
    data = {
        "lead_id": "lead-carlos",
        "lead_name": "Carlos",
        "lead_phone": "+5491122334455",
        "to_column_id": "col-principal",
        "user_id": "user-1",
    }
    data.update(overrides)
    return LeadMoveEvent(**data)


def test_lead_enters_column_with_delayed_trigger():
    async def test_logic():
        engine, session = await open_test_session()
        try:
            await _seed_board(session)
            trigger = await _add_trigger(
                session, "col-principal",
                content="Hola {{nombre}}, te escribimos al {{telefono}}",
                delay_hours=1
            )
            await session.commit()

            result = await TriggerActivationService(session).activate_on_lead_move(_carlos(), now=NOW)

            assert result.partial_failure is False
            assert len(result.scheduled) == 1
            entry = result.scheduled[0]
            assert entry["trigger_id"] == trigger["id"]
            assert entry["message_content"] == "Hola Carlos, te escribimos al +5491122334455"
            assert entry["whatsapp_number"] == "+5491122334455"
            assert entry["instance_name"] == "ventas"
            assert entry["status"] == "pending"
            assert entry["scheduled_for"] == datetime(2024, 1, 1, 11, 0, 0, tzinfo=timezone.utc)

            history = await MessageLogRepository(session).list_for_lead("lead-carlos")
            assert len(history) == 1
        finally:
            await close_test_session(engine, session)

    asyncio.run(test_logic())


def test_move_fires_enter_and_exit_triggers():
    async def test_logic():
        engine, session = await open_test_session()
        try:
            await _seed_board(session)
            enter = await _add_trigger(session, "col-principal", condition="on_enter")
            exit_ = await _add_trigger(session, "col-nuevos", condition="on_exit", content="Chau {{name}}")
            await _add_trigger(session, "col-nuevos", condition="on_enter")
            await session.commit()

            result = await TriggerActivationService(session).activate_on_lead_move(
                _carlos(from_column_id="col-nuevos"),
                now=NOW
            )

            assert [e["trigger_id"] for e in result.scheduled] == [enter["id"], exit_["id"]]
            assert result.scheduled[1]["message_content"] == "Chau Carlos"
            # Delay None sends immediately
            assert result.scheduled[0]["scheduled_for"] == NOW
        finally:
            await close_test_session(engine, session)

    asyncio.run(test_logic())


def test_no_connected_instance_skips():
    async def test_logic():
        engine, session = await open_test_session()
        try:
            await _seed_board(session, connected=False)
            trigger = await _add_trigger(session, "col-principal")
            await session.commit()

            result = await TriggerActivationService(session).activate_on_lead_move(_carlos(), now=NOW)

            assert result.scheduled == []
            assert result.skipped == [{"trigger_id": trigger["id"], "reason": "no_connection"}]
            assert await _ledger_count(session) == 0
        finally:
            await close_test_session(engine, session)

    asyncio.run(test_logic())


def test_repeated_move_event_schedules_once():
    async def test_logic():
        engine, session = await open_test_session()
        try:
            await _seed_board(session)
            await _add_trigger(session, "col-principal")
            await session.commit()

            service = TriggerActivationService(session)
            first = await service.activate_on_lead_move(_carlos(move_event_id="move-1"), now=NOW)
            second = await service.activate_on_lead_move(_carlos(move_event_id="move-1"), now=NOW)

            assert len(first.scheduled) == 1
            assert second.scheduled == []
            assert second.skipped[0]["reason"] == "duplicate_move_event"
            assert await _ledger_count(session) == 1
        finally:
            await close_test_session(engine, session)

    asyncio.run(test_logic())


def test_failing_trigger_is_rolled_back_alone():
    async def test_logic():
        engine, session = await open_test_session()
        try:
            await _seed_board(session)
            await _add_trigger(session, "col-principal", content="Primero")
            await _add_trigger(session, "col-principal", content="Segundo")
            await session.commit()

            service = TriggerActivationService(session)
            real_create = service.log_repo.create_entry
            calls = {"n": 0}

            async def flaky_create(**kwargs):
                calls["n"] += 1
                entry = await real_create(**kwargs)
                if calls["n"] == 1:
                    raise RuntimeError("connection reset")
                return entry

            service.log_repo.create_entry = flaky_create

            result = await service.activate_on_lead_move(_carlos(), now=NOW)

            assert len(result.scheduled) == 1
            assert len(result.failed) == 1
            assert result.failed[0]["error"] == "connection reset"
            assert result.partial_failure is True
            # The row flushed by the failing trigger was rolled back with its savepoint
            assert await _ledger_count(session) == 1
        finally:
            await close_test_session(engine, session)

    asyncio.run(test_logic())


def test_poller_sends_due_entries_only():
    async def test_logic():
        engine, session = await open_test_session()
        try:
            await _seed_board(session)
            await _add_trigger(session, "col-principal", delay_hours=0)
            await _add_trigger(session, "col-principal", delay_hours=2)
            await session.commit()

            await TriggerActivationService(session).activate_on_lead_move(_carlos(), now=NOW)

            dispatcher = AsyncMock()
            dispatcher.send_text.return_value = DispatchResult(success=True, status_code=200)

            summary = await DispatchPoller(session, dispatcher).run_once(now=NOW + timedelta(minutes=1))

            assert summary == {
                "total": 1, "sent": 1, "failed": 0, "retrying": 0,
                "skipped": 0, "blocked": 0, "errored": 0
            }
            dispatcher.send_text.assert_awaited_once_with("ventas", "+5491122334455", "Hola Carlos")

            repo = MessageLogRepository(session)
            statuses = sorted(e["status"] for e in await repo.list_for_lead("lead-carlos"))
            assert statuses == ["pending", "sent"]
        finally:
            await close_test_session(engine, session)

    asyncio.run(test_logic())


def test_poller_does_not_message_blocked_number():
    async def test_logic():
        engine, session = await open_test_session()
        try:
            await _seed_board(session)
            await _add_trigger(session, "col-principal", delay_hours=0)
            # Another user's block on the same number does not count
            session.add(BotBlockedContact(user_id="user-2", numero="+5491199998888"))
            session.add(BotBlockedContact(user_id="user-1", numero="+5491122334455"))
            await session.commit()

            await TriggerActivationService(session).activate_on_lead_move(_carlos(), now=NOW)
            await TriggerActivationService(session).activate_on_lead_move(
                _carlos(lead_id="lead-ana", lead_name="Ana", lead_phone="+5491199998888"),
                now=NOW
            )

            dispatcher = AsyncMock()
            dispatcher.send_text.return_value = DispatchResult(success=True, status_code=200)

            summary = await DispatchPoller(session, dispatcher).run_once(now=NOW + timedelta(minutes=1))

            assert summary["blocked"] == 1
            assert summary["sent"] == 1
            dispatcher.send_text.assert_awaited_once_with("ventas", "+5491199998888", "Hola Ana")

            blocked = (await MessageLogRepository(session).list_for_lead("lead-carlos"))[0]
            assert blocked["status"] == "failed"
            assert blocked["error_message"] == "Contact blocked from bot"
            assert blocked["sent_at"] is None
        finally:
            await close_test_session(engine, session)

    asyncio.run(test_logic())
