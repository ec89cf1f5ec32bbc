# backend/tests/services/test_personalizer_schedule.py
"""
Template personalization and send-time calculation.

Both are pure functions, so no database or mocks are needed.
"""

from datetime import datetime, timedelta, timezone
import pytest

from app.modules.column_triggers.services.personalizer import render
from app.modules.column_triggers.services.schedule import compute_send_time, to_iso

NOW = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
LEAD = {"name": "Carlos", "phone": "+5491122334455"}


# --- 1. PERSONALIZATION ---

def test_render_spanish_and_english_tokens():
    template = "Hola {{nombre}} / Hi {{name}} - tel {{telefono}} / {{phone}}"
    assert render(template, LEAD) == "Hola Carlos / Hi Carlos - tel +5491122334455 / +5491122334455"


def test_render_replaces_every_occurrence():
    assert render("{{nombre}}, {{nombre}}!", LEAD) == "Carlos, Carlos!"


def test_render_missing_values_become_empty():
    assert render("Hola {{nombre}} ({{telefono}})", {"name": None}) == "Hola  ()"


def test_render_unknown_tokens_and_case_untouched():
    assert render("{{empresa}} {{Nombre}} {{ nombre }}", LEAD) == "{{empresa}} {{Nombre}} {{ nombre }}"


def test_render_does_not_escape():
    assert render("{{name}}", {"name": "<b>Ana & Co</b>"}) == "<b>Ana & Co</b>"


def test_render_empty_template():
    assert render("", LEAD) == ""
    assert render(None, LEAD) == ""


# --- 2. SEND TIME ---

@pytest.mark.parametrize("delay_hours,expected", [
    (None, NOW),
    (0, NOW),
    (1, NOW + timedelta(hours=1)),
    (0.5, NOW + timedelta(minutes=30)),
    (48, NOW + timedelta(days=2)),
])
def test_compute_send_time(delay_hours, expected):
    assert compute_send_time(delay_hours, NOW) == expected


def test_compute_send_time_keeps_frame_of_now():
    naive = datetime(2024, 1, 1, 10, 0, 0)
    assert compute_send_time(2, naive) == datetime(2024, 1, 1, 12, 0, 0)


def test_to_iso_uses_z_suffix():
    assert to_iso(NOW + timedelta(hours=1)) == "2024-01-01T11:00:00Z"
    assert to_iso(datetime(2024, 1, 1, 11, 0, 0)) == "2024-01-01T11:00:00Z"
    assert to_iso(NOW + timedelta(milliseconds=250)) == "2024-01-01T10:00:00.250Z"
