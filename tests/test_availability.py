"""Business hours and available slot computation."""
from __future__ import annotations

from datetime import date, time

import pytest

from barbershop.appointments import create_appointment, update_appointment_status
from barbershop.availability import (DEFAULT_BUSINESS_HOURS, available_slots, generate_slots,
                                     get_business_hours, set_business_hours)
from barbershop.errors import Forbidden, InvalidInput

from conftest import bearer

MONDAY = date(2025, 6, 9)
SUNDAY = date(2025, 6, 15)
SATURDAY = date(2025, 6, 14)

WEEK = {
    "monday": {"start": "08:00", "end": "18:00"},
    "tuesday": {"start": "09:00", "end": "12:00"},
    "wednesday": None,
    "thursday": None,
    "friday": None,
    "saturday": None,
    "sunday": None,
}


def test_generate_slots_excludes_close_time() -> None:
    slots = generate_slots(time(8, 0), time(10, 0))
    assert slots == [time(8, 0), time(8, 30), time(9, 0), time(9, 30)]


def test_monday_with_no_bookings_has_twenty_slots(app_ctx, people) -> None:
    set_business_hours(people.admin, WEEK)

    result = available_slots(MONDAY)

    assert result["day_of_week"] == "monday"
    assert len(result["available_slots"]) == 20
    assert result["available_slots"][0] == "08:00"
    assert result["available_slots"][-1] == "17:30"
    assert result["busy_slots"] == []


def test_closed_day_returns_no_slots(app_ctx, people) -> None:
    set_business_hours(people.admin, WEEK)

    result = available_slots("2025-06-11")

    assert result["available_slots"] == []
    assert result["business_hours"] is None


def test_default_schedule_applies_when_unconfigured(app_ctx) -> None:
    hours, is_default = get_business_hours()
    assert is_default is True
    assert hours == DEFAULT_BUSINESS_HOURS

    assert available_slots(SUNDAY)["available_slots"] == []
    saturday = available_slots(SATURDAY)["available_slots"]
    assert saturday[0] == "08:00"
    assert saturday[-1] == "15:30"
    assert len(saturday) == 16


def test_active_bookings_are_subtracted(app_ctx, people) -> None:
    booked = create_appointment(people.client, people.staff_id, "Haircut", MONDAY, "10:00")
    create_appointment(people.client, people.other_staff_id, "Beard", MONDAY, "11:00")
    cancelled = create_appointment(people.client, people.staff_id, "Haircut", MONDAY, "12:00")
    update_appointment_status(cancelled.appointment_id, people.admin, "CANCELLED")
    in_progress = create_appointment(people.client, people.staff_id, "Haircut", MONDAY, "13:00")
    update_appointment_status(in_progress.appointment_id, people.admin, "IN_PROGRESS")

    for_staff = available_slots(MONDAY, staff_id=people.staff_id)
    assert "10:00" not in for_staff["available_slots"]
    assert "13:00" not in for_staff["available_slots"]
    assert "12:00" in for_staff["available_slots"]
    assert "11:00" in for_staff["available_slots"]
    assert for_staff["busy_slots"] == ["10:00", "13:00"]

    shop_wide = available_slots(MONDAY)
    assert "11:00" not in shop_wide["available_slots"]
    assert booked.appointment_id is not None


def test_malformed_date_is_invalid_input(app_ctx) -> None:
    with pytest.raises(InvalidInput):
        available_slots("2025-13-45")
    with pytest.raises(InvalidInput):
        available_slots("tomorrow")


def test_only_admins_set_business_hours(app_ctx, people) -> None:
    with pytest.raises(Forbidden):
        set_business_hours(people.barber, WEEK)


@pytest.mark.parametrize(
    "override",
    [
        {"monday": {"start": "18:00", "end": "08:00"}},
        {"monday": {"start": "8am", "end": "18:00"}},
        {"funday": None},
    ],
)
def test_invalid_business_hours_rejected(app_ctx, people, override) -> None:
    hours = dict(WEEK)
    hours.update(override)
    with pytest.raises(InvalidInput):
        set_business_hours(people.admin, hours)


def test_available_slots_endpoint(client, people) -> None:
    response = client.get(f"/config/available-slots?date={MONDAY.isoformat()}&staff_id={people.staff_id}")
    data = response.get_json()

    assert response.status_code == 200
    assert data["is_default_hours"] is True
    assert len(data["available_slots"]) == 20


def test_available_slots_endpoint_requires_valid_date(client) -> None:
    response = client.get("/config/available-slots?date=invalid-date")
    data = response.get_json()

    assert response.status_code == 400
    assert data["error"] == "invalid_input"
    assert "YYYY-MM-DD" in data["message"]

    response = client.get("/config/available-slots")
    assert response.status_code == 400


def test_business_hours_endpoints(client, people) -> None:
    response = client.post("/config/hours", json=WEEK, headers=bearer(people.barber_token))
    assert response.status_code == 403

    response = client.post("/config/hours", json=WEEK, headers=bearer(people.admin_token))
    assert response.status_code == 200

    response = client.get("/config/hours")
    body = response.get_json()
    assert body["is_default"] is False
    assert body["business_hours"]["wednesday"] is None
