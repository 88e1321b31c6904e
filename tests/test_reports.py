"""Revenue report over completed appointments."""
from __future__ import annotations

from datetime import date

import pytest

from barbershop.appointments import appointments_in_range, create_appointment, update_appointment_status
from barbershop.errors import Forbidden, InvalidInput
from barbershop.reports import revenue_report

from conftest import bearer


def _completed(people, day, slot, service, price_cents, staff_id=None):
    appointment = create_appointment(
        people.admin,
        staff_id or people.staff_id,
        service,
        day,
        slot,
        price_cents=price_cents,
        client_id=people.client.id,
    )
    return update_appointment_status(appointment.appointment_id, people.admin, "COMPLETED")


@pytest.fixture
def june(app, people):
    with app.app_context():
        _completed(people, date(2025, 6, 2), "10:00", "Haircut", 3000)
        _completed(people, date(2025, 6, 3), "10:00", "Haircut", 4000)
        _completed(people, date(2025, 6, 3), "11:00", "Beard", 1500, staff_id=people.other_staff_id)
        # Outside the month
        _completed(people, date(2025, 7, 1), "10:00", "Haircut", 9900)
        # Not completed
        create_appointment(people.client, people.staff_id, "Haircut", date(2025, 6, 20), "10:00", price_cents=5000)


def test_appointments_in_range_is_inclusive(app_ctx, people, june) -> None:
    found = appointments_in_range("2025-06-02", "2025-06-03")
    assert [appt.appointment_date for appt in found] == [date(2025, 6, 2), date(2025, 6, 3), date(2025, 6, 3)]

    with pytest.raises(InvalidInput):
        appointments_in_range("2025-06-30", "2025-06-01")


def test_report_defaults_to_current_month(app_ctx, people, june) -> None:
    report = revenue_report(people.admin)

    assert report["period"] == {"start_date": "2025-06-01", "end_date": "2025-06-30"}
    assert report["summary"] == {
        "total_revenue_cents": 8500,
        "total_appointments": 3,
        "average_ticket_cents": 2833,
    }
    assert report["service_breakdown"] == {
        "Haircut": {"count": 2, "total_cents": 7000},
        "Beard": {"count": 1, "total_cents": 1500},
    }
    assert report["staff_breakdown"] == {
        str(people.staff_id): {"count": 2, "total_cents": 7000},
        str(people.other_staff_id): {"count": 1, "total_cents": 1500},
    }


def test_report_for_one_barber(app_ctx, people, june) -> None:
    report = revenue_report(people.admin, "2025-06-01", "2025-07-31", staff_id=people.staff_id)

    assert report["summary"]["total_revenue_cents"] == 16900
    assert report["summary"]["total_appointments"] == 3
    assert "staff_breakdown" not in report


def test_empty_report(app_ctx, people) -> None:
    report = revenue_report(people.admin, "2025-01-01", "2025-01-31")

    assert report["summary"]["average_ticket_cents"] == 0
    assert report["service_breakdown"] == {}


def test_only_admins_view_reports(app_ctx, people) -> None:
    with pytest.raises(Forbidden):
        revenue_report(people.barber)


def test_revenue_endpoint(client, people, june) -> None:
    response = client.get(
        "/reports/revenue?start_date=2025-06-01&end_date=2025-06-30", headers=bearer(people.admin_token)
    )
    assert response.status_code == 200
    assert response.get_json()["summary"]["total_revenue_cents"] == 8500

    response = client.get("/reports/revenue?start_date=June", headers=bearer(people.admin_token))
    assert response.status_code == 400

    response = client.get("/reports/revenue", headers=bearer(people.client_token))
    assert response.status_code == 403
