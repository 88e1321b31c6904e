"""Hard deletion of appointments by administrators."""
from __future__ import annotations

from datetime import date

import pytest

from barbershop.appointments import create_appointment, delete_appointment
from barbershop.errors import Forbidden, NotFound
from barbershop.extensions import db
from barbershop.models import Appointment

from conftest import bearer


@pytest.fixture
def appointment_id(app, people):
    with app.app_context():
        appointment = create_appointment(people.client, people.staff_id, "Haircut", date(2025, 6, 16), "10:00")
        return appointment.appointment_id


def test_admin_deletes_appointment(app_ctx, people, appointment_id) -> None:
    delete_appointment(appointment_id, people.admin)

    assert db.session.get(Appointment, appointment_id) is None


def test_barber_and_client_cannot_delete(app_ctx, people, appointment_id) -> None:
    with pytest.raises(Forbidden):
        delete_appointment(appointment_id, people.barber)
    with pytest.raises(Forbidden):
        delete_appointment(appointment_id, people.client)

    assert db.session.get(Appointment, appointment_id) is not None


def test_missing_appointment_is_not_found(app_ctx, people) -> None:
    with pytest.raises(NotFound):
        delete_appointment(12345, people.barber)


def test_delete_endpoint(client, people, appointment_id) -> None:
    response = client.delete(f"/appointments/{appointment_id}", headers=bearer(people.barber_token))
    assert response.status_code == 403

    response = client.delete(f"/appointments/{appointment_id}", headers=bearer(people.admin_token))
    assert response.status_code == 204

    response = client.delete(f"/appointments/{appointment_id}", headers=bearer(people.admin_token))
    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"
