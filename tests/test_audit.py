"""Audit trail persistence, the logging toggle and receiver isolation."""
from __future__ import annotations

from datetime import date

import pytest

from barbershop.appointments import create_appointment
from barbershop.audit import audit_event, emit_audit, list_system_logs, set_logging_enabled
from barbershop.errors import Forbidden
from barbershop.extensions import db
from barbershop.models import Appointment, AuditAction, SystemLog

from conftest import bearer


def _book(people):
    return create_appointment(people.client, people.staff_id, "Haircut", date(2025, 6, 16), "10:00")


def test_booking_is_audited(app_ctx, people) -> None:
    appointment = _book(people)

    log = SystemLog.query.filter_by(action=AuditAction.APPOINTMENT_CREATE).one()
    assert log.user_id == people.client.id
    assert log.resource_type == "appointment"
    assert log.resource_id == str(appointment.appointment_id)
    assert log.details["time"] == "10:00"


def test_failing_receiver_does_not_fail_operation(app_ctx, people) -> None:
    def broken_receiver(sender, **kwargs):
        raise RuntimeError("audit store is down")

    with audit_event.connected_to(broken_receiver):
        appointment = _book(people)

    assert db.session.get(Appointment, appointment.appointment_id) is not None
    # The default receiver still ran.
    assert SystemLog.query.filter_by(action=AuditAction.APPOINTMENT_CREATE).count() == 1


def test_receivers_get_the_entry(app_ctx, people) -> None:
    seen = []

    def collect(sender, entry, **kwargs):
        seen.append(entry)

    with audit_event.connected_to(collect):
        emit_audit(people.admin.id, AuditAction.UPDATE, "business_config", 7, {"key": "BUSINESS_HOURS"})

    assert len(seen) == 1
    assert seen[0].resource_id == "7"
    assert seen[0].details == {"key": "BUSINESS_HOURS"}


def test_disabled_logging_skips_persistence(app_ctx, people) -> None:
    set_logging_enabled(people.super_admin, False)
    _book(people)
    assert SystemLog.query.count() == 0

    set_logging_enabled(people.super_admin, True)
    emit_audit(people.admin.id, AuditAction.UPDATE)
    assert SystemLog.query.count() == 1


def test_only_super_admin_manages_audit_log(app_ctx, people) -> None:
    with pytest.raises(Forbidden):
        set_logging_enabled(people.admin, False)
    with pytest.raises(Forbidden):
        list_system_logs(people.admin)


def test_list_system_logs_newest_first(app_ctx, people) -> None:
    emit_audit(people.admin.id, AuditAction.CREATE, "voucher_config", 1)
    emit_audit(people.admin.id, AuditAction.UPDATE, "business_config", 2)

    logs = list_system_logs(people.super_admin, limit=1)

    assert len(logs) == 1
    assert logs[0].action == AuditAction.UPDATE


def test_admin_log_endpoints(client, people) -> None:
    response = client.post(
        "/admin/toggle-logs", json={"enabled": "no"}, headers=bearer(people.super_admin_token)
    )
    assert response.status_code == 400

    response = client.post(
        "/admin/toggle-logs", json={"enabled": False}, headers=bearer(people.super_admin_token)
    )
    assert response.status_code == 200
    assert response.get_json()["logging_enabled"] is False

    response = client.get("/admin/logs", headers=bearer(people.admin_token))
    assert response.status_code == 403

    response = client.get("/admin/logs", headers=bearer(people.super_admin_token))
    assert response.status_code == 200
    assert response.get_json()["logs"] == []
