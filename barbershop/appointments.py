"""Appointment booking and status lifecycle."""
from __future__ import annotations

from datetime import date, datetime, time

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from .audit import emit_audit
from .availability import format_time, is_slot_taken, parse_date, parse_time
from .clock import current_time
from .errors import InvalidInput, InvalidState, NotFound, SlotConflict, Unavailable
from .extensions import db
from .loyalty import record_completed_service
from .models import (Appointment, AppointmentStatus, AuditAction, Staff,
                     TERMINAL_STATUSES, User)
from .permissions import (Actor, Capability, authorize, authorize_appointment_delete,
                          authorize_appointment_update, has_capability)

AUTO_CANCEL_NOTE = "[Auto-cancelled: appointment date passed]"

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset({
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.CONFIRMED: frozenset({
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.IN_PROGRESS: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


def parse_status(value: AppointmentStatus | str) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError:
        valid = ", ".join(status.value for status in AppointmentStatus)
        raise InvalidInput(f"status must be one of: {valid}") from None


def validate_transition(current: AppointmentStatus, new: AppointmentStatus) -> None:
    """Raise ``InvalidState`` unless ``current -> new`` is legal.

    Resubmitting the current status is accepted and changes nothing.
    """
    if current == new:
        return
    if new not in ALLOWED_TRANSITIONS[current]:
        if current in TERMINAL_STATUSES:
            raise InvalidState(f"Cannot change status of a {current.value.lower()} appointment")
        raise InvalidState(f"Cannot move appointment from {current.value} to {new.value}")


def _validate_price(price_cents) -> int | None:
    if price_cents is None:
        return None
    if isinstance(price_cents, bool) or not isinstance(price_cents, int) or price_cents < 0:
        raise InvalidInput("price_cents must be a non-negative integer")
    return price_cents


def _optional_text(name: str, value) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput(f"{name} must be a string")
    return value.strip() or None


def get_appointment(appointment_id: int) -> Appointment:
    appointment = db.session.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFound("Appointment not found")
    return appointment


def create_appointment(
    actor: Actor,
    staff_id: int,
    service_type: str,
    appointment_date: date | str,
    appointment_time: time | str,
    notes: str | None = None,
    price_cents: int | None = None,
    client_id: int | None = None,
) -> Appointment:
    authorize(actor, Capability.BOOK_APPOINTMENT)
    if client_id is not None and client_id != actor.id:
        authorize(actor, Capability.BOOK_FOR_OTHERS, "You can only book appointments for yourself")
    client_id = client_id if client_id is not None else actor.id

    service_type = _optional_text("service_type", service_type)
    if not service_type:
        raise InvalidInput("service_type is required")
    target_date = parse_date(appointment_date)
    slot = parse_time(appointment_time)
    notes = _optional_text("notes", notes)
    price_cents = _validate_price(price_cents)

    if db.session.get(User, client_id) is None:
        raise NotFound("Client not found")

    staff = db.session.get(Staff, staff_id)
    if staff is None:
        raise NotFound("Staff member not found")
    if not staff.is_available:
        raise Unavailable("Staff member is not accepting bookings")

    if is_slot_taken(staff_id, target_date, slot):
        raise SlotConflict("Staff member already has an appointment at that time")

    appointment = Appointment(
        client_id=client_id,
        staff_id=staff_id,
        service_type=service_type,
        appointment_date=target_date,
        appointment_time=slot,
        status=AppointmentStatus.SCHEDULED,
        notes=notes,
        price_cents=price_cents,
    )
    db.session.add(appointment)
    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent booking won the unique slot index.
        db.session.rollback()
        raise SlotConflict("Staff member already has an appointment at that time") from None

    emit_audit(
        actor.id,
        AuditAction.APPOINTMENT_CREATE,
        "appointment",
        appointment.appointment_id,
        {
            "staff_id": staff_id,
            "service_type": service_type,
            "date": target_date.isoformat(),
            "time": format_time(slot),
        },
    )
    return appointment


def update_appointment_status(
    appointment_id: int,
    actor: Actor,
    new_status: AppointmentStatus | str | None = None,
    notes: str | None = None,
    price_cents: int | None = None,
    now: datetime | None = None,
) -> Appointment:
    """Apply a status change (and optional notes/price) to an appointment.

    The change is a compare-and-set on the stored status. Moving into
    COMPLETED records the service in the loyalty ledger within the same
    transaction, using the price stored before this call. A second
    COMPLETED submission, sequential or concurrent, leaves the ledger alone.
    """
    appointment = get_appointment(appointment_id)
    authorize_appointment_update(actor, appointment)

    current = appointment.status
    target = parse_status(new_status) if new_status is not None else current
    validate_transition(current, target)
    price_cents = _validate_price(price_cents)
    if notes is not None and not isinstance(notes, str):
        raise InvalidInput("notes must be a string")
    now = current_time(now)

    values: dict[str, object] = {"status": target, "updated_at": now}
    if notes is not None:
        values["notes"] = notes
    if price_cents is not None:
        values["price_cents"] = price_cents

    completing = target == AppointmentStatus.COMPLETED and current != AppointmentStatus.COMPLETED
    ledger_amount = appointment.price_cents or 0
    client_id = appointment.client_id

    result = db.session.execute(
        update(Appointment)
        .where(Appointment.appointment_id == appointment_id, Appointment.status == current)
        .values(**values)
    )
    if result.rowcount != 1:
        db.session.rollback()
        refreshed = get_appointment(appointment_id)
        if refreshed.status == target:
            # Someone else already applied the same status.
            return refreshed
        raise InvalidState("Appointment was modified concurrently; retry with its current status")

    voucher = None
    if completing:
        _, voucher = record_completed_service(client_id, ledger_amount, now=now)
    db.session.commit()

    details: dict[str, object] = {
        "updated_fields": sorted(key for key in values if key != "updated_at"),
        "previous_status": current.value,
        "new_status": target.value,
    }
    if voucher is not None:
        details["voucher_issued"] = voucher.voucher_id
    emit_audit(actor.id, AuditAction.APPOINTMENT_UPDATE, "appointment", appointment_id, details)

    db.session.refresh(appointment)
    return appointment


def delete_appointment(appointment_id: int, actor: Actor) -> None:
    appointment = get_appointment(appointment_id)
    authorize_appointment_delete(actor)

    details = {
        "date": appointment.appointment_date.isoformat(),
        "time": format_time(appointment.appointment_time),
        "client_id": appointment.client_id,
        "staff_id": appointment.staff_id,
    }
    db.session.delete(appointment)
    db.session.commit()

    emit_audit(actor.id, AuditAction.DELETE, "appointment", appointment_id, details)


def expire_stale(now: datetime | None = None) -> list[int]:
    """Cancel SCHEDULED appointments dated before today.

    Each row is updated only while it is still SCHEDULED, so overlapping sweeps
    are safe and a second run finds nothing to do. Returns the cancelled ids.
    """
    now = current_time(now)
    today = now.date()
    stale = (
        Appointment.query.filter(
            Appointment.status == AppointmentStatus.SCHEDULED,
            Appointment.appointment_date < today,
        )
        .order_by(Appointment.appointment_date, Appointment.appointment_time)
        .all()
    )

    cancelled = []
    for appointment in stale:
        notes = f"{appointment.notes} {AUTO_CANCEL_NOTE}" if appointment.notes else AUTO_CANCEL_NOTE
        result = db.session.execute(
            update(Appointment)
            .where(
                Appointment.appointment_id == appointment.appointment_id,
                Appointment.status == AppointmentStatus.SCHEDULED,
            )
            .values(status=AppointmentStatus.CANCELLED, notes=notes, updated_at=now)
        )
        db.session.commit()
        if result.rowcount != 1:
            continue

        cancelled.append(appointment.appointment_id)
        emit_audit(
            None,
            AuditAction.UPDATE,
            "appointment",
            appointment.appointment_id,
            {
                "reason": "Auto-cancelled due to expired date",
                "original_date": appointment.appointment_date.isoformat(),
                "original_time": format_time(appointment.appointment_time),
            },
        )

    current_app.logger.info("Cancelled %d stale pending appointments", len(cancelled))
    return cancelled


def list_appointments(actor: Actor) -> list[Appointment]:
    """Clients see their own bookings, staff their assigned ones, admins everything."""
    query = Appointment.query
    if not has_capability(actor, Capability.VIEW_ALL_APPOINTMENTS):
        staff = Staff.query.filter_by(user_id=actor.id).first()
        if has_capability(actor, Capability.UPDATE_ASSIGNED_APPOINTMENT):
            if staff is None:
                raise NotFound("Staff profile not found")
            query = query.filter(Appointment.staff_id == staff.staff_id)
        else:
            query = query.filter(Appointment.client_id == actor.id)
    return query.order_by(Appointment.appointment_date, Appointment.appointment_time).all()


def list_pending_appointments(actor: Actor) -> list[Appointment]:
    authorize(actor, Capability.VIEW_PENDING_APPOINTMENTS)
    return (
        Appointment.query.filter(Appointment.status == AppointmentStatus.SCHEDULED)
        .order_by(Appointment.appointment_date, Appointment.appointment_time)
        .all()
    )


def appointments_in_range(
    start_date: date | str,
    end_date: date | str,
    staff_id: int | None = None,
    status: AppointmentStatus | None = None,
) -> list[Appointment]:
    """Appointments dated between ``start_date`` and ``end_date``, both inclusive."""
    start_date = parse_date(start_date)
    end_date = parse_date(end_date)
    if start_date > end_date:
        raise InvalidInput("start_date must not be after end_date")

    query = Appointment.query.filter(
        Appointment.appointment_date >= start_date,
        Appointment.appointment_date <= end_date,
    )
    if staff_id is not None:
        query = query.filter(Appointment.staff_id == staff_id)
    if status is not None:
        query = query.filter(Appointment.status == status)
    return query.order_by(Appointment.appointment_date, Appointment.appointment_time).all()
