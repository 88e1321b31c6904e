"""Business hours and open time-slot computation."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta

from flask import current_app

from .audit import emit_audit
from .errors import InvalidInput
from .extensions import db
from .models import ACTIVE_STATUSES, Appointment, AuditAction, BusinessConfig
from .permissions import Actor, Capability, authorize

BUSINESS_HOURS_KEY = "BUSINESS_HOURS"
SLOT_MINUTES = 30

# Indexed by date.weekday(): 0 = Monday
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

DEFAULT_BUSINESS_HOURS: dict[str, dict[str, str] | None] = {
    "monday": {"start": "08:00", "end": "18:00"},
    "tuesday": {"start": "08:00", "end": "18:00"},
    "wednesday": {"start": "08:00", "end": "18:00"},
    "thursday": {"start": "08:00", "end": "18:00"},
    "friday": {"start": "08:00", "end": "18:00"},
    "saturday": {"start": "08:00", "end": "16:00"},
    "sunday": None,
}


def parse_date(value: date | str | None) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise InvalidInput("date must be in YYYY-MM-DD format") from None


def parse_time(value: time | str | None) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    try:
        return datetime.strptime(value, "%H:%M").time()
    except (TypeError, ValueError):
        raise InvalidInput("time must be in HH:MM format") from None


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def _validate_business_hours(hours: dict) -> dict[str, dict[str, str] | None]:
    if not isinstance(hours, dict):
        raise InvalidInput("business hours must be an object keyed by weekday")

    unknown = set(hours) - set(WEEKDAYS)
    if unknown:
        raise InvalidInput(f"unknown weekday keys: {', '.join(sorted(unknown))}")

    cleaned: dict[str, dict[str, str] | None] = {}
    for day in WEEKDAYS:
        if day not in hours:
            raise InvalidInput(f"{day} is required (use null when closed)")
        entry = hours[day]
        if entry is None:
            cleaned[day] = None
            continue
        if not isinstance(entry, dict):
            raise InvalidInput(f"{day} must be null or an object with start and end")
        start = parse_time(entry.get("start"))
        end = parse_time(entry.get("end"))
        if start >= end:
            raise InvalidInput(f"{day}: start must be before end")
        cleaned[day] = {"start": format_time(start), "end": format_time(end)}
    return cleaned


def get_business_hours() -> tuple[dict[str, dict[str, str] | None], bool]:
    """Return ``(hours, is_default)``."""
    config = BusinessConfig.query.filter_by(key=BUSINESS_HOURS_KEY).first()
    if config is None:
        return dict(DEFAULT_BUSINESS_HOURS), True
    return config.value, False


def set_business_hours(actor: Actor, hours: dict) -> BusinessConfig:
    authorize(actor, Capability.MANAGE_BUSINESS_HOURS, "Only administrators can change business hours")
    cleaned = _validate_business_hours(hours)

    config = BusinessConfig.query.filter_by(key=BUSINESS_HOURS_KEY).first()
    if config is None:
        config = BusinessConfig(
            key=BUSINESS_HOURS_KEY,
            value=cleaned,
            description="Opening hours of the shop",
            updated_by=actor.id,
        )
        db.session.add(config)
    else:
        config.value = cleaned
        config.updated_by = actor.id
    db.session.commit()

    emit_audit(
        actor.id,
        AuditAction.UPDATE,
        "business_config",
        config.config_id,
        {"config_key": BUSINESS_HOURS_KEY, "new_value": cleaned},
    )
    return config


def generate_slots(start: time, end: time, step_minutes: int = SLOT_MINUTES) -> list[time]:
    """Slot start times from ``start`` up to, but excluding, ``end``."""
    slots = []
    current = datetime.combine(date.min, start)
    close = datetime.combine(date.min, end)
    while current < close:
        slots.append(current.time())
        current += timedelta(minutes=step_minutes)
    return slots


def booked_times(target_date: date, staff_id: int | None = None) -> set[time]:
    query = Appointment.query.filter(
        Appointment.appointment_date == target_date,
        Appointment.status.in_(list(ACTIVE_STATUSES)),
    )
    if staff_id is not None:
        query = query.filter(Appointment.staff_id == staff_id)
    return {appt.appointment_time for appt in query.all()}


def is_slot_taken(staff_id: int, target_date: date, slot: time) -> bool:
    return (
        Appointment.query.filter(
            Appointment.staff_id == staff_id,
            Appointment.appointment_date == target_date,
            Appointment.appointment_time == slot,
            Appointment.status.in_(list(ACTIVE_STATUSES)),
        ).first()
        is not None
    )


def available_slots(target_date: date | str, staff_id: int | None = None) -> dict[str, object]:
    """Open slots for a date, optionally for one staff member.

    Closed days yield an empty list. Without configured hours the default
    weekly schedule applies.
    """
    target_date = parse_date(target_date)
    hours, is_default = get_business_hours()
    day_name = WEEKDAYS[target_date.weekday()]
    day_hours = hours.get(day_name)

    payload: dict[str, object] = {
        "date": target_date.isoformat(),
        "day_of_week": day_name,
        "business_hours": day_hours,
        "is_default_hours": is_default,
        "available_slots": [],
        "busy_slots": [],
    }
    if not day_hours:
        return payload

    candidates = generate_slots(parse_time(day_hours["start"]), parse_time(day_hours["end"]))
    busy = booked_times(target_date, staff_id)

    payload["available_slots"] = [format_time(slot) for slot in candidates if slot not in busy]
    payload["busy_slots"] = sorted(format_time(slot) for slot in busy)
    current_app.logger.debug(
        "Computed %d open slots for %s (staff=%s)",
        len(payload["available_slots"]),
        target_date,
        staff_id,
    )
    return payload
