"""Barber profiles: onboarding, the public roster and booking availability."""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.security import generate_password_hash

from .audit import emit_audit
from .errors import InvalidInput, NotFound
from .extensions import db
from .models import AuditAction, AuthAccount, Role, Staff, User
from .permissions import Actor, Capability, authorize

MIN_PASSWORD_LENGTH = 6


def _required_text(name: str, value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{name} is required")
    return value.strip()


def _optional_text(name: str, value) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput(f"{name} must be a string")
    return value.strip() or None


def create_staff(
    actor: Actor,
    name: str,
    email: str,
    password: str,
    phone: str | None = None,
    specialty: str | None = None,
    experience_years: int | None = None,
) -> Staff:
    """Create a BARBEIRO user with login credentials and a staff profile."""
    authorize(actor, Capability.MANAGE_STAFF, "Only administrators can add barbers")

    name = _required_text("name", name)
    email = _required_text("email", email).lower()
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    phone = _optional_text("phone", phone)
    specialty = _optional_text("specialty", specialty)
    if experience_years is not None and (
        isinstance(experience_years, bool) or not isinstance(experience_years, int) or experience_years < 0
    ):
        raise InvalidInput("experience_years must be a non-negative integer")

    if User.query.filter_by(email=email).first() is not None:
        raise InvalidInput("Email already in use")

    user = User(name=name, email=email, phone=phone, role=Role.BARBEIRO)
    db.session.add(user)
    try:
        db.session.flush()
        db.session.add(AuthAccount(user_id=user.user_id, password_hash=generate_password_hash(password)))
        staff = Staff(user_id=user.user_id, specialty=specialty, experience_years=experience_years)
        db.session.add(staff)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise InvalidInput("Email already in use") from None

    emit_audit(
        actor.id,
        AuditAction.CREATE,
        "staff",
        staff.staff_id,
        {"email": email, "role": Role.BARBEIRO.value, "specialty": specialty},
    )
    return staff


def list_staff(available_only: bool = False) -> list[Staff]:
    """Active barbers with their user details, for clients picking who to book."""
    query = Staff.query.join(User, Staff.user_id == User.user_id).filter(User.is_active.is_(True))
    if available_only:
        query = query.filter(Staff.is_available.is_(True))
    return query.order_by(User.name, Staff.staff_id).all()


def set_staff_availability(actor: Actor, staff_id: int, is_available: bool) -> Staff:
    authorize(actor, Capability.MANAGE_STAFF, "Only administrators can change barber availability")
    if not isinstance(is_available, bool):
        raise InvalidInput("is_available must be a boolean")

    staff = db.session.get(Staff, staff_id)
    if staff is None:
        raise NotFound("Staff member not found")

    staff.is_available = is_available
    db.session.commit()

    current_app.logger.info(
        "Staff %s %s bookings", staff_id, "accepting" if is_available else "no longer accepting"
    )
    emit_audit(actor.id, AuditAction.UPDATE, "staff", staff_id, {"is_available": is_available})
    return staff
