"""Role capabilities and the authorization checks used by every service."""
from __future__ import annotations

import enum
from dataclasses import dataclass

from .errors import Forbidden
from .models import Appointment, AppointmentStatus, Role


@dataclass(frozen=True)
class Actor:
    """Identity and role of the caller of a mutating operation."""

    id: int
    role: Role


class Capability(str, enum.Enum):
    BOOK_APPOINTMENT = "book_appointment"
    BOOK_FOR_OTHERS = "book_for_others"
    UPDATE_ANY_APPOINTMENT = "update_any_appointment"
    UPDATE_ASSIGNED_APPOINTMENT = "update_assigned_appointment"
    UPDATE_OWN_APPOINTMENT = "update_own_appointment"
    DELETE_APPOINTMENT = "delete_appointment"
    VIEW_ALL_APPOINTMENTS = "view_all_appointments"
    VIEW_PENDING_APPOINTMENTS = "view_pending_appointments"
    MANAGE_BUSINESS_HOURS = "manage_business_hours"
    MANAGE_LOYALTY = "manage_loyalty"
    REDEEM_VOUCHER = "redeem_voucher"
    MANAGE_AUDIT_LOG = "manage_audit_log"
    MANAGE_STAFF = "manage_staff"
    VIEW_REPORTS = "view_reports"


_ADMIN_CAPABILITIES = frozenset({
    Capability.BOOK_APPOINTMENT,
    Capability.BOOK_FOR_OTHERS,
    Capability.UPDATE_ANY_APPOINTMENT,
    Capability.DELETE_APPOINTMENT,
    Capability.VIEW_ALL_APPOINTMENTS,
    Capability.VIEW_PENDING_APPOINTMENTS,
    Capability.MANAGE_BUSINESS_HOURS,
    Capability.MANAGE_LOYALTY,
    Capability.REDEEM_VOUCHER,
    Capability.MANAGE_STAFF,
    Capability.VIEW_REPORTS,
})

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.SUPER_ADMIN: _ADMIN_CAPABILITIES | {Capability.MANAGE_AUDIT_LOG},
    Role.ADMIN: _ADMIN_CAPABILITIES,
    Role.BARBEIRO: frozenset({
        Capability.BOOK_APPOINTMENT,
        Capability.UPDATE_ASSIGNED_APPOINTMENT,
        Capability.VIEW_PENDING_APPOINTMENTS,
        Capability.REDEEM_VOUCHER,
    }),
    Role.CLIENTE: frozenset({
        Capability.BOOK_APPOINTMENT,
        Capability.UPDATE_OWN_APPOINTMENT,
        Capability.REDEEM_VOUCHER,
    }),
}


def has_capability(actor: Actor, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(actor.role, frozenset())


def authorize(actor: Actor, capability: Capability, message: str = "Access denied") -> None:
    if not has_capability(actor, capability):
        raise Forbidden(message)


def is_assigned_staff(actor: Actor, appointment: Appointment) -> bool:
    return appointment.staff is not None and appointment.staff.user_id == actor.id


def authorize_appointment_update(actor: Actor, appointment: Appointment) -> None:
    """Administrators update anything, staff their own bookings, clients theirs until completed."""
    if has_capability(actor, Capability.UPDATE_ANY_APPOINTMENT):
        return
    if has_capability(actor, Capability.UPDATE_ASSIGNED_APPOINTMENT) and is_assigned_staff(
        actor, appointment
    ):
        return
    if (
        has_capability(actor, Capability.UPDATE_OWN_APPOINTMENT)
        and appointment.client_id == actor.id
        and appointment.status != AppointmentStatus.COMPLETED
    ):
        return
    raise Forbidden("No permission to update this appointment")


def authorize_appointment_delete(actor: Actor) -> None:
    authorize(actor, Capability.DELETE_APPOINTMENT, "Only administrators can delete appointments")
