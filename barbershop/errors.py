"""Typed errors raised by the scheduling and loyalty services.

Every error carries a machine-readable ``code`` and the HTTP status the
request layer answers with. Database outages are not wrapped: they surface as
``sqlalchemy.exc.SQLAlchemyError``.
"""
from __future__ import annotations


class DomainError(Exception):
    code = "domain_error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message}


class InvalidInput(DomainError):
    """Malformed date/time or out-of-range configuration values."""

    code = "invalid_input"
    status_code = 400


class AuthenticationRequired(DomainError):
    code = "unauthorized"
    status_code = 401


class Forbidden(DomainError):
    """Role or ownership violation."""

    code = "forbidden"
    status_code = 403


class NotFound(DomainError):
    code = "not_found"
    status_code = 404


class SlotConflict(DomainError):
    """The staff member already holds an active booking at that date and time."""

    code = "slot_conflict"
    status_code = 409


class Unavailable(DomainError):
    """The staff member is not accepting bookings."""

    code = "staff_unavailable"
    status_code = 409


class InvalidState(DomainError):
    """Illegal status transition or a voucher that is no longer active."""

    code = "invalid_state"
    status_code = 409


class Expired(DomainError):
    """The voucher is past its expiry; it has been marked EXPIRED."""

    code = "expired"
    status_code = 410
