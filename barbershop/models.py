"""Database models for the barbershop backend."""
from __future__ import annotations

import enum
from datetime import datetime, timezone

from .extensions import db


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _iso(value) -> str | None:
    return value.isoformat() if value else None


class Role(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    BARBEIRO = "BARBEIRO"
    CLIENTE = "CLIENTE"


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})
ACTIVE_STATUSES = frozenset(
    {AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED, AppointmentStatus.IN_PROGRESS}
)


class VoucherStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    USED = "USED"
    EXPIRED = "EXPIRED"


class AuditAction(str, enum.Enum):
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    APPOINTMENT_CREATE = "APPOINTMENT_CREATE"
    APPOINTMENT_UPDATE = "APPOINTMENT_UPDATE"
    VOUCHER_REDEEM = "VOUCHER_REDEEM"


class User(db.Model):
    __tablename__ = "users"

    user_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    phone = db.Column(db.String(30))
    role = db.Column(
        db.Enum(Role, name="user_role", native_enum=False, validate_strings=True),
        nullable=False,
        default=Role.CLIENTE,
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    auth_account = db.relationship("AuthAccount", back_populates="user", uselist=False)
    staff_profile = db.relationship("Staff", back_populates="user", uselist=False)

    def to_dict_basic(self) -> dict[str, object]:
        return {
            "id": self.user_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role.value if self.role else None,
            "is_active": bool(self.is_active),
        }


class AuthAccount(db.Model):
    __tablename__ = "auth_accounts"

    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), primary_key=True)
    password_hash = db.Column(db.String(255), nullable=False)
    last_login_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    user = db.relationship("User", back_populates="auth_account")


class Staff(db.Model):
    """Barber profile attached to a user account."""

    __tablename__ = "staff"

    staff_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False, unique=True)
    specialty = db.Column(db.String(150))
    experience_years = db.Column(db.Integer)
    is_available = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    user = db.relationship("User", back_populates="staff_profile")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.staff_id,
            "user_id": self.user_id,
            "specialty": self.specialty,
            "experience_years": self.experience_years,
            "is_available": bool(self.is_available),
            "user": self.user.to_dict_basic() if self.user else None,
        }


class Appointment(db.Model):
    """A booking between a client and a staff member."""

    __tablename__ = "appointments"
    __table_args__ = (
        # At most one active booking per staff member and slot.
        db.Index(
            "uq_appointments_active_slot",
            "staff_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            sqlite_where=db.text("status IN ('SCHEDULED', 'CONFIRMED', 'IN_PROGRESS')"),
            postgresql_where=db.text("status IN ('SCHEDULED', 'CONFIRMED', 'IN_PROGRESS')"),
        ),
    )

    appointment_id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False, index=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.staff_id"), nullable=False, index=True)
    service_type = db.Column(db.String(150), nullable=False)
    appointment_date = db.Column(db.Date, nullable=False, index=True)
    appointment_time = db.Column(db.Time, nullable=False)
    status = db.Column(
        db.Enum(
            AppointmentStatus,
            name="appointment_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        default=AppointmentStatus.SCHEDULED,
    )
    notes = db.Column(db.Text)
    price_cents = db.Column(db.Integer)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    staff = db.relationship("Staff")
    client = db.relationship("User")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.appointment_id,
            "client_id": self.client_id,
            "client": {
                "id": self.client.user_id,
                "name": self.client.name,
                "email": self.client.email,
            } if self.client else None,
            "staff_id": self.staff_id,
            "staff": {
                "id": self.staff.staff_id,
                "name": self.staff.user.name,
            } if self.staff and self.staff.user else None,
            "service_type": self.service_type,
            "date": self.appointment_date.isoformat() if self.appointment_date else None,
            "time": self.appointment_time.strftime("%H:%M") if self.appointment_time else None,
            "status": self.status.value if self.status else None,
            "notes": self.notes,
            "price_cents": self.price_cents,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class BusinessConfig(db.Model):
    """Key/value settings edited by administrators (business hours, audit toggle)."""

    __tablename__ = "business_config"

    config_id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(100), unique=True, nullable=False)
    value = db.Column(db.JSON, nullable=False)
    description = db.Column(db.Text)
    updated_by = db.Column(db.Integer, db.ForeignKey("users.user_id"))
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.config_id,
            "key": self.key,
            "value": self.value,
            "description": self.description,
            "updated_by": self.updated_by,
            "updated_at": _iso(self.updated_at),
        }


class ClientServiceCount(db.Model):
    """Running loyalty ledger for a client."""

    __tablename__ = "client_service_counts"

    counter_id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False, unique=True)
    completed_services = db.Column(db.Integer, nullable=False, default=0)
    total_spent_cents = db.Column(db.Integer, nullable=False, default=0)
    last_service_at = db.Column(db.DateTime(timezone=True))
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    client = db.relationship("User")

    def to_dict(self) -> dict[str, object]:
        return {
            "client_id": self.client_id,
            "completed_services": self.completed_services,
            "total_spent_cents": self.total_spent_cents,
            "last_service_at": _iso(self.last_service_at),
        }


class VoucherConfig(db.Model):
    """Loyalty program rules; only one row may be active."""

    __tablename__ = "voucher_configs"
    __table_args__ = (
        db.Index(
            "uq_voucher_configs_single_active",
            "is_active",
            unique=True,
            sqlite_where=db.text("is_active = 1"),
            postgresql_where=db.text("is_active"),
        ),
    )

    config_id = db.Column(db.Integer, primary_key=True)
    services_required = db.Column(db.Integer, nullable=False)
    discount_percentage = db.Column(db.Integer, nullable=False)
    validity_days = db.Column(db.Integer, nullable=False)
    description = db.Column(db.Text, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.config_id,
            "services_required": self.services_required,
            "discount_percentage": self.discount_percentage,
            "validity_days": self.validity_days,
            "description": self.description,
            "is_active": bool(self.is_active),
            "created_at": _iso(self.created_at),
        }


class Voucher(db.Model):
    __tablename__ = "vouchers"

    voucher_id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False, index=True)
    config_id = db.Column(db.Integer, db.ForeignKey("voucher_configs.config_id"), nullable=False)
    code = db.Column(db.String(64), unique=True, nullable=False)
    status = db.Column(
        db.Enum(VoucherStatus, name="voucher_status", native_enum=False, validate_strings=True),
        nullable=False,
        default=VoucherStatus.ACTIVE,
    )
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    used_at = db.Column(db.DateTime(timezone=True))
    used_appointment_id = db.Column(
        db.Integer, db.ForeignKey("appointments.appointment_id", ondelete="SET NULL")
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utc_now)

    config = db.relationship("VoucherConfig")

    def is_past_expiry(self, now: datetime) -> bool:
        return ensure_aware(self.expires_at) < now

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.voucher_id,
            "client_id": self.client_id,
            "config_id": self.config_id,
            "code": self.code,
            "status": self.status.value if self.status else None,
            "discount_percentage": self.config.discount_percentage if self.config else None,
            "expires_at": _iso(self.expires_at),
            "used_at": _iso(self.used_at),
            "used_appointment_id": self.used_appointment_id,
            "created_at": _iso(self.created_at),
        }


class SystemLog(db.Model):
    """Audit trail written by the audit receiver."""

    __tablename__ = "system_logs"

    log_id = db.Column(db.Integer, primary_key=True)
    action = db.Column(
        db.Enum(AuditAction, name="log_action", native_enum=False, validate_strings=True),
        nullable=False,
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"))
    resource_id = db.Column(db.String(64))
    resource_type = db.Column(db.String(50))
    details = db.Column(db.JSON)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.log_id,
            "action": self.action.value if self.action else None,
            "user_id": self.user_id,
            "resource_id": self.resource_id,
            "resource_type": self.resource_type,
            "details": self.details,
            "created_at": _iso(self.created_at),
        }
