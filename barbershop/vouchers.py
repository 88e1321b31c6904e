"""Voucher configuration, issuance and single-use redemption."""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import update

from .audit import emit_audit
from .clock import current_time
from .errors import Expired, Forbidden, InvalidInput, InvalidState, NotFound
from .extensions import db
from .models import Appointment, AuditAction, Voucher, VoucherConfig, VoucherStatus
from .permissions import Actor, Capability, authorize

CODE_PREFIX = "LOYALTY-"


def get_active_config() -> VoucherConfig | None:
    return (
        VoucherConfig.query.filter_by(is_active=True)
        .order_by(VoucherConfig.created_at.desc())
        .first()
    )


def _require_int(name: str, value, minimum: int, maximum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{name} must be an integer")
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f"between {minimum} and {maximum}" if maximum is not None else f"at least {minimum}"
        raise InvalidInput(f"{name} must be {bounds}")
    return value


def configure_vouchers(
    actor: Actor,
    services_required: int,
    discount_percentage: int,
    validity_days: int,
    description: str,
) -> VoucherConfig:
    """Replace the active loyalty rules with a new configuration."""
    authorize(actor, Capability.MANAGE_LOYALTY, "Only administrators can configure vouchers")

    services_required = _require_int("services_required", services_required, 1)
    discount_percentage = _require_int("discount_percentage", discount_percentage, 1, 100)
    validity_days = _require_int("validity_days", validity_days, 1)
    description = (description or "").strip()
    if not description:
        raise InvalidInput("description is required")

    db.session.execute(
        update(VoucherConfig).where(VoucherConfig.is_active.is_(True)).values(is_active=False)
    )
    config = VoucherConfig(
        services_required=services_required,
        discount_percentage=discount_percentage,
        validity_days=validity_days,
        description=description,
        is_active=True,
    )
    db.session.add(config)
    db.session.commit()

    emit_audit(
        actor.id,
        AuditAction.CREATE,
        "voucher_config",
        config.config_id,
        {
            "services_required": services_required,
            "discount_percentage": discount_percentage,
            "validity_days": validity_days,
            "description": description,
        },
    )
    return config


def generate_code() -> str:
    return CODE_PREFIX + secrets.token_urlsafe(12)


def issue_voucher(client_id: int, config: VoucherConfig, now: datetime | None = None) -> Voucher:
    """Mint an ACTIVE voucher; the caller owns the transaction."""
    now = current_time(now)
    voucher = Voucher(
        client_id=client_id,
        config_id=config.config_id,
        code=generate_code(),
        status=VoucherStatus.ACTIVE,
        expires_at=now + timedelta(days=config.validity_days),
        created_at=now,
    )
    db.session.add(voucher)
    db.session.flush()

    current_app.logger.info("Voucher %s issued to client %s", voucher.code, client_id)
    return voucher


def _expire(voucher: Voucher) -> None:
    db.session.execute(
        update(Voucher)
        .where(Voucher.voucher_id == voucher.voucher_id, Voucher.status == VoucherStatus.ACTIVE)
        .values(status=VoucherStatus.EXPIRED)
    )


def redeem_voucher(
    code: str,
    actor: Actor,
    appointment_id: int | None = None,
    now: datetime | None = None,
) -> Voucher:
    authorize(actor, Capability.REDEEM_VOUCHER)
    now = current_time(now)

    voucher = Voucher.query.filter_by(code=code).first()
    if voucher is None:
        raise NotFound("Voucher not found")
    if voucher.client_id != actor.id:
        raise Forbidden("This voucher does not belong to you")
    if voucher.status != VoucherStatus.ACTIVE:
        raise InvalidState("Voucher has already been used or has expired")

    if voucher.is_past_expiry(now):
        _expire(voucher)
        db.session.commit()
        current_app.logger.info("Voucher %s expired on redemption attempt", code)
        raise Expired("Voucher has expired")

    if appointment_id is not None:
        appointment = db.session.get(Appointment, appointment_id)
        if appointment is None:
            raise NotFound("Appointment not found")
        if appointment.client_id != actor.id:
            raise Forbidden("This appointment does not belong to you")

    result = db.session.execute(
        update(Voucher)
        .where(Voucher.voucher_id == voucher.voucher_id, Voucher.status == VoucherStatus.ACTIVE)
        .values(status=VoucherStatus.USED, used_at=now, used_appointment_id=appointment_id)
    )
    if result.rowcount != 1:
        db.session.rollback()
        raise InvalidState("Voucher has already been used or has expired")
    db.session.commit()

    emit_audit(
        actor.id,
        AuditAction.VOUCHER_REDEEM,
        "voucher",
        voucher.voucher_id,
        {"voucher_code": code, "appointment_id": appointment_id},
    )
    return voucher


def list_vouchers(client_id: int, now: datetime | None = None) -> list[Voucher]:
    """A client's vouchers, newest first, with overdue ones marked EXPIRED."""
    now = current_time(now)
    vouchers = (
        Voucher.query.filter_by(client_id=client_id)
        .order_by(Voucher.created_at.desc(), Voucher.voucher_id.desc())
        .all()
    )
    overdue = [v for v in vouchers if v.status == VoucherStatus.ACTIVE and v.is_past_expiry(now)]
    if overdue:
        for voucher in overdue:
            _expire(voucher)
        db.session.commit()
        current_app.logger.info("Expired %d overdue vouchers for client %s", len(overdue), client_id)
    return vouchers
