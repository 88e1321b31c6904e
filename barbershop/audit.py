"""Audit events emitted after business transactions commit.

Services call :func:`emit_audit` once their own commit succeeded. Receivers are
connected to :data:`audit_event`; a failing receiver is logged and never
changes the outcome of the operation that emitted the event.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from blinker import Namespace
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .models import AuditAction, BusinessConfig, SystemLog
from .permissions import Actor, Capability, authorize

LOGGING_ENABLED_KEY = "LOGGING_ENABLED"

_signals = Namespace()
audit_event = _signals.signal("audit-event")


@dataclass(frozen=True)
class AuditEntry:
    actor_id: int | None
    action: AuditAction
    resource_type: str | None = None
    resource_id: str | None = None
    details: dict = field(default_factory=dict)


def emit_audit(
    actor_id: int | None,
    action: AuditAction,
    resource_type: str | None = None,
    resource_id: object = None,
    details: dict | None = None,
) -> AuditEntry:
    entry = AuditEntry(
        actor_id=actor_id,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=details or {},
    )
    sender = current_app._get_current_object()
    for receiver in list(audit_event.receivers_for(sender)):
        try:
            receiver(sender, entry=entry)
        except Exception as exc:  # audit failures never fail the operation
            current_app.logger.exception(
                "Audit receiver failed for %s on %s %s",
                entry.action.value,
                entry.resource_type,
                entry.resource_id,
                exc_info=exc,
            )
    return entry


def is_logging_enabled() -> bool:
    config = BusinessConfig.query.filter_by(key=LOGGING_ENABLED_KEY).first()
    return config.value is True if config else True


def record_system_log(sender, entry: AuditEntry, **extra) -> None:
    """Default receiver: persist the entry as a ``SystemLog`` row."""
    try:
        if not is_logging_enabled():
            return
        db.session.add(
            SystemLog(
                action=entry.action,
                user_id=entry.actor_id,
                resource_id=entry.resource_id,
                resource_type=entry.resource_type,
                details=entry.details,
            )
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


def set_logging_enabled(actor: Actor, enabled: bool) -> BusinessConfig:
    authorize(actor, Capability.MANAGE_AUDIT_LOG, "Only super administrators can toggle logging")

    config = BusinessConfig.query.filter_by(key=LOGGING_ENABLED_KEY).first()
    if config is None:
        config = BusinessConfig(
            key=LOGGING_ENABLED_KEY,
            value=bool(enabled),
            description="Whether audit events are persisted",
            updated_by=actor.id,
        )
        db.session.add(config)
    else:
        config.value = bool(enabled)
        config.updated_by = actor.id
    db.session.commit()

    current_app.logger.info("Audit logging %s by user %s", "enabled" if enabled else "disabled", actor.id)
    return config


def list_system_logs(actor: Actor, limit: int = 100) -> list[SystemLog]:
    authorize(actor, Capability.MANAGE_AUDIT_LOG, "Only super administrators can read the audit log")
    limit = min(500, max(1, limit))
    return (
        SystemLog.query.order_by(SystemLog.created_at.desc(), SystemLog.log_id.desc())
        .limit(limit)
        .all()
    )
