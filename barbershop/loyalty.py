"""Per-client completed-service ledger and voucher thresholds."""
from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from .clock import current_time
from .extensions import db
from .models import ClientServiceCount, Voucher
from .vouchers import get_active_config, issue_voucher, list_vouchers


_UPSERT_INSERTS = {"postgresql": postgresql_insert, "sqlite": sqlite_insert}


def ensure_ledger_row(client_id: int) -> None:
    """Create the client's ledger row unless it already exists.

    Two first-ever completions for one client may both get here; the unique
    ``client_id`` keeps one row and the other insert becomes a no-op.
    """
    values = {"client_id": client_id, "completed_services": 0, "total_spent_cents": 0}
    insert = _UPSERT_INSERTS.get(db.session.get_bind().dialect.name)
    if insert is not None:
        db.session.execute(
            insert(ClientServiceCount).values(**values).on_conflict_do_nothing(index_elements=["client_id"])
        )
        return

    try:
        with db.session.begin_nested():
            db.session.add(ClientServiceCount(**values))
    except IntegrityError:
        current_app.logger.info("Ledger row for client %s created concurrently", client_id)


def record_completed_service(
    client_id: int,
    amount_paid_cents: int | None,
    now: datetime | None = None,
) -> tuple[ClientServiceCount, Voucher | None]:
    """Count one completed service and issue a voucher on a threshold crossing.

    Runs inside the caller's transaction: only flushes, never commits. The
    threshold is checked against the post-increment count, so the service
    that makes the count a multiple of ``services_required`` earns the voucher.
    """
    now = current_time(now)

    counter = ClientServiceCount.query.filter_by(client_id=client_id).with_for_update().first()
    if counter is None:
        ensure_ledger_row(client_id)
        counter = ClientServiceCount.query.filter_by(client_id=client_id).with_for_update().one()

    counter.completed_services = (counter.completed_services or 0) + 1
    counter.total_spent_cents = (counter.total_spent_cents or 0) + (amount_paid_cents or 0)
    counter.last_service_at = now
    db.session.flush()

    voucher = None
    config = get_active_config()
    # NOTE: progress is not rescaled when services_required changes mid-way.
    if config is not None and counter.completed_services % config.services_required == 0:
        voucher = issue_voucher(client_id, config, now=now)
    elif config is None:
        current_app.logger.debug("No active voucher config; skipping threshold check for %s", client_id)

    return counter, voucher


def client_stats(client_id: int) -> dict[str, object]:
    counter = ClientServiceCount.query.filter_by(client_id=client_id).first()
    config = get_active_config()

    completed = counter.completed_services if counter else 0
    next_voucher_in = None
    if config is not None:
        next_voucher_in = config.services_required - (completed % config.services_required)

    return {
        "completed_services": completed,
        "total_spent_cents": counter.total_spent_cents if counter else 0,
        "last_service_at": counter.to_dict()["last_service_at"] if counter else None,
        "next_voucher_in": next_voucher_in,
    }


def client_loyalty_summary(client_id: int, now: datetime | None = None) -> dict[str, object]:
    """Vouchers (lazily expired), ledger stats and the active program rules."""
    vouchers = list_vouchers(client_id, now=now)
    config = get_active_config()
    return {
        "vouchers": [voucher.to_dict() for voucher in vouchers],
        "client_stats": client_stats(client_id),
        "loyalty_config": config.to_dict() if config else None,
    }
