"""Revenue reporting over completed appointments."""
from __future__ import annotations

import calendar
from datetime import date, datetime

from .appointments import appointments_in_range
from .availability import parse_date
from .clock import current_time
from .models import AppointmentStatus
from .permissions import Actor, Capability, authorize


def _current_month(now: datetime) -> tuple[date, date]:
    last_day = calendar.monthrange(now.year, now.month)[1]
    return date(now.year, now.month, 1), date(now.year, now.month, last_day)


def _add(bucket: dict[str, dict[str, int]], key: str, price_cents: int) -> None:
    entry = bucket.setdefault(key, {"count": 0, "total_cents": 0})
    entry["count"] += 1
    entry["total_cents"] += price_cents


def revenue_report(
    actor: Actor,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    staff_id: int | None = None,
    now: datetime | None = None,
) -> dict[str, object]:
    """Summarise COMPLETED appointments in a date range.

    Missing bounds default to the first and last day of the current month.
    Results are broken down by service type and, unless the report is already
    filtered to one barber, by staff member.
    """
    authorize(actor, Capability.VIEW_REPORTS, "Only administrators can view revenue reports")

    month_start, month_end = _current_month(current_time(now))
    start = parse_date(start_date) if start_date else month_start
    end = parse_date(end_date) if end_date else month_end

    completed = appointments_in_range(start, end, staff_id=staff_id, status=AppointmentStatus.COMPLETED)

    total_cents = 0
    by_service: dict[str, dict[str, int]] = {}
    by_staff: dict[str, dict[str, int]] = {}
    for appointment in completed:
        price = appointment.price_cents or 0
        total_cents += price
        _add(by_service, appointment.service_type, price)
        _add(by_staff, str(appointment.staff_id), price)

    report: dict[str, object] = {
        "period": {"start_date": start.isoformat(), "end_date": end.isoformat()},
        "summary": {
            "total_revenue_cents": total_cents,
            "total_appointments": len(completed),
            "average_ticket_cents": round(total_cents / len(completed)) if completed else 0,
        },
        "service_breakdown": by_service,
    }
    if staff_id is None:
        report["staff_breakdown"] = by_staff
    return report
