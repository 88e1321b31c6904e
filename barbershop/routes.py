"""HTTP routes for the barbershop backend.

The handlers only translate JSON to service calls; the rules live in the
service modules.
"""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from . import appointments, audit, auth, availability, loyalty, reports, staff, vouchers
from .errors import DomainError, InvalidInput
from .extensions import db

bp = Blueprint("api", __name__)


@bp.errorhandler(DomainError)
def handle_domain_error(exc: DomainError):
    return jsonify(exc.to_dict()), exc.status_code


@bp.errorhandler(SQLAlchemyError)
def handle_database_error(exc: SQLAlchemyError):
    db.session.rollback()
    current_app.logger.exception("Database error while handling %s", request.path, exc_info=exc)
    return jsonify({"error": "database_error"}), 500


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidInput("request body must be a JSON object")
    return payload


def _optional_int(payload, key: str) -> int | None:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidInput(f"{key} must be an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidInput(f"{key} must be an integer")
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{key} must be an integer") from None


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """
    Expose a simple uptime check endpoint.
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is healthy and running.
    """
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database.
    ---
    tags:
      - Health
    responses:
      200:
        description: Database reachable
      500:
        description: Database unavailable
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


# --- Authentication ---


@bp.post("/auth/login")
def login() -> tuple[dict[str, object], int]:
    """Authenticate a user by email/password and return an access token.
    ---
    tags:
      - Authentication
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            email:
              type: string
            password:
              type: string
    responses:
      200:
        description: Login successful, returns access token
      400:
        description: Missing email or password
      401:
        description: Invalid credentials
      403:
        description: Account disabled
    """
    payload = request.get_json(silent=True) or {}
    token, user = auth.login(payload.get("email"), payload.get("password"))
    return jsonify({"token": token, "user": user.to_dict_basic()}), 200


@bp.post("/auth/logout")
def logout() -> tuple[dict[str, object], int]:
    """Record a logout for the caller.
    ---
    tags:
      - Authentication
    responses:
      200:
        description: Logged out
      401:
        description: Missing or invalid token
    """
    auth.logout(auth.require_actor())
    return jsonify({"message": "Logged out"}), 200


# --- Staff ---


@bp.get("/staff")
def list_staff() -> tuple[dict[str, object], int]:
    """List active barbers clients can book with.
    ---
    tags:
      - Staff
    parameters:
      - in: query
        name: available
        required: false
        type: boolean
        description: Only barbers currently accepting bookings
    responses:
      200:
        description: Barber roster
    """
    available_only = request.args.get("available", "").lower() in {"1", "true"}
    members = staff.list_staff(available_only=available_only)
    return jsonify({"staff": [member.to_dict() for member in members]}), 200


@bp.post("/staff")
def create_staff() -> tuple[dict[str, object], int]:
    """Create a barber account with a staff profile.
    ---
    tags:
      - Staff
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            name:
              type: string
            email:
              type: string
            password:
              type: string
            phone:
              type: string
            specialty:
              type: string
            experience_years:
              type: integer
    responses:
      201:
        description: Barber created
      400:
        description: Invalid input or email already in use
      403:
        description: Caller is not an administrator
    """
    actor = auth.require_actor()
    payload = _json_body()
    member = staff.create_staff(
        actor,
        name=payload.get("name"),
        email=payload.get("email"),
        password=payload.get("password"),
        phone=payload.get("phone"),
        specialty=payload.get("specialty"),
        experience_years=_optional_int(payload, "experience_years"),
    )
    return jsonify({"staff": member.to_dict()}), 201


@bp.put("/staff/<int:staff_id>/availability")
def set_staff_availability(staff_id: int) -> tuple[dict[str, object], int]:
    """Open or close a barber's bookings.
    ---
    tags:
      - Staff
    parameters:
      - in: path
        name: staff_id
        required: true
        schema:
          type: integer
      - in: body
        name: body
        required: true
        schema:
          properties:
            is_available:
              type: boolean
    responses:
      200:
        description: Availability updated
      400:
        description: is_available is not a boolean
      403:
        description: Caller is not an administrator
      404:
        description: Staff member not found
    """
    actor = auth.require_actor()
    payload = _json_body()
    member = staff.set_staff_availability(actor, staff_id, payload.get("is_available"))
    return jsonify({"staff": member.to_dict()}), 200


# --- Appointments ---


@bp.post("/appointments")
def create_appointment() -> tuple[dict[str, object], int]:
    """Book an appointment.
    ---
    tags:
      - Appointments
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            staff_id:
              type: integer
            service_type:
              type: string
            date:
              type: string
              example: "2025-06-16"
            time:
              type: string
              example: "14:30"
            notes:
              type: string
            price_cents:
              type: integer
            client_id:
              type: integer
              description: Administrators only, book on behalf of a client
    responses:
      201:
        description: Appointment created in SCHEDULED status
      400:
        description: Invalid input
      404:
        description: Staff member or client not found
      409:
        description: Slot already taken or staff unavailable
    """
    actor = auth.require_actor()
    payload = _json_body()
    staff_id = _optional_int(payload, "staff_id")
    if staff_id is None:
        raise InvalidInput("staff_id is required")

    appointment = appointments.create_appointment(
        actor,
        staff_id=staff_id,
        service_type=payload.get("service_type"),
        appointment_date=payload.get("date"),
        appointment_time=payload.get("time"),
        notes=payload.get("notes"),
        price_cents=_optional_int(payload, "price_cents"),
        client_id=_optional_int(payload, "client_id"),
    )
    return jsonify({"appointment": appointment.to_dict()}), 201


@bp.get("/appointments")
def list_appointments() -> tuple[dict[str, object], int]:
    """List appointments visible to the caller.
    ---
    tags:
      - Appointments
    responses:
      200:
        description: Clients get their own, barbers their assigned, admins all
      401:
        description: Missing or invalid token
    """
    actor = auth.require_actor()
    results = appointments.list_appointments(actor)
    return jsonify({"appointments": [appt.to_dict() for appt in results]}), 200


@bp.get("/appointments/pending")
def list_pending_appointments() -> tuple[dict[str, object], int]:
    """List SCHEDULED appointments awaiting confirmation.
    ---
    tags:
      - Appointments
    responses:
      200:
        description: Pending appointments
      403:
        description: Clients may not view the pending queue
    """
    actor = auth.require_actor()
    results = appointments.list_pending_appointments(actor)
    return jsonify({"appointments": [appt.to_dict() for appt in results]}), 200


@bp.put("/appointments/<int:appointment_id>/status")
def update_appointment_status(appointment_id: int) -> tuple[dict[str, object], int]:
    """Update the status (and optionally notes/price) of an appointment.
    ---
    tags:
      - Appointments
    parameters:
      - in: path
        name: appointment_id
        required: true
        schema:
          type: integer
      - in: body
        name: body
        required: true
        schema:
          properties:
            status:
              type: string
              enum: [SCHEDULED, CONFIRMED, IN_PROGRESS, COMPLETED, CANCELLED]
            notes:
              type: string
            price_cents:
              type: integer
    responses:
      200:
        description: Appointment updated
      403:
        description: Caller may not update this appointment
      404:
        description: Appointment not found
      409:
        description: Illegal status transition
    """
    actor = auth.require_actor()
    payload = _json_body()
    appointment = appointments.update_appointment_status(
        appointment_id,
        actor,
        new_status=payload.get("status"),
        notes=payload.get("notes"),
        price_cents=_optional_int(payload, "price_cents"),
    )
    return jsonify({"appointment": appointment.to_dict()}), 200


@bp.delete("/appointments/<int:appointment_id>")
def delete_appointment(appointment_id: int):
    """Permanently delete an appointment.
    ---
    tags:
      - Appointments
    parameters:
      - in: path
        name: appointment_id
        required: true
        schema:
          type: integer
    responses:
      204:
        description: Appointment deleted
      403:
        description: Only administrators can delete appointments
      404:
        description: Appointment not found
    """
    actor = auth.require_actor()
    appointments.delete_appointment(appointment_id, actor)
    return "", 204


# --- Business hours & availability ---


@bp.get("/config/hours")
def get_business_hours() -> tuple[dict[str, object], int]:
    """Weekly business hours, or the default schedule when none is configured.
    ---
    tags:
      - Availability
    responses:
      200:
        description: Business hours keyed by weekday
    """
    hours, is_default = availability.get_business_hours()
    return jsonify({"business_hours": hours, "is_default": is_default}), 200


@bp.post("/config/hours")
def set_business_hours() -> tuple[dict[str, object], int]:
    """Replace the weekly business hours.
    ---
    tags:
      - Availability
    parameters:
      - in: body
        name: body
        required: true
        description: Every weekday key, each null (closed) or {start, end} in HH:MM
    responses:
      200:
        description: Business hours updated
      400:
        description: Invalid hours
      403:
        description: Caller is not an administrator
    """
    actor = auth.require_actor()
    config = availability.set_business_hours(actor, _json_body())
    return jsonify({"message": "Business hours updated", "config": config.to_dict()}), 200


@bp.get("/config/available-slots")
def get_available_slots() -> tuple[dict[str, object], int]:
    """Open 30-minute slots for a date, optionally for one staff member.
    ---
    tags:
      - Availability
    parameters:
      - in: query
        name: date
        required: true
        type: string
      - in: query
        name: staff_id
        required: false
        type: integer
    responses:
      200:
        description: Success
      400:
        description: Invalid date
    """
    date_str = request.args.get("date")
    if not date_str:
        raise InvalidInput("date (YYYY-MM-DD) is required")
    staff_id = _optional_int(request.args, "staff_id")
    return jsonify(availability.available_slots(date_str, staff_id)), 200


# --- Loyalty ---


@bp.post("/loyalty/vouchers/config")
def configure_vouchers() -> tuple[dict[str, object], int]:
    """Replace the active loyalty program rules.
    ---
    tags:
      - Loyalty
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            services_required:
              type: integer
            discount_percentage:
              type: integer
            validity_days:
              type: integer
            description:
              type: string
    responses:
      201:
        description: New configuration active
      400:
        description: Values out of range
      403:
        description: Caller is not an administrator
    """
    actor = auth.require_actor()
    payload = _json_body()
    config = vouchers.configure_vouchers(
        actor,
        services_required=payload.get("services_required"),
        discount_percentage=payload.get("discount_percentage"),
        validity_days=payload.get("validity_days"),
        description=payload.get("description"),
    )
    return jsonify({"config": config.to_dict()}), 201


@bp.get("/loyalty/vouchers")
def get_my_vouchers() -> tuple[dict[str, object], int]:
    """The caller's vouchers, loyalty progress and the active program rules.
    ---
    tags:
      - Loyalty
    responses:
      200:
        description: Vouchers, client_stats and loyalty_config
      401:
        description: Missing or invalid token
    """
    actor = auth.require_actor()
    return jsonify(loyalty.client_loyalty_summary(actor.id)), 200


@bp.post("/loyalty/vouchers/redeem")
def redeem_voucher() -> tuple[dict[str, object], int]:
    """Redeem one of the caller's vouchers.
    ---
    tags:
      - Loyalty
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            code:
              type: string
            appointment_id:
              type: integer
    responses:
      200:
        description: Voucher redeemed
      403:
        description: Voucher or appointment belongs to someone else
      404:
        description: Voucher or appointment not found
      409:
        description: Voucher already used or expired
      410:
        description: Voucher expired on this attempt
    """
    actor = auth.require_actor()
    payload = _json_body()
    code = payload.get("code")
    code = code.strip() if isinstance(code, str) else ""
    if not code:
        raise InvalidInput("code is required")

    voucher = vouchers.redeem_voucher(
        code, actor, appointment_id=_optional_int(payload, "appointment_id")
    )
    return jsonify({"message": "Voucher redeemed", "voucher": voucher.to_dict()}), 200


# --- Reports ---


@bp.get("/reports/revenue")
def get_revenue_report() -> tuple[dict[str, object], int]:
    """Revenue from completed appointments over a date range.
    ---
    tags:
      - Reports
    parameters:
      - in: query
        name: start_date
        required: false
        type: string
        description: YYYY-MM-DD, defaults to the first day of the current month
      - in: query
        name: end_date
        required: false
        type: string
        description: YYYY-MM-DD, defaults to the last day of the current month
      - in: query
        name: staff_id
        required: false
        type: integer
    responses:
      200:
        description: Summary with service and staff breakdowns
      400:
        description: Invalid date range
      403:
        description: Caller is not an administrator
    """
    actor = auth.require_actor()
    report = reports.revenue_report(
        actor,
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
        staff_id=_optional_int(request.args, "staff_id"),
    )
    return jsonify(report), 200


# --- Administration ---


@bp.get("/admin/logs")
def get_system_logs() -> tuple[dict[str, object], int]:
    """Most recent audit log entries.
    ---
    tags:
      - Admin
    parameters:
      - in: query
        name: limit
        required: false
        type: integer
        default: 100
    responses:
      200:
        description: Audit entries, newest first
      403:
        description: Caller is not a super administrator
    """
    actor = auth.require_actor()
    limit = request.args.get("limit", 100, type=int)
    logs = audit.list_system_logs(actor, limit=limit)
    return jsonify({"logs": [log.to_dict() for log in logs]}), 200


@bp.post("/admin/toggle-logs")
def toggle_logging() -> tuple[dict[str, object], int]:
    """Turn audit log persistence on or off.
    ---
    tags:
      - Admin
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            enabled:
              type: boolean
    responses:
      200:
        description: New logging state
      400:
        description: enabled is not a boolean
      403:
        description: Caller is not a super administrator
    """
    actor = auth.require_actor()
    payload = _json_body()
    if not isinstance(payload.get("enabled"), bool):
        raise InvalidInput("enabled must be a boolean")
    config = audit.set_logging_enabled(actor, payload["enabled"])
    return jsonify({"logging_enabled": config.value}), 200


def register_routes(app) -> None:
    app.register_blueprint(bp)
