"""Bearer tokens, login/logout and the caller identity of a request."""
from __future__ import annotations

from flask import current_app, request
from itsdangerous import BadSignature, URLSafeTimedSerializer
from werkzeug.security import check_password_hash

from .audit import emit_audit
from .clock import current_time
from .errors import AuthenticationRequired, Forbidden, InvalidInput
from .extensions import db
from .models import AuditAction, AuthAccount, Role, User
from .permissions import Actor

TOKEN_SALT = "auth-token"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def build_token(user: User) -> str:
    return _serializer().dumps({"user_id": user.user_id, "role": user.role.value})


def actor_from_token(token: str) -> Actor | None:
    try:
        payload = _serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE_SECONDS"])
        return Actor(id=int(payload["user_id"]), role=Role(payload["role"]))
    except (BadSignature, KeyError, TypeError, ValueError):
        # Invalid, tampered or expired token
        return None


def actor_from_request() -> Actor | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return actor_from_token(auth_header[7:])


def require_actor() -> Actor:
    actor = actor_from_request()
    if actor is None:
        raise AuthenticationRequired("Authentication required")
    return actor


def login(email: str, password: str) -> tuple[str, User]:
    if not isinstance(email, str) or not isinstance(password, str):
        raise InvalidInput("email and password are required")
    email = email.strip().lower()
    if not email or not password:
        raise InvalidInput("email and password are required")

    record = (
        db.session.query(User, AuthAccount)
        .join(AuthAccount, AuthAccount.user_id == User.user_id)
        .filter(User.email == email)
        .first()
    )
    if not record:
        raise AuthenticationRequired("invalid email or password")

    user, auth_account = record
    # Only werkzeug-format hashes (pbkdf2, scrypt) are supported.
    if not check_password_hash(auth_account.password_hash, password):
        raise AuthenticationRequired("invalid email or password")
    if not user.is_active:
        raise Forbidden("account is disabled")

    auth_account.last_login_at = current_time()
    db.session.commit()

    emit_audit(user.user_id, AuditAction.LOGIN, "user", user.user_id, {"email": email})
    return build_token(user), user


def logout(actor: Actor) -> None:
    emit_audit(actor.id, AuditAction.LOGOUT, "user", actor.id)
