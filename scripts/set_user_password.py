"""Utility to seed or update user accounts for local development."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure the project root is on sys.path so ``barbershop`` can be imported when the script is executed directly.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from barbershop import create_app
from barbershop.extensions import db
from barbershop.models import AuthAccount, Role, Staff, User

DEFAULT_NAMES = {
    Role.SUPER_ADMIN: "Super Admin",
    Role.ADMIN: "Admin User",
    Role.BARBEIRO: "Barber User",
    Role.CLIENTE: "Client User",
}


def set_password(email: str, password: str, role: Role = Role.CLIENTE) -> None:
    app = create_app()

    with app.app_context():
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(name=DEFAULT_NAMES[role], email=email, role=role)
            db.session.add(user)
            db.session.flush()
            print(f"Created new {role.value} user: {email}")
        elif user.role != role:
            print(f"Updating user role from '{user.role.value}' to '{role.value}'")
            user.role = role

        # Barbers need a staff profile before they can receive bookings
        if role == Role.BARBEIRO and Staff.query.filter_by(user_id=user.user_id).first() is None:
            db.session.add(Staff(user_id=user.user_id))
            print(f"Created staff profile for: {email}")

        account = AuthAccount.query.filter_by(user_id=user.user_id).first()
        if account is None:
            account = AuthAccount(user_id=user.user_id, password_hash="")
            db.session.add(account)

        account.password_hash = generate_password_hash(password)
        db.session.commit()

        print(f"Password for {role.value} user '{email}' has been set successfully.")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a user or reset its password for local testing.")
    parser.add_argument("email", help="User email address")
    parser.add_argument("password", help="Plain-text password to hash and store")
    parser.add_argument(
        "--role",
        choices=[role.value for role in Role],
        default=Role.CLIENTE.value,
        help="User role (default: CLIENTE)",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    set_password(args.email.strip().lower(), args.password, Role(args.role))


if __name__ == "__main__":
    main()
