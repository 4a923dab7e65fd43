"""Operator commands for the listings database.

    python scripts/manage.py set-role owner@example.com business
    python scripts/manage.py transfer river-brew new-owner@example.com
"""
from __future__ import annotations

import argparse

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.models.enums import UserRole
from app.models.users import UserAuth
from app.services.breweries import BreweryNotFound, resolve_brewery


def _find_user(db: Session, email: str) -> UserAuth | None:
    return db.scalar(select(UserAuth).where(UserAuth.email == email.strip().lower()))


def set_role(db: Session, email: str, role: str) -> int:
    user = _find_user(db, email)
    if user is None:
        print(f"No user with email {email}")
        return 1
    if user.role == role:
        print(f"{user.email} is already {role}")
        return 0
    previous, user.role = user.role, role
    db.commit()
    print(f"{user.email}: {previous} -> {role}")
    return 0


def transfer(db: Session, identifier: str, email: str) -> int:
    try:
        brewery = resolve_brewery(db, identifier)
    except BreweryNotFound as exc:
        print(exc)
        return 1
    user = _find_user(db, email)
    if user is None:
        print(f"No user with email {email}")
        return 1
    brewery.user_id = user.id
    db.commit()
    print(f"{brewery.slug} now owned by {user.email}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Brewery listings admin commands")
    commands = parser.add_subparsers(dest="command", required=True)

    role_cmd = commands.add_parser("set-role", help="change a user's role")
    role_cmd.add_argument("email")
    role_cmd.add_argument("role", choices=[r.value for r in UserRole])

    transfer_cmd = commands.add_parser("transfer", help="hand a brewery listing to another user")
    transfer_cmd.add_argument("brewery", help="id, name or slug")
    transfer_cmd.add_argument("email")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    db = SessionLocal()
    try:
        if args.command == "set-role":
            return set_role(db, args.email, args.role)
        return transfer(db, args.brewery, args.email)
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
