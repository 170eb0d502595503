#!/usr/bin/env python3
"""
OAK portal administration commands.

Admin accounts cannot be created through the signup form. Use this script
against the same database the server uses (DATABASE_URL).

Usage:
  python manage.py create-user --username ada --email ada@example.com --phone 555-0100
  python manage.py create-user --username root --email root@example.com --phone 555-0199 --admin
  python manage.py promote ada@example.com
  python manage.py promote ada@example.com --revoke
"""

import argparse
import sys
from getpass import getpass
from typing import Optional

from auth.errors import AuthError
from auth.models import SignupRequest, normalize_email
from auth.service import register_user
from auth.store import UserStore
from core.config import Settings, get_settings


def _create_user(store: UserStore, settings: Settings, args: argparse.Namespace) -> int:
    password = getpass("Password: ")
    confirm = getpass("Repeat password: ")
    form = SignupRequest(
        username=args.username,
        email=args.email,
        password=password,
        confirm_password=confirm,
        phone_for_withdrawal=args.phone,
    )
    try:
        user = register_user(store, form, rounds=settings.bcrypt_rounds)
    except AuthError as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        return 1
    if args.admin:
        store.update_user(user.id, is_admin=True)
    print(f"  Created user id={user.id} ({user.email}){' as admin' if args.admin else ''}.")
    return 0


def _promote(store: UserStore, args: argparse.Namespace) -> int:
    email = normalize_email(args.email)
    user = store.get_by_email(email)
    if user is None:
        print(f"  [!] No user with email {email}.", file=sys.stderr)
        return 1
    store.update_user(user.id, is_admin=not args.revoke)
    print(f"  {email}: admin={'no' if args.revoke else 'yes'}.")
    return 0


def main(argv: Optional[list[str]] = None, settings: Optional[Settings] = None) -> int:
    parser = argparse.ArgumentParser(prog="manage.py", description="OAK portal administration.")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create an account (password is prompted)")
    create.add_argument("--username", required=True)
    create.add_argument("--email", required=True)
    create.add_argument("--phone", required=True, help="Phone number for withdrawals")
    create.add_argument("--admin", action="store_true", help="Grant the admin flag")

    promote = sub.add_parser("promote", help="Grant or revoke the admin flag")
    promote.add_argument("email")
    promote.add_argument("--revoke", action="store_true", help="Remove the admin flag instead")

    args = parser.parse_args(argv)
    settings = settings or get_settings()
    store = UserStore(settings.database_url)
    try:
        if args.command == "create-user":
            return _create_user(store, settings, args)
        return _promote(store, args)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
