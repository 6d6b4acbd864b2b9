#!/usr/bin/env python3
"""
Create an admin user.

Public registration only accepts patients and doctors, so operators use this
script to bootstrap the first admin account.

Usage:
    python scripts/create_admin_user.py            # interactive
    python scripts/create_admin_user.py --list
"""

import argparse
import getpass
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from clinicflow import crud  # noqa: E402
from clinicflow.core.errors import ConflictError  # noqa: E402
from clinicflow.db.session import database, get_db_session  # noqa: E402
from clinicflow.models.user import Role, User  # noqa: E402


def create_admin_user():
    """Create an admin user interactively"""
    print("Creating ClinicFlow admin user")
    print("=" * 50)

    email = input("Email: ").strip()
    if not email:
        print("Email is required")
        return

    first_name = input("First Name: ").strip()
    last_name = input("Last Name: ").strip()
    if not first_name or not last_name:
        print("First and last name are required")
        return

    password = getpass.getpass("Password: ")
    if len(password) < 8:
        print("Password must be at least 8 characters")
        return
    if password != getpass.getpass("Confirm Password: "):
        print("Passwords do not match")
        return

    with get_db_session() as db:
        try:
            admin = crud.user.create(
                db,
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
                role=Role.ADMIN,
            )
        except ConflictError as e:
            print(f"{e.message}: {email}")
            return

        print("Admin user created successfully!")
        print(f"   ID: {admin.id}")
        print(f"   Email: {admin.email}")
        print(f"   Name: {admin.full_name}")


def list_admin_users():
    """List existing admin users"""
    with get_db_session() as db:
        admins = db.query(User).filter(User.role == Role.ADMIN.value).order_by(User.created_at).all()
        if not admins:
            print("No admin users found")
            return

        print(f"Found {len(admins)} admin users:")
        for admin in admins:
            print(f"  ID: {admin.id}")
            print(f"  Email: {admin.email}")
            print(f"  Name: {admin.full_name}")
            print(f"  Active: {admin.is_active}")
            print(f"  Created: {admin.created_at}")
            print("-" * 30)


def main():
    parser = argparse.ArgumentParser(description="ClinicFlow admin user management")
    parser.add_argument("--list", action="store_true", help="List existing admin users")
    args = parser.parse_args()

    database.init()
    try:
        if args.list:
            list_admin_users()
        else:
            create_admin_user()
    finally:
        database.dispose()


if __name__ == "__main__":
    main()
