#!/usr/bin/env python3
# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Create admin user. Run: python -m scripelle_server.scripts.create_admin"""

import asyncio
import getpass
import sys

from scripelle_server.auth import credential_manager
from scripelle_server.config import settings
from scripelle_server.credentials import check_password_strength
from scripelle_server.database import async_session_maker, init_db
from scripelle_server.errors import WeakPassword
from scripelle_server.services import users


async def main():
    await init_db()
    email = input("Admin email: ").strip()
    first_name = input("First name: ").strip()
    last_name = input("Last name: ").strip()
    password = getpass.getpass("Password: ")
    if not email or not password:
        print("Email and password required")
        sys.exit(1)
    try:
        check_password_strength(password, settings.min_password_length)
    except WeakPassword as e:
        print(e.detail)
        sys.exit(1)

    async with async_session_maker() as session:
        if await users.get_user_by_email(session, email):
            print("User already exists")
            sys.exit(1)
        await users.create_user(
            session,
            email=email,
            password_hash=credential_manager.hash_password(password),
            first_name=first_name,
            last_name=last_name,
            is_admin=True,
        )
        print("Admin user created.")


if __name__ == "__main__":
    asyncio.run(main())
