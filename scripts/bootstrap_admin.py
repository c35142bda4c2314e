#!/usr/bin/env python3
"""
创建管理员账号（默认使用 config.auth 中的 admin_email / admin_default_password）。

用法：
    python scripts/bootstrap_admin.py
    python scripts/bootstrap_admin.py --email chair@example.org --password mypass --name "PC Chair"
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlmodel import Session

from config.settings import settings
from confreview.db import get_engine, init_db
from confreview.stores.users import seed_admin


def main():
    parser = argparse.ArgumentParser(description="Bootstrap an admin account")
    parser.add_argument("--email", default=None, help="Admin email (default: from config)")
    parser.add_argument("--password", default=None, help="Admin password (default: from config)")
    parser.add_argument("--name", default=None, help="Display name (default: from config)")
    args = parser.parse_args()

    email = args.email or settings.auth.admin_email
    password = args.password or settings.auth.admin_default_password
    if not email or not password:
        print("Error: email and password required (set in config or --email/--password)")
        sys.exit(1)

    init_db()
    with Session(get_engine()) as session:
        created = seed_admin(session, email=email, password=password, name=args.name)

    if created:
        print(f"Created admin user: {email}")
        print("Login: POST /auth/login with body {\"email\": \"%s\", \"password\": \"...\"}" % email)
    else:
        print(f"A user with email {email} already exists.")


if __name__ == "__main__":
    main()
