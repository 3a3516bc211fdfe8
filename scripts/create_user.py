"""Create a user (typically the first admin) directly in the DB.

Usage:
  python scripts/create_user.py --name 'Shop Admin' --email admin@example.com --password '...' --role admin

NOTE: This is intended for local/dev. Public signups go through POST /api/auth/register.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from sweet_shop.auth.crud import create_user
from sweet_shop.config import load_config
from sweet_shop.db import connect, init_db
from sweet_shop.errors import ApiError


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--name", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--role", choices=["user", "admin"], default="user")
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    try:
        with connect(cfg.DB_DSN) as conn:
            u = create_user(conn, name=args.name, email=args.email, password=args.password, role=args.role)
    except ApiError as e:
        print(f"Could not create user: {e.message}")
        sys.exit(1)

    print("Created user:")
    print(u)


if __name__ == "__main__":
    main()
