"""Provision a user account against the configured auth backend.

Usage:
    python scripts/create_user.py user@example.com 'secret' --name "Ada Lovelace"

With ``AUTH_BACKEND=supabase`` the account is created in the hosted project;
otherwise this only exercises the in-memory backend and prints the result.
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from trantor.config import Settings
from trantor.errors import AuthenticationError
from trantor.services.state import build_state

logger = logging.getLogger("trantor")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Trantor user")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--name", dest="full_name", default=None, help="Display name")
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    state = build_state(Settings())
    try:
        session = state.auth.sign_up(args.email, args.password, args.full_name)
    except AuthenticationError as e:
        logger.error("Error creating user: %s", e)
        return 1

    if session is None:
        print(f"User created: {args.email} (check the inbox to confirm the email)")
    else:
        print(f"User created: {session.user.email} id={session.user.id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
