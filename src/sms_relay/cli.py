from __future__ import annotations

import argparse
from collections.abc import Sequence

from .db import SessionLocal, init_db
from .store import SubscriberStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sms-relay-admin",
        description="Manage who may broadcast. The webhook never changes the admin flag.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    grant = commands.add_parser("grant", help="allow a contact to broadcast")
    grant.add_argument("contact", type=str)

    revoke = commands.add_parser("revoke", help="stop a contact from broadcasting")
    revoke.add_argument("contact", type=str)

    commands.add_parser("list", help="show active subscribers")
    return parser


def run(argv: Sequence[str] | None = None, store: SubscriberStore | None = None) -> int:
    args = build_parser().parse_args(argv)

    if store is None:
        init_db()
        store = SubscriberStore(SessionLocal)

    if args.command in ("grant", "revoke"):
        # Only the admin flag is touched; subscription state stays as it is.
        store.upsert(args.contact, is_admin=args.command == "grant")
        print(f"{args.contact}: admin {'granted' if args.command == 'grant' else 'revoked'}")
        return 0

    subscribers = store.list_active()
    if not subscribers:
        print("No active subscribers.")
        return 0

    for s in sorted(subscribers, key=lambda s: s.contact):
        marker = " (admin)" if s.is_admin else ""
        print(f"{s.contact}{marker}")
    return 0


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
