"""
Command-line client for the Well2Nest hospital portal.
The session record lives in SESSION_FILE, so each invocation picks up
where the last login left off.
"""

import argparse
import getpass
import sys

from well2nest.analysis import billing_summary, inventory_summary, preview_table
from well2nest.auth import AuthManager
from well2nest.config import SESSION_FILE
from well2nest.database import init_engine
from well2nest.errors import AccessDenied
from well2nest.gateway import Gateway
from well2nest.queries import LISTINGS, dashboard_stats
from well2nest.seed import seed_database
from well2nest.storage import FileSessionStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="well2nest", description="Well2Nest hospital portal CLI")
    parser.add_argument("--db-uri", default=None, help="Override DB_URI")
    parser.add_argument("--session-file", default=SESSION_FILE, help="Where the session record is kept")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Sign in to one of the portals")
    login.add_argument("--role", required=True, help="admin, doctor, patient or pharmacist")
    login.add_argument("--email", required=True)
    login.add_argument("--password", default=None, help="Prompted for when omitted")

    sub.add_parser("logout", help="Forget the current session")
    sub.add_parser("whoami", help="Show the signed-in identity")
    sub.add_parser("dashboard", help="Show the dashboard for the signed-in role")

    listing = sub.add_parser("list", help="List rows visible to the signed-in role")
    listing.add_argument("listing", choices=sorted(LISTINGS))
    listing.add_argument("--summary", action="store_true", help="Print billing/inventory totals too")

    seed = sub.add_parser("seed", help="Create tables and load demo data")
    seed.add_argument("--no-synthetic", action="store_true", help="Only load demo accounts and reference data")
    return parser


# ── Commands ─────────────────────────────────────────────────────────

def cmd_login(auth: AuthManager, args) -> int:
    password = args.password if args.password is not None else getpass.getpass("Password: ")
    result = auth.login(args.email, password, args.role)
    if not result.success:
        print(f"\n[ERROR] Login failed: {result.message}")
        return 1
    print(f"[auth] Session saved to {args.session_file}")
    return 0


def cmd_logout(auth: AuthManager, args) -> int:
    auth.logout()
    print("[auth] Logged out.")
    return 0


def cmd_whoami(auth: AuthManager, args) -> int:
    session = auth.current_session()
    if not session.is_authenticated:
        print("Not logged in.")
        return 1
    print(f"{session.identity.display_name} <{session.identity.email}> (role={session.role.value})")
    return 0


def cmd_dashboard(auth: AuthManager, args) -> int:
    session = auth.current_session()
    stats = dashboard_stats(auth.gateway, session)
    print(f"\n=== {session.role.value.title()} dashboard – {session.identity.display_name} ===\n")
    for key, value in stats.items():
        if isinstance(value, list):
            print(f"\n[{key}]")
            print(preview_table(value))
        elif key != "role":
            print(f"  {key.replace('_', ' '):<24} {value}")
    return 0


def cmd_list(auth: AuthManager, args) -> int:
    session = auth.current_session()
    rows = LISTINGS[args.listing](auth.gateway, session)
    print(f"\n[{args.listing}] {len(rows)} row(s)")
    print(preview_table(rows))
    if args.summary and args.listing == "invoices":
        print("\n[Billing summary]")
        for key, value in billing_summary(rows).items():
            print(f"  {key:<20} {value}")
    elif args.summary and args.listing == "inventory":
        print("\n[Inventory summary]")
        for key, value in inventory_summary(rows).items():
            print(f"  {key:<20} {value}")
    return 0


COMMANDS = {
    "login": cmd_login,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "dashboard": cmd_dashboard,
    "list": cmd_list,
}

NEEDS_SESSION = {"dashboard", "list"}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    engine = init_engine(args.db_uri)

    if args.command == "seed":
        seed_database(engine, synthetic=not args.no_synthetic)
        return 0

    auth = AuthManager(Gateway(engine), FileSessionStore(args.session_file), background_writes=False)
    auth.restore_session()

    if args.command in NEEDS_SESSION and not auth.is_authorized():
        print("Not logged in. Run: well2nest login --role <role> --email <email>")
        return 1

    try:
        return COMMANDS[args.command](auth, args)
    except AccessDenied as e:
        print(f"\n[RBAC ERROR] {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
