"""
Seed admin accounts into the configured store.

Creates the bootstrap super admin from BOOTSTRAP_USERNAME / BOOTSTRAP_PASSWORD
and, with --demo, the demo admin/editor/viewer accounts. Existing usernames
are left untouched.

Usage:
    python -m scripts.seed_accounts [--demo]
"""
import argparse
import sys

from nss_admin.auth.credentials import DEMO_ACCOUNTS, UserDirectory, bootstrap_seed, seed_accounts
from nss_admin.auth.roles import role_display_name
from nss_admin.config import get_settings
from nss_admin.storage import build_store


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--demo", action="store_true", help="also seed the demo accounts")
    args = parser.parse_args(argv)

    app_settings = get_settings()
    bootstrap = bootstrap_seed(app_settings)
    if bootstrap is None and not args.demo:
        print("BOOTSTRAP_PASSWORD is not set and --demo was not given; nothing to seed")
        return 1

    store = build_store(app_settings)
    directory = UserDirectory(store, bootstrap_username=app_settings.bootstrap_username)
    seed_accounts(directory, bootstrap=bootstrap, include_demo=args.demo)

    print(f"Accounts in {app_settings.storage_backend} storage:")
    wanted = {seed.username for seed in DEMO_ACCOUNTS} | {app_settings.bootstrap_username}
    for user in directory.list_users():
        if user.username in wanted:
            print(f"  {user.username} ({role_display_name(user.role)})")

    close = getattr(store, "close", None)
    if callable(close):
        close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
