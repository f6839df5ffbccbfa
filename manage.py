"""FoodieSpace database maintenance CLI.

Usage:
    python manage.py ensure-indexes
    python manage.py bootstrap-admin admin@example.com
    python manage.py reconcile-favorites
"""

import argparse
import logging
import sys

from database import close_db, ensure_indexes, init_db
from errors import ServiceError
from review_service import reconcile_favorites
from settings import get_settings
from user_service import bootstrap_admin


def main(argv=None):
    parser = argparse.ArgumentParser(description="FoodieSpace database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("ensure-indexes", help="Create collection indexes")

    bootstrap = subparsers.add_parser(
        "bootstrap-admin", help="Promote a registered user when no admin exists yet"
    )
    bootstrap.add_argument("email")

    subparsers.add_parser(
        "reconcile-favorites", help="Repair drift between users' favorites and reviews' isFavoriteBy"
    )

    args = parser.parse_args(argv)
    logging.basicConfig(level=get_settings().log_level_numeric)

    db = init_db()
    try:
        if args.command == "ensure-indexes":
            ensure_indexes(db)
            print("Indexes ready.")
        elif args.command == "bootstrap-admin":
            result = bootstrap_admin(db, args.email)
            print(f"{result['email']} is now an admin.")
        elif args.command == "reconcile-favorites":
            result = reconcile_favorites(db)
            print(
                f"Repaired {result['usersRepaired']} user(s), "
                f"removed {result['orphanedFavorites']} orphaned favorite(s)."
            )
    except ServiceError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    finally:
        close_db()
    return 0


if __name__ == "__main__":
    sys.exit(main())
