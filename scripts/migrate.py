"""Script to manage database migrations.

Usage:
    python scripts/migrate.py upgrade [revision]
    python scripts/migrate.py downgrade <revision>
    python scripts/migrate.py revision <message>
"""

import argparse
import sys

from alembic import command
from alembic.config import Config

ALEMBIC_INI = "alembic.ini"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Database migrations")
    subparsers = parser.add_subparsers(dest="action", required=True)

    upgrade = subparsers.add_parser("upgrade", help="Apply migrations")
    upgrade.add_argument("revision", nargs="?", default="head")

    downgrade = subparsers.add_parser("downgrade", help="Revert migrations")
    downgrade.add_argument("revision")

    revision = subparsers.add_parser("revision", help="Autogenerate a new migration")
    revision.add_argument("message", nargs="+")

    args = parser.parse_args(argv)
    alembic_cfg = Config(ALEMBIC_INI)

    try:
        if args.action == "upgrade":
            command.upgrade(alembic_cfg, args.revision)
        elif args.action == "downgrade":
            command.downgrade(alembic_cfg, args.revision)
        else:
            command.revision(alembic_cfg, message=" ".join(args.message), autogenerate=True)
    except Exception as e:
        print(f"✗ Migration {args.action} failed: {e}", file=sys.stderr)
        return 1

    print(f"✓ Migration {args.action} completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
