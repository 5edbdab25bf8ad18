"""Admin command line for the article platform's user store.

Examples:
 - article-platform init-db
 - article-platform add-user alice --first Alice --last Smith
 - article-platform check-password alice
 - article-platform read-level alice
"""
import argparse
import getpass
import logging
import sys

from . import db
from .errors import InvalidCredentialInput, UserExistsError
from .logging_config import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_AUTH_FAILED = 1
EXIT_INVALID = 2


def _password(args) -> str:
    return args.password if args.password is not None else getpass.getpass("Password: ")


def cmd_init_db(args) -> int:
    db.init_db()
    print("Database initialised.")
    return EXIT_OK


def cmd_add_user(args) -> int:
    db.init_db()
    try:
        db.add_user(args.username, _password(args), args.first, args.last)
    except UserExistsError:
        print(f"User {args.username} already exists.", file=sys.stderr)
        return EXIT_INVALID
    print(f"User {args.username} created.")
    return EXIT_OK


def cmd_check_password(args) -> int:
    if db.check_password(args.username, _password(args)):
        print("Password OK.")
        return EXIT_OK
    print("Password mismatch or unknown user.", file=sys.stderr)
    return EXIT_AUTH_FAILED


def cmd_read_level(args) -> int:
    print(f"{db.avg_read_level(args.username):.2f}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="article-platform")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init-db", help="Create tables if missing")
    p.set_defaults(func=cmd_init_db)

    p = sub.add_parser("add-user", help="Create a user with a salted PBKDF2 hash")
    p.add_argument("username")
    p.add_argument("--first", default="", help="First name")
    p.add_argument("--last", default="", help="Last name")
    p.add_argument("--password", default=None, help="Password (prompted when omitted)")
    p.set_defaults(func=cmd_add_user)

    p = sub.add_parser("check-password", help="Verify a password against the stored hash")
    p.add_argument("username")
    p.add_argument("--password", default=None, help="Password (prompted when omitted)")
    p.set_defaults(func=cmd_check_password)

    p = sub.add_parser("read-level", help="Print a user's average reading level")
    p.add_argument("username")
    p.set_defaults(func=cmd_read_level)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level)
    try:
        return args.func(args)
    except InvalidCredentialInput as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return EXIT_INVALID


if __name__ == "__main__":
    sys.exit(main())
