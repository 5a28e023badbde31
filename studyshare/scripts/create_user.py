"""
Create a user (e.g. first admin). Run from project root:
  python -m studyshare.scripts.create_user USERNAME EMAIL PASSWORD [role]
Example:
  python -m studyshare.scripts.create_user admin admin@uni.edu your-secure-password admin
"""
import argparse
import logging
import sys

from pydantic import ValidationError

from studyshare.core.config import get_settings
from studyshare.core.errors import Conflict
from studyshare.repositories import build_store
from studyshare.schemas.auth import RegisterRequest
from studyshare.services.accounts import register_user

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a StudyShare user.")
    parser.add_argument("username", help="Username (3-255 chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password (6-128 chars)")
    parser.add_argument("role", nargs="?", default="user", choices=["user", "admin"])
    args = parser.parse_args(argv)

    try:
        body = RegisterRequest(
            username=args.username, email=args.email, password=args.password, role=args.role
        )
    except ValidationError as e:
        for err in e.errors():
            print(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}", file=sys.stderr)
        return 1

    settings = get_settings()
    if settings.STORAGE_BACKEND != "sql":
        print("STORAGE_BACKEND must be 'sql' to create persistent users.", file=sys.stderr)
        return 1
    try:
        store = build_store(settings)
    except RuntimeError as e:
        logger.error("%s", e)
        return 1
    try:
        user = register_user(store, body, settings=settings)
    except Conflict as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        store.close()
    print(f"Created user '{user.username}' with role '{user.role.value}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
