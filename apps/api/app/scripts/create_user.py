"""Command line utility for creating dashboard accounts."""

from __future__ import annotations

import argparse
import getpass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.security import create_password_hash
from app.db import create_session_factory
from app.models.user import ROLE_ADMIN, ROLE_USER, User
from app.repositories.user import UserRepository


def create_user(
    session: Session,
    *,
    username: str,
    email: str,
    password: str,
    role: str = ROLE_USER,
    can_create_api_keys: bool = False,
    can_manage_api_keys: bool = False,
) -> User:
    """Persist a dashboard user with a bcrypt password hash."""

    repository = UserRepository()
    normalized_username = username.strip()
    normalized_email = email.strip().lower()
    if not normalized_username:
        raise ValueError("Username must not be empty")

    for login in (normalized_username, normalized_email):
        if repository.get_by_login(session, login) is not None:
            raise ValueError(f"A user with username or email {login!r} already exists")

    user = User(
        username=normalized_username,
        email=normalized_email,
        hashed_password=create_password_hash(password),
        role=role,
        can_create_api_keys=can_create_api_keys,
        can_manage_api_keys=can_manage_api_keys,
    )
    repository.add(session, user)
    session.commit()
    session.refresh(user)
    return user


def _resolve_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a dashboard user")
    parser.add_argument("--username", help="Login name for the user")
    parser.add_argument("--email", help="Email address for the user")
    parser.add_argument(
        "--password",
        help="Password for the user (omit to securely prompt)",
    )
    parser.add_argument(
        "--role",
        choices=[ROLE_USER, ROLE_ADMIN],
        default=ROLE_USER,
        help="Dashboard role (administrators may manage every API key)",
    )
    parser.add_argument(
        "--can-create-api-keys",
        action="store_true",
        help="Allow the user to issue API keys",
    )
    parser.add_argument(
        "--can-manage-api-keys",
        action="store_true",
        help="Allow the user to view, edit and delete their own API keys",
    )
    parser.add_argument(
        "--prompt",
        action="store_true",
        help="Force interactive prompts for username, email and password",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _resolve_cli_args(argv)

    username = args.username
    email = args.email
    password = args.password

    if args.prompt or not username:
        username = input("Username: ").strip()
    if not username:
        raise SystemExit("Username must be provided")

    if args.prompt or not email:
        email = input("Email: ").strip()
    if not email:
        raise SystemExit("Email must be provided")

    if args.prompt or password is None:
        password = getpass.getpass("Password: ")
    if not password:
        raise SystemExit("Password must be provided")

    session_factory = create_session_factory(get_settings())
    with session_factory() as session:
        try:
            user = create_user(
                session,
                username=username,
                email=email,
                password=password,
                role=args.role,
                can_create_api_keys=args.can_create_api_keys,
                can_manage_api_keys=args.can_manage_api_keys,
            )
        except ValueError as exc:
            raise SystemExit(str(exc)) from exc
        except IntegrityError as exc:
            session.rollback()
            raise SystemExit("Failed to create user due to database constraint") from exc

    print(f"User {user.username!r} created with id={user.id} (role={user.role})")
    return 0


if __name__ == "__main__":  # pragma: no cover - manual invocation only
    raise SystemExit(main())
