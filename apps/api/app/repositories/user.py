"""Repository utilities for user persistence."""

from __future__ import annotations

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.models.user import User
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Data-access helper for dashboard accounts."""

    def __init__(self) -> None:
        super().__init__(model=User)

    def get_by_email(self, session: Session, email: str) -> User | None:
        """Return a user matching the supplied email if it exists."""

        statement = select(self.model).where(self.model.email == email)
        result = session.execute(statement)
        return result.scalars().one_or_none()

    def get_by_login(self, session: Session, login: str) -> User | None:
        """Return the user whose username or email equals ``login``."""

        statement = select(self.model).where(
            or_(self.model.username == login, self.model.email == login)
        )
        result = session.execute(statement)
        return result.scalars().first()

    def list_paginated(self, session: Session, *, limit: int, offset: int) -> list[User]:
        """Return users ordered by id."""

        statement = select(self.model).order_by(self.model.id).limit(limit).offset(offset)
        return list(session.scalars(statement).all())

    def count(self, session: Session) -> int:
        """Return the total number of users."""

        return int(session.scalar(select(func.count()).select_from(self.model)) or 0)
