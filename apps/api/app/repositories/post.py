"""Database access helpers for blog posts."""

from __future__ import annotations

from typing import Any

from sqlalchemy import ColumnElement, func, or_, select
from sqlalchemy.orm import Session

from app.models.post import Post
from app.repositories.base import BaseRepository


class PostRepository(BaseRepository[Post]):
    """Repository for interacting with blog post records."""

    def __init__(self) -> None:
        super().__init__(model=Post)

    @staticmethod
    def _filters(
        category: str | None,
        search: str | None,
        featured: bool | None,
    ) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []
        if category:
            conditions.append(Post.category == category)
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(Post.title.ilike(pattern), Post.excerpt.ilike(pattern), Post.content.ilike(pattern))
            )
        if featured is not None:
            conditions.append(Post.featured == featured)
        return conditions

    def list_posts(
        self,
        session: Session,
        *,
        limit: int,
        offset: int,
        category: str | None = None,
        search: str | None = None,
        featured: bool | None = None,
    ) -> list[Post]:
        """List posts newest first with optional filters."""
        statement = (
            select(Post)
            .where(*self._filters(category, search, featured))
            .order_by(Post.published_at.desc(), Post.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(session.scalars(statement).all())

    def count_posts(
        self,
        session: Session,
        *,
        category: str | None = None,
        search: str | None = None,
        featured: bool | None = None,
    ) -> int:
        statement = (
            select(func.count())
            .select_from(Post)
            .where(*self._filters(category, search, featured))
        )
        return int(session.scalar(statement) or 0)

    def get_by_slug(self, session: Session, slug: str) -> Post | None:
        statement = select(Post).where(Post.slug == slug)
        return session.scalars(statement).first()

    def create(self, session: Session, *, data: dict[str, Any]) -> Post:
        post = Post(**data)
        return self.add(session, post)

    def update(self, session: Session, post: Post, *, data: dict[str, Any]) -> Post:
        for field, value in data.items():
            setattr(post, field, value)
        session.flush()
        session.refresh(post)
        return post

    def remove(self, session: Session, post: Post) -> None:
        """Permanently delete a post."""
        self.delete(session, post)
