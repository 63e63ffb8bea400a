"""Blog post endpoints for API key holders."""

from __future__ import annotations

import logging
import re

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.dependencies import ApiKeyDep, SessionDep
from app.repositories.post import PostRepository
from app.schemas.post import PostCreate, PostListResponse, PostPagination, PostRead, PostUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])
_post_repository = PostRepository()


def _slugify(text: str) -> str:
    """Lowercase the text and join its alphanumeric runs with hyphens."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "post"


def _unique_slug(db: Session, title: str) -> str:
    base = _slugify(title)[:240]
    slug = base
    suffix = 2
    while _post_repository.get_by_slug(db, slug) is not None:
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


def _require_post(db: Session, slug: str):
    post = _post_repository.get_by_slug(db, slug)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


@router.get("", response_model=PostListResponse)
def list_posts(
    db: SessionDep,
    api_key: ApiKeyDep,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    category: str | None = Query(None),
    search: str | None = Query(None),
    featured: bool | None = Query(None),
) -> PostListResponse:
    """List posts newest first with optional category, search and featured filters."""

    posts = _post_repository.list_posts(
        db, limit=limit, offset=offset, category=category, search=search, featured=featured
    )
    total = _post_repository.count_posts(db, category=category, search=search, featured=featured)
    return PostListResponse(
        posts=[PostRead.model_validate(post) for post in posts],
        pagination=PostPagination(
            limit=limit,
            offset=offset,
            total=total,
            has_more=offset + len(posts) < total,
        ),
    )


@router.get("/{slug}", response_model=PostRead)
def read_post(slug: str, db: SessionDep, api_key: ApiKeyDep) -> PostRead:
    return PostRead.model_validate(_require_post(db, slug))


@router.post("", response_model=PostRead, status_code=status.HTTP_201_CREATED)
def create_post(payload: PostCreate, db: SessionDep, api_key: ApiKeyDep) -> PostRead:
    """Create a post authored by the owner of the calling API key."""

    data = payload.model_dump()
    data["slug"] = _unique_slug(db, payload.title)
    data["author_id"] = api_key.owner_id
    post = _post_repository.create(db, data=data)
    db.commit()
    logger.info("API key %s created post %s", api_key.id, post.slug)
    return PostRead.model_validate(post)


@router.put("/{slug}", response_model=PostRead)
def update_post(slug: str, payload: PostUpdate, db: SessionDep, api_key: ApiKeyDep) -> PostRead:
    """Update a post; the slug stays stable when the title changes."""

    post = _require_post(db, slug)
    updated = _post_repository.update(db, post, data=payload.model_dump(exclude_unset=True))
    db.commit()
    logger.info("API key %s updated post %s", api_key.id, slug)
    return PostRead.model_validate(updated)


@router.delete("/{slug}")
def delete_post(slug: str, db: SessionDep, api_key: ApiKeyDep) -> dict[str, str]:
    post = _require_post(db, slug)
    _post_repository.remove(db, post)
    db.commit()
    logger.info("API key %s deleted post %s", api_key.id, slug)
    return {"status": "deleted", "slug": slug}
