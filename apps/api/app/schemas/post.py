"""Pydantic schemas for blog posts exposed through the public API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PostCreate(BaseModel):
    """Payload for creating a post."""

    title: str = Field(..., min_length=1, max_length=255)
    excerpt: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    featured: bool = False


class PostUpdate(BaseModel):
    """Payload for updating a post; omitted fields are left unchanged."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    excerpt: str | None = None
    content: str | None = Field(default=None, min_length=1)
    category: str | None = Field(default=None, max_length=100)
    featured: bool | None = None


class PostRead(BaseModel):
    """Representation of a persisted post."""

    id: int
    slug: str
    title: str
    excerpt: str | None
    content: str
    category: str | None
    featured: bool
    author_id: int
    published_at: datetime
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PostPagination(BaseModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class PostListResponse(BaseModel):
    posts: list[PostRead]
    pagination: PostPagination
