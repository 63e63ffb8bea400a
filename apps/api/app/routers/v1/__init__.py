"""Routers served under the API prefix and guarded by the API key gate."""

from fastapi import APIRouter

from . import admin, posts, users

router = APIRouter()
router.include_router(posts.router)
router.include_router(users.router)
router.include_router(admin.router)

__all__ = ["admin", "posts", "router", "users"]
