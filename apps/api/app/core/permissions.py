"""API key permission flags and the path/method to permission mapping."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict


class Permission(str, enum.Enum):
    """Capability flags that can be granted to an API key."""

    READ_POSTS = "read_posts"
    WRITE_POSTS = "write_posts"
    READ_USERS = "read_users"
    WRITE_USERS = "write_users"
    ADMIN = "admin"


class PermissionSet(BaseModel):
    """Closed set of capability flags; every flag is always present."""

    read_posts: bool = True
    write_posts: bool = False
    read_users: bool = False
    write_users: bool = False
    admin: bool = False

    model_config = ConfigDict(extra="forbid", frozen=True)

    def allows(self, permission: Permission) -> bool:
        """Return whether the given capability is granted."""
        return bool(getattr(self, permission.value))


READ_METHODS = frozenset({"GET", "HEAD"})

# namespace -> (read permission, write permission)
NAMESPACE_PERMISSIONS: dict[str, tuple[Permission, Permission]] = {
    "posts": (Permission.READ_POSTS, Permission.WRITE_POSTS),
    "users": (Permission.READ_USERS, Permission.WRITE_USERS),
    "admin": (Permission.ADMIN, Permission.ADMIN),
}


def required_permission(path: str, method: str) -> Permission | None:
    """Map a path (relative to the API prefix) and HTTP method to a capability.

    Returns ``None`` when the namespace is not listed, meaning any valid key is
    accepted. On a listed namespace every method other than GET and HEAD needs
    the write permission, including ``OPTIONS``.
    """

    namespace = path.strip("/").split("/", 1)[0]
    permissions = NAMESPACE_PERMISSIONS.get(namespace)
    if permissions is None:
        return None

    read_permission, write_permission = permissions
    if method.upper() in READ_METHODS:
        return read_permission
    return write_permission
