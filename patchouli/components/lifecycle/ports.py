"""Lifecycle component port definitions - protocols for dependencies."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from patchouli.domain.entities import Post, PostStatus, User


class PostStorePort(Protocol):
    """
    Protocol for the Post Store.

    Every method acts on a single row atomically and may raise
    StoreUnavailableError or StoreTimeoutError.
    """

    def insert_post(self, post: Post) -> Post:
        """Create a row for a new post."""
        ...

    def get_post(self, post_id: UUID) -> Post | None:
        """Retrieve a post by ID."""
        ...

    def update_post(
        self,
        post_id: UUID,
        fields: dict[str, Any],
        expected_status: PostStatus | None = None,
    ) -> Post | None:
        """Overwrite fields. Returns None if the row is gone or its status moved."""
        ...

    def set_status(
        self,
        post_id: UUID,
        new_status: PostStatus,
        expected_status: PostStatus,
        updated_at: datetime,
    ) -> Post | None:
        """Compare-and-swap on status. Returns None if expected_status no longer holds."""
        ...

    def delete_post(self, post_id: UUID) -> bool:
        """Remove a post. Returns False if nothing was removed."""
        ...

    def list_posts(
        self,
        *,
        status: PostStatus | None = None,
        author_id: UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Post]:
        """List posts newest first."""
        ...


class UserStorePort(Protocol):
    """Protocol for user lookups, listings and ban updates."""

    def get_user(self, user_id: UUID) -> User | None:
        """Retrieve a user by ID."""
        ...

    def set_user_banned(self, user_id: UUID, banned: bool) -> User | None:
        """Set the ban flag. Returns None if the user does not exist."""
        ...

    def list_users(self, *, limit: int = 100, offset: int = 0) -> list[User]:
        """List profiles newest first."""
        ...


class PolicyPort(Protocol):
    """Protocol for permission checks."""

    def check_permission(
        self,
        user: User | None,
        action: str,
        resource: Any = None,
    ) -> bool:
        """Check if user has permission to perform action on resource."""
        ...

    def can_moderate_users(self, user: User) -> bool:
        """Check if user may ban or unban other users."""
        ...


class ClockPort(Protocol):
    """Protocol for time operations."""

    def now_utc(self) -> datetime:
        """Return current UTC time."""
        ...
