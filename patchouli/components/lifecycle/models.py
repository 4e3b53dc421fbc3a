"""
Lifecycle component input/output models.

Every intent carries the caller's user id (None for anonymous callers);
the component resolves role and ban status itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from patchouli.domain.entities import FeedScope, Post, PostCategory, User
from patchouli.domain.errors import OperationError

# Fields an edit may touch; everything else on a Post is owned by the engine.
EDITABLE_FIELDS: frozenset[str] = frozenset(
    {"title", "body", "category", "tags", "attachments", "search_clues"}
)

# --- Input Models ---


@dataclass(frozen=True)
class SubmitPostInput:
    """Input for submitting a new post for review."""

    user_id: UUID | None
    title: str
    body: str
    category: PostCategory = "script"
    tags: list[str] = field(default_factory=list)
    attachments: list[dict[str, Any]] = field(default_factory=list)
    search_clues: str | None = None
    generate_clues: bool = True


@dataclass(frozen=True)
class EditPostInput:
    """Input for overwriting fields of an existing post."""

    user_id: UUID | None
    post_id: UUID
    changes: dict[str, Any]
    regenerate_clues: bool = False


@dataclass(frozen=True)
class DeletePostInput:
    """Input for removing a post."""

    user_id: UUID | None
    post_id: UUID


@dataclass(frozen=True)
class ApprovePostInput:
    """Input for publishing a pending post."""

    user_id: UUID | None
    post_id: UUID


@dataclass(frozen=True)
class RejectPostInput:
    """Input for rejecting a pending post."""

    user_id: UUID | None
    post_id: UUID


@dataclass(frozen=True)
class GetPostInput:
    """Input for reading a single post."""

    user_id: UUID | None
    post_id: UUID


@dataclass(frozen=True)
class ListFeedInput:
    """Input for listing a feed."""

    user_id: UUID | None
    scope: FeedScope = "public"
    limit: int | None = None
    offset: int = 0


@dataclass(frozen=True)
class ListUsersInput:
    """Input for listing profiles on the admin users screen."""

    user_id: UUID | None
    limit: int | None = None
    offset: int = 0


@dataclass(frozen=True)
class ToggleUserBanInput:
    """Input for banning or unbanning a user. banned=None flips the flag."""

    user_id: UUID | None
    target_user_id: UUID
    banned: bool | None = None


@dataclass(frozen=True)
class ClueRequestInput:
    """Input for previewing search clues from the editor."""

    user_id: UUID | None
    body: str


# --- Output Models ---


@dataclass(frozen=True)
class PostOutput:
    """Output for intents that produce a post."""

    post: Post | None
    errors: list[OperationError] = field(default_factory=list)
    notices: list[OperationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class DeleteOutput:
    """Output for post removal."""

    errors: list[OperationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class FeedOutput:
    """Output for feed listings."""

    scope: FeedScope
    posts: list[Post] = field(default_factory=list)
    errors: list[OperationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class UserOutput:
    """Output for user moderation."""

    user: User | None
    errors: list[OperationError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class UsersOutput:
    """Output for user listings."""

    users: list[User] = field(default_factory=list)
    errors: list[OperationError] = field(default_factory=list)
    success: bool = True
