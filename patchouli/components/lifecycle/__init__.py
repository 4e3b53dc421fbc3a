"""Lifecycle component - moderation state machine for knowledge posts."""

from patchouli.components.lifecycle.component import LifecycleComponent
from patchouli.components.lifecycle.models import (
    EDITABLE_FIELDS,
    ApprovePostInput,
    ClueRequestInput,
    DeleteOutput,
    DeletePostInput,
    EditPostInput,
    FeedOutput,
    GetPostInput,
    ListFeedInput,
    ListUsersInput,
    PostOutput,
    RejectPostInput,
    SubmitPostInput,
    ToggleUserBanInput,
    UserOutput,
    UsersOutput,
)
from patchouli.components.lifecycle.ports import (
    ClockPort,
    PolicyPort,
    PostStorePort,
    UserStorePort,
)

__all__ = [
    # Component
    "LifecycleComponent",
    # Models
    "EDITABLE_FIELDS",
    "SubmitPostInput",
    "EditPostInput",
    "DeletePostInput",
    "ApprovePostInput",
    "RejectPostInput",
    "GetPostInput",
    "ListFeedInput",
    "ListUsersInput",
    "ToggleUserBanInput",
    "ClueRequestInput",
    "PostOutput",
    "DeleteOutput",
    "FeedOutput",
    "UserOutput",
    "UsersOutput",
    # Ports
    "PostStorePort",
    "UserStorePort",
    "PolicyPort",
    "ClockPort",
]
