from datetime import datetime
from typing import Literal

from patchouli.domain.entities import Post, PostStatus

PostEvent = Literal["submit", "approve", "reject", "edit", "delete"]

# (current status, event) -> resulting status.
# None as current status means "not persisted yet"; None as result means "removed".
TRANSITIONS: dict[tuple[PostStatus | None, PostEvent], PostStatus | None] = {
    (None, "submit"): "pending",
    ("pending", "approve"): "published",
    ("pending", "reject"): "rejected",
    ("pending", "edit"): "pending",
    ("published", "edit"): "published",
    ("rejected", "edit"): "rejected",
    ("pending", "delete"): None,
    ("published", "delete"): None,
    ("rejected", "delete"): None,
}

# Events that decide a pending post; at most one of them may ever succeed per post.
TERMINAL_EVENTS: frozenset[PostEvent] = frozenset({"approve", "reject"})


class InvalidTransitionError(ValueError):
    def __init__(self, current: PostStatus | None, event: PostEvent):
        self.current = current
        self.event = event
        super().__init__(f"Cannot {event} a post in state {current or 'unsaved'}")


def can_transition(current: PostStatus | None, event: PostEvent) -> bool:
    """
    Determine if an event is defined for the current status.
    """
    return (current, event) in TRANSITIONS


def next_status(current: PostStatus | None, event: PostEvent) -> PostStatus | None:
    """
    Resulting status for an event. Raises InvalidTransitionError if undefined.
    """
    if not can_transition(current, event):
        raise InvalidTransitionError(current, event)
    return TRANSITIONS[(current, event)]


def transition(post: Post, event: PostEvent, now: datetime) -> Post:
    """
    Return a NEW Post with the status produced by the event.
    Raises InvalidTransitionError if the event is not defined for post.status.
    """
    new_status = next_status(post.status, event)
    if new_status is None:
        # Deletion has no resulting row to describe.
        raise InvalidTransitionError(post.status, event)
    return post.model_copy(update={"status": new_status, "updated_at": now})
