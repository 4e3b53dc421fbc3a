from datetime import UTC, datetime
from uuid import uuid4

import pytest

from patchouli.domain.entities import Post
from patchouli.domain.state import (
    TRANSITIONS,
    InvalidTransitionError,
    can_transition,
    next_status,
    transition,
)


def make_post(status="pending"):
    return Post(title="T", body="B", status=status, author_id=uuid4())


def test_submit_creates_pending():
    assert next_status(None, "submit") == "pending"


@pytest.mark.parametrize(
    ("event", "expected"), [("approve", "published"), ("reject", "rejected")]
)
def test_pending_is_decided(event, expected):
    assert next_status("pending", event) == expected


@pytest.mark.parametrize("status", ["published", "rejected"])
@pytest.mark.parametrize("event", ["approve", "reject"])
def test_decided_posts_stay_decided(status, event):
    assert not can_transition(status, event)
    with pytest.raises(InvalidTransitionError):
        next_status(status, event)


@pytest.mark.parametrize("status", ["pending", "published", "rejected"])
def test_edit_keeps_status(status):
    assert next_status(status, "edit") == status


@pytest.mark.parametrize("status", ["pending", "published", "rejected"])
def test_delete_removes(status):
    assert next_status(status, "delete") is None


def test_submit_only_for_new_posts():
    for status in ("pending", "published", "rejected"):
        assert not can_transition(status, "submit")


def test_nothing_leads_back_to_pending_once_decided():
    for (current, _event), result in TRANSITIONS.items():
        if current in ("published", "rejected"):
            assert result != "pending"


def test_transition_returns_new_post():
    post = make_post()
    now = datetime(2025, 6, 1, tzinfo=UTC)

    published = transition(post, "approve", now)

    assert published.status == "published"
    assert published.updated_at == now
    assert post.status == "pending"


def test_transition_refuses_delete():
    with pytest.raises(InvalidTransitionError):
        transition(make_post(), "delete", datetime.now(UTC))


def test_error_message_names_state():
    with pytest.raises(InvalidTransitionError, match="approve a post in state rejected"):
        next_status("rejected", "approve")
