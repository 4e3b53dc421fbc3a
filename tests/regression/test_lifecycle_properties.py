"""
Regression tests for the moderation guarantees, run against the SQLite
stores with the real rules file.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from patchouli.adapters.clock import SystemClock
from patchouli.components.lifecycle import (
    ApprovePostInput,
    DeletePostInput,
    EditPostInput,
    LifecycleComponent,
    ListFeedInput,
    RejectPostInput,
    SubmitPostInput,
    ToggleUserBanInput,
)
from patchouli.components.search import SearchComponent, SearchInput
from patchouli.domain.entities import User
from patchouli.domain.errors import AssistTimeoutError, AssistUnavailableError, ErrorKind
from patchouli.domain.policy import PolicyEngine


class SlowClueGenerator:
    def generate(self, body):
        raise AssistTimeoutError("clue generator timed out")


class DownTranslator:
    def translate(self, phrase):
        raise AssistUnavailableError("translator down")


@pytest.fixture
def lifecycle(post_store, user_store, rules):
    return LifecycleComponent(
        post_store=post_store,
        user_store=user_store,
        policy=PolicyEngine(rules),
        clock=SystemClock(),
        rules=rules,
        clue_generator=SlowClueGenerator(),
    )


@pytest.fixture
def second_admin(user_store):
    user = user_store.save_user(User(name="Second Moderator"))
    return user_store.set_role(user.id, "admin")


def submit(lifecycle, user, title="Auto Backup Script"):
    result = lifecycle.run_submit(
        SubmitPostInput(user_id=user.id, title=title, body="Copies the world folder every hour.")
    )
    assert result.success, result.errors
    return result.post


def public_ids(lifecycle):
    return [p.id for p in lifecycle.run_list_feed(ListFeedInput(user_id=None)).posts]


def test_submit_is_pending_for_every_role(lifecycle, author, admin):
    assert submit(lifecycle, author).status == "pending"
    assert submit(lifecycle, admin).status == "pending"


def test_backup_script_scenario(lifecycle, author, admin, second_admin, post_store):
    post = submit(lifecycle, author)

    mine = lifecycle.run_list_feed(ListFeedInput(user_id=author.id, scope="mine"))
    queue = lifecycle.run_list_feed(ListFeedInput(user_id=admin.id, scope="review"))
    assert [p.id for p in mine.posts] == [post.id]
    assert [p.id for p in queue.posts] == [post.id]
    assert public_ids(lifecycle) == []

    approved = lifecycle.run_approve(ApprovePostInput(user_id=admin.id, post_id=post.id))
    assert approved.post.status == "published"
    assert public_ids(lifecycle) == [post.id]

    late = lifecycle.run_reject(RejectPostInput(user_id=second_admin.id, post_id=post.id))
    assert late.errors[0].kind == ErrorKind.INVALID_TRANSITION
    assert post_store.get_post(post.id).status == "published"


@pytest.mark.parametrize("attempt", range(5))
def test_racing_decisions_have_one_winner(lifecycle, author, admin, second_admin, post_store, attempt):
    post = submit(lifecycle, author)
    barrier = Barrier(2)

    def approve():
        barrier.wait()
        return lifecycle.run_approve(ApprovePostInput(user_id=admin.id, post_id=post.id))

    def reject():
        barrier.wait()
        return lifecycle.run_reject(RejectPostInput(user_id=second_admin.id, post_id=post.id))

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = [f.result() for f in [pool.submit(approve), pool.submit(reject)]]

    winners = [r for r in results if r.success]
    losers = [r for r in results if not r.success]
    assert len(winners) == 1
    assert losers[0].errors[0].kind == ErrorKind.INVALID_TRANSITION
    assert post_store.get_post(post.id).status == winners[0].post.status


def test_published_post_locked_for_author(lifecycle, author, admin):
    post = submit(lifecycle, author)
    edited = lifecycle.run_edit(
        EditPostInput(user_id=author.id, post_id=post.id, changes={"title": "Hourly Backup"})
    )
    assert edited.success

    lifecycle.run_approve(ApprovePostInput(user_id=admin.id, post_id=post.id))
    refused = lifecycle.run_edit(
        EditPostInput(user_id=author.id, post_id=post.id, changes={"title": "Sneaky"})
    )
    assert refused.errors[0].kind == ErrorKind.FORBIDDEN


def test_banned_user_writes_fail_reads_succeed(lifecycle, author, admin, post_store):
    post = submit(lifecycle, author)
    lifecycle.run_toggle_ban(
        ToggleUserBanInput(user_id=admin.id, target_user_id=author.id, banned=True)
    )
    before = len(post_store.list_posts())

    results = [
        lifecycle.run_submit(SubmitPostInput(user_id=author.id, title="Spam", body="Spam")),
        lifecycle.run_edit(
            EditPostInput(user_id=author.id, post_id=post.id, changes={"body": "x"})
        ),
        lifecycle.run_delete(DeletePostInput(user_id=author.id, post_id=post.id)),
    ]

    assert [r.errors[0].kind for r in results] == [ErrorKind.BANNED] * 3
    assert len(post_store.list_posts()) == before
    assert lifecycle.run_list_feed(ListFeedInput(user_id=author.id, scope="mine")).success


def test_double_ban_is_noop(lifecycle, author, admin, user_store):
    inp = ToggleUserBanInput(user_id=admin.id, target_user_id=author.id, banned=True)

    assert lifecycle.run_toggle_ban(inp).success
    assert lifecycle.run_toggle_ban(inp).success
    assert user_store.get_user(author.id).is_banned is True


def test_clue_timeout_during_submit(lifecycle, author, post_store):
    result = lifecycle.run_submit(
        SubmitPostInput(user_id=author.id, title="Auto Backup Script", body="Copies the world.")
    )

    assert result.success
    assert result.post.status == "pending"
    assert result.post.search_clues is None
    assert [n.kind for n in result.notices] == [ErrorKind.EXTERNAL_UNAVAILABLE]
    assert post_store.get_post(result.post.id) is not None


def test_ai_search_without_translator_matches_keyword_search(lifecycle, author, admin, post_store, rules):
    for title in ("foo bar tool", "foo only", "bar only"):
        post = submit(lifecycle, author, title=title)
        lifecycle.run_approve(ApprovePostInput(user_id=admin.id, post_id=post.id))
    search = SearchComponent(
        store=post_store,
        search_rules=rules.search,
        assist_rules=rules.assist,
        translator=DownTranslator(),
    )

    ai = search.run(SearchInput(phrase="foo bar", mode="ai"))
    keyword = search.run(SearchInput(phrase="foo bar", mode="keyword"))

    assert [p.id for p in ai.posts] == [p.id for p in keyword.posts]
    assert [p.title for p in keyword.posts] == ["foo bar tool"]
    assert ai.notices and not keyword.notices
