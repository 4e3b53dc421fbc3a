"""
Lifecycle component - moderation state machine for knowledge posts.

State Machine:
- (new) -> pending       submit, any authenticated non-banned user
- pending -> published   approve, admin
- pending -> rejected    reject, admin
- any -> same            edit, author while not published, admin always
- any -> (removed)       delete, author or admin

Checks run in order and stop before any write:
authenticated -> not banned (writes) -> role/ownership -> state.
Status changes go through the store's compare-and-swap, so of two racing
approve/reject calls exactly one wins and the other sees invalid_transition.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from patchouli.components.clues import GenerateCluesInput, run_generate
from patchouli.components.clues.models import ClueOutput
from patchouli.components.clues.ports import ClueGeneratorPort
from patchouli.domain.entities import Attachment, Post, PostStatus, User
from patchouli.domain.errors import ErrorKind, OperationError, StoreError, store_failure
from patchouli.domain.sanitize import plain_text_line
from patchouli.domain.state import (
    TERMINAL_EVENTS,
    PostEvent,
    can_transition,
    next_status,
    transition,
)
from patchouli.rules.models import Rules

from .models import (
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
from .ports import ClockPort, PolicyPort, PostStorePort, UserStorePort

logger = logging.getLogger(__name__)

# Type alias for all supported inputs
LifecycleInput = (
    SubmitPostInput
    | EditPostInput
    | DeletePostInput
    | ApprovePostInput
    | RejectPostInput
    | GetPostInput
    | ListFeedInput
    | ListUsersInput
    | ToggleUserBanInput
    | ClueRequestInput
)
LifecycleOutput = PostOutput | DeleteOutput | FeedOutput | UserOutput | UsersOutput | ClueOutput


class Denied(Exception):
    """Internal short-circuit carrying the error to report."""

    def __init__(self, error: OperationError):
        super().__init__(error.message)
        self.error = error


def _error(
    kind: ErrorKind, code: str, message: str, field: str | None = None
) -> OperationError:
    return OperationError(kind=kind, code=code, message=message, field=field)


def _not_found_transition(post_id: UUID) -> Denied:
    return Denied(
        _error(
            ErrorKind.INVALID_TRANSITION,
            "post_not_found",
            f"Post {post_id} does not exist or was already removed",
            "post_id",
        )
    )


class LifecycleComponent:
    """Component owning post status transitions and their authorization."""

    def __init__(
        self,
        post_store: PostStorePort,
        user_store: UserStorePort,
        policy: PolicyPort,
        clock: ClockPort,
        rules: Rules,
        clue_generator: ClueGeneratorPort | None = None,
    ) -> None:
        self._posts = post_store
        self._users = user_store
        self._policy = policy
        self._clock = clock
        self._rules = rules
        self._clue_generator = clue_generator

    def run(self, input_data: LifecycleInput) -> LifecycleOutput:
        """Main dispatcher - routes to appropriate handler based on input type."""
        if isinstance(input_data, SubmitPostInput):
            return self.run_submit(input_data)
        elif isinstance(input_data, EditPostInput):
            return self.run_edit(input_data)
        elif isinstance(input_data, DeletePostInput):
            return self.run_delete(input_data)
        elif isinstance(input_data, ApprovePostInput):
            return self.run_approve(input_data)
        elif isinstance(input_data, RejectPostInput):
            return self.run_reject(input_data)
        elif isinstance(input_data, GetPostInput):
            return self.run_get(input_data)
        elif isinstance(input_data, ListFeedInput):
            return self.run_list_feed(input_data)
        elif isinstance(input_data, ListUsersInput):
            return self.run_list_users(input_data)
        elif isinstance(input_data, ToggleUserBanInput):
            return self.run_toggle_ban(input_data)
        elif isinstance(input_data, ClueRequestInput):
            return self.run_generate_clues(input_data)
        else:
            raise TypeError(f"Unknown input type: {type(input_data)}")

    # --- Caller resolution ---

    def _resolve_caller(self, user_id: UUID | None, *, write: bool) -> User:
        if user_id is None:
            raise Denied(
                _error(ErrorKind.UNAUTHENTICATED, "not_authenticated", "Sign in to continue")
            )

        user = self._users.get_user(user_id)
        if user is None:
            raise Denied(
                _error(ErrorKind.UNAUTHENTICATED, "unknown_user", "Unknown user, sign in again")
            )

        if write and user.is_banned:
            raise Denied(
                _error(ErrorKind.BANNED, "user_banned", "Your account is banned from making changes")
            )
        return user

    def _require(self, user: User | None, action: str, resource: Any, message: str) -> None:
        if not self._policy.check_permission(user, action, resource=resource):
            raise Denied(_error(ErrorKind.FORBIDDEN, "permission_denied", message, "user_id"))

    def _require_state(self, post: Post, event: PostEvent) -> None:
        if can_transition(post.status, event):
            return
        if event in TERMINAL_EVENTS:
            raise Denied(
                _error(
                    ErrorKind.INVALID_TRANSITION,
                    "already_decided",
                    f"Post was already decided ({post.status})",
                    "status",
                )
            )
        raise Denied(
            _error(
                ErrorKind.INVALID_TRANSITION,
                "transition_error",
                f"Cannot {event} a post in state {post.status}",
                "status",
            )
        )

    def _page_size(self, limit: int | None, offset: int, ceiling: int) -> int:
        """Callers may ask for fewer rows than the rules allow, never more."""
        if limit is not None and limit < 1:
            raise Denied(
                _error(ErrorKind.VALIDATION_ERROR, "limit_invalid", "limit must be at least 1", "limit")
            )
        if offset < 0:
            raise Denied(
                _error(
                    ErrorKind.VALIDATION_ERROR, "offset_invalid", "offset cannot be negative", "offset"
                )
            )
        return min(limit or ceiling, ceiling)

    def _load_post(self, post_id: UUID) -> Post:
        post = self._posts.get_post(post_id)
        if post is None:
            raise _not_found_transition(post_id)
        return post

    # --- Field validation ---

    def _validate_fields(self, values: dict[str, Any]) -> tuple[dict[str, Any], list[OperationError]]:
        """Validate and normalize post fields. Only keys present in values are checked."""
        rules = self._rules.posts
        errors: list[OperationError] = []
        clean: dict[str, Any] = {}

        if "title" in values:
            title = (values["title"] or "").strip()
            if len(title) < max(rules.title.min, 1):
                errors.append(
                    _error(ErrorKind.VALIDATION_ERROR, "title_required", "Title is required", "title")
                )
            elif len(title) > rules.title.max:
                errors.append(
                    _error(
                        ErrorKind.VALIDATION_ERROR,
                        "title_too_long",
                        f"Title must be at most {rules.title.max} characters",
                        "title",
                    )
                )
            clean["title"] = title

        if "body" in values:
            body = values["body"] or ""
            if len(body.strip()) < max(rules.body.min, 1):
                errors.append(
                    _error(ErrorKind.VALIDATION_ERROR, "body_required", "Body is required", "body")
                )
            elif len(body) > rules.body.max:
                errors.append(
                    _error(
                        ErrorKind.VALIDATION_ERROR,
                        "body_too_long",
                        f"Body must be at most {rules.body.max} characters",
                        "body",
                    )
                )
            clean["body"] = body

        if "category" in values:
            if values["category"] not in rules.categories:
                errors.append(
                    _error(
                        ErrorKind.VALIDATION_ERROR,
                        "category_invalid",
                        f"Category must be one of: {', '.join(rules.categories)}",
                        "category",
                    )
                )
            clean["category"] = values["category"]

        if "tags" in values:
            tags = sorted({str(t).strip().lower() for t in values["tags"] or [] if str(t).strip()})
            unknown = [t for t in tags if t not in rules.allowed_tags]
            if unknown:
                errors.append(
                    _error(
                        ErrorKind.VALIDATION_ERROR,
                        "tag_not_allowed",
                        f"Unknown tags: {', '.join(unknown)}",
                        "tags",
                    )
                )
            elif len(tags) > rules.max_tags:
                errors.append(
                    _error(
                        ErrorKind.VALIDATION_ERROR,
                        "too_many_tags",
                        f"At most {rules.max_tags} tags are allowed",
                        "tags",
                    )
                )
            clean["tags"] = tags

        if "attachments" in values:
            attachments: list[Attachment] = []
            raw_list = values["attachments"] or []
            if len(raw_list) > rules.max_attachments:
                errors.append(
                    _error(
                        ErrorKind.VALIDATION_ERROR,
                        "too_many_attachments",
                        f"At most {rules.max_attachments} attachments are allowed",
                        "attachments",
                    )
                )
            for raw in raw_list:
                try:
                    attachment = (
                        raw if isinstance(raw, Attachment) else Attachment.model_validate(raw)
                    )
                except ValidationError:
                    errors.append(
                        _error(
                            ErrorKind.VALIDATION_ERROR,
                            "attachment_invalid",
                            "Attachments need a name, a kind (link or file) and a url",
                            "attachments",
                        )
                    )
                    continue
                if not attachment.name.strip() or not attachment.url.strip():
                    errors.append(
                        _error(
                            ErrorKind.VALIDATION_ERROR,
                            "attachment_invalid",
                            "Attachments need a name and a url",
                            "attachments",
                        )
                    )
                    continue
                attachments.append(attachment)
            clean["attachments"] = attachments

        if "search_clues" in values:
            raw_clues = values["search_clues"]
            clues = plain_text_line(raw_clues, self._rules.assist.clue_max_chars) if raw_clues else ""
            clean["search_clues"] = clues or None

        return clean, errors

    def _clue_notice(self, body: str) -> tuple[str | None, OperationError | None]:
        """Generate clues for a body; failures become a non-fatal notice."""
        result = run_generate(
            GenerateCluesInput(body=body),
            generator=self._clue_generator,
            rules=self._rules.assist,
        )
        if result.success:
            return result.clues, None
        cause = result.errors[0]
        notice = OperationError(
            kind=ErrorKind.EXTERNAL_UNAVAILABLE,
            code=cause.code,
            message=f"Search clues were not generated: {cause.message}",
            field="search_clues",
        )
        return None, notice

    # --- Intents ---

    def run_submit(self, input_data: SubmitPostInput) -> PostOutput:
        """Create a post in pending state with the caller as author."""
        try:
            caller = self._resolve_caller(input_data.user_id, write=True)
            self._require(caller, "post:submit", None, "User not allowed to submit posts")

            values: dict[str, Any] = {
                "title": input_data.title,
                "body": input_data.body,
                "category": input_data.category,
                "tags": input_data.tags,
                "attachments": input_data.attachments,
            }
            if input_data.search_clues is not None:
                values["search_clues"] = input_data.search_clues
            clean, errors = self._validate_fields(values)
            if errors:
                return PostOutput(post=None, errors=errors, success=False)

            notices: list[OperationError] = []
            if clean.get("search_clues") is None and input_data.generate_clues:
                clues, notice = self._clue_notice(clean["body"])
                clean["search_clues"] = clues
                if notice:
                    notices.append(notice)

            status = next_status(None, "submit")
            assert status is not None
            now = self._clock.now_utc()
            post = Post(
                **clean,
                status=status,
                author_id=caller.id,
                created_at=now,
                updated_at=now,
            )
            saved = self._posts.insert_post(post)
            logger.info("Post %s submitted by %s", saved.id, caller.id)
            return PostOutput(post=saved, errors=[], notices=notices, success=True)
        except Denied as d:
            return PostOutput(post=None, errors=[d.error], success=False)
        except StoreError as e:
            logger.error("Store failure during submit: %s", e)
            return PostOutput(post=None, errors=[store_failure(e, "submit the post")], success=False)

    def run_edit(self, input_data: EditPostInput) -> PostOutput:
        """Overwrite editable fields; the status never changes."""
        try:
            caller = self._resolve_caller(input_data.user_id, write=True)
            post = self._load_post(input_data.post_id)

            if not self._policy.check_permission(caller, "post:edit", resource=post):
                if post.author_id == caller.id and post.status == "published":
                    message = "Published posts can only be changed by an admin"
                else:
                    message = "User not allowed to edit this post"
                raise Denied(_error(ErrorKind.FORBIDDEN, "permission_denied", message, "user_id"))

            self._require_state(post, "edit")

            locked = sorted(set(input_data.changes) - EDITABLE_FIELDS)
            if locked:
                return PostOutput(
                    post=None,
                    errors=[
                        _error(
                            ErrorKind.VALIDATION_ERROR,
                            "field_not_editable",
                            f"Fields cannot be edited: {', '.join(locked)}",
                            locked[0],
                        )
                    ],
                    success=False,
                )

            clean, errors = self._validate_fields(dict(input_data.changes))
            if errors:
                return PostOutput(post=None, errors=errors, success=False)

            notices: list[OperationError] = []
            if input_data.regenerate_clues and "body" in clean and "search_clues" not in clean:
                clues, notice = self._clue_notice(clean["body"])
                if notice:
                    notices.append(notice)
                else:
                    clean["search_clues"] = clues

            clean["updated_at"] = self._clock.now_utc()
            updated = self._posts.update_post(post.id, clean, expected_status=post.status)
            if updated is None:
                raise Denied(
                    _error(
                        ErrorKind.INVALID_TRANSITION,
                        "status_changed",
                        "Post changed while you were editing, reload and try again",
                        "status",
                    )
                )
            logger.info("Post %s edited by %s", post.id, caller.id)
            return PostOutput(post=updated, errors=[], notices=notices, success=True)
        except Denied as d:
            return PostOutput(post=None, errors=[d.error], success=False)
        except StoreError as e:
            logger.error("Store failure during edit of %s: %s", input_data.post_id, e)
            return PostOutput(post=None, errors=[store_failure(e, "edit the post")], success=False)

    def run_delete(self, input_data: DeletePostInput) -> DeleteOutput:
        """Remove a post; no tombstone is kept."""
        try:
            caller = self._resolve_caller(input_data.user_id, write=True)
            post = self._load_post(input_data.post_id)
            self._require(caller, "post:delete", post, "User not allowed to delete this post")
            self._require_state(post, "delete")

            if not self._posts.delete_post(post.id):
                raise _not_found_transition(post.id)
            logger.info("Post %s deleted by %s", post.id, caller.id)
            return DeleteOutput(errors=[], success=True)
        except Denied as d:
            return DeleteOutput(errors=[d.error], success=False)
        except StoreError as e:
            logger.error("Store failure during delete of %s: %s", input_data.post_id, e)
            return DeleteOutput(errors=[store_failure(e, "delete the post")], success=False)

    def _decide(self, user_id: UUID | None, post_id: UUID, event: PostEvent) -> PostOutput:
        try:
            caller = self._resolve_caller(user_id, write=True)
            self._require(caller, f"post:{event}", None, f"Only admins can {event} posts")
            post = self._load_post(post_id)
            self._require_state(post, event)

            expected: PostStatus = post.status
            decided = transition(post, event, self._clock.now_utc())
            updated = self._posts.set_status(
                post.id, decided.status, expected, decided.updated_at
            )
            if updated is None:
                # Lost the race against another moderator (or a delete).
                raise Denied(
                    _error(
                        ErrorKind.INVALID_TRANSITION,
                        "already_decided",
                        "Post was already decided by another admin",
                        "status",
                    )
                )
            logger.info("Post %s %s -> %s by %s", post.id, expected, decided.status, caller.id)
            return PostOutput(post=updated, errors=[], success=True)
        except Denied as d:
            return PostOutput(post=None, errors=[d.error], success=False)
        except StoreError as e:
            logger.error("Store failure during %s of %s: %s", event, post_id, e)
            return PostOutput(post=None, errors=[store_failure(e, f"{event} the post")], success=False)

    def run_approve(self, input_data: ApprovePostInput) -> PostOutput:
        """Publish a pending post."""
        return self._decide(input_data.user_id, input_data.post_id, "approve")

    def run_reject(self, input_data: RejectPostInput) -> PostOutput:
        """Reject a pending post."""
        return self._decide(input_data.user_id, input_data.post_id, "reject")

    def run_get(self, input_data: GetPostInput) -> PostOutput:
        """Read one post; hidden posts are reported as not found."""
        try:
            viewer = (
                self._resolve_caller(input_data.user_id, write=False)
                if input_data.user_id is not None
                else None
            )
            post = self._posts.get_post(input_data.post_id)
            action = "post:read_published" if post is not None and post.is_public else "post:read"
            if post is None or not self._policy.check_permission(viewer, action, resource=post):
                raise Denied(
                    _error(ErrorKind.NOT_FOUND, "post_not_found", "Post not found", "post_id")
                )
            return PostOutput(post=post, errors=[], success=True)
        except Denied as d:
            return PostOutput(post=None, errors=[d.error], success=False)
        except StoreError as e:
            logger.error("Store failure during read of %s: %s", input_data.post_id, e)
            return PostOutput(post=None, errors=[store_failure(e, "load the post")], success=False)

    def run_list_feed(self, input_data: ListFeedInput) -> FeedOutput:
        """List posts for a scope: public (published), review (pending), mine (own)."""
        scope = input_data.scope
        try:
            limit = self._page_size(input_data.limit, input_data.offset, self._rules.feed.limit)
            if scope == "public":
                self._require(None, "feed:public", None, "Public feed is not available")
                posts = self._posts.list_posts(
                    status="published", limit=limit, offset=input_data.offset
                )
            elif scope == "review":
                caller = self._resolve_caller(input_data.user_id, write=False)
                self._require(caller, "feed:review", None, "Only admins can see the review queue")
                posts = self._posts.list_posts(
                    status="pending", limit=limit, offset=input_data.offset
                )
            elif scope == "mine":
                caller = self._resolve_caller(input_data.user_id, write=False)
                self._require(caller, "feed:mine", None, "User not allowed to list own posts")
                posts = self._posts.list_posts(
                    author_id=caller.id, limit=limit, offset=input_data.offset
                )
            else:
                raise Denied(
                    _error(
                        ErrorKind.VALIDATION_ERROR,
                        "scope_invalid",
                        f"Unknown feed scope: {scope}",
                        "scope",
                    )
                )
            return FeedOutput(scope=scope, posts=posts, errors=[], success=True)
        except Denied as d:
            return FeedOutput(scope=scope, posts=[], errors=[d.error], success=False)
        except StoreError as e:
            logger.error("Store failure while listing %s feed: %s", scope, e)
            return FeedOutput(
                scope=scope, posts=[], errors=[store_failure(e, "load the feed")], success=False
            )

    def run_list_users(self, input_data: ListUsersInput) -> UsersOutput:
        """List profiles for the admin users screen, newest first."""
        try:
            caller = self._resolve_caller(input_data.user_id, write=False)
            self._require(caller, "users:list", None, "Only admins can list users")
            limit = self._page_size(input_data.limit, input_data.offset, self._rules.users.limit)
            users = self._users.list_users(limit=limit, offset=input_data.offset)
            return UsersOutput(users=users, errors=[], success=True)
        except Denied as d:
            return UsersOutput(users=[], errors=[d.error], success=False)
        except StoreError as e:
            logger.error("Store failure while listing users: %s", e)
            return UsersOutput(users=[], errors=[store_failure(e, "load users")], success=False)

    def run_toggle_ban(self, input_data: ToggleUserBanInput) -> UserOutput:
        """Ban or unban a non-admin user. Applying the current value is a no-op."""
        try:
            caller = self._resolve_caller(input_data.user_id, write=True)
            if not self._policy.can_moderate_users(caller):
                raise Denied(
                    _error(
                        ErrorKind.FORBIDDEN,
                        "permission_denied",
                        "Only admins can ban users",
                        "user_id",
                    )
                )

            target = self._users.get_user(input_data.target_user_id)
            if target is None:
                raise Denied(
                    _error(
                        ErrorKind.INVALID_TRANSITION,
                        "user_not_found",
                        f"User {input_data.target_user_id} does not exist",
                        "target_user_id",
                    )
                )
            if target.is_admin:
                raise Denied(
                    _error(
                        ErrorKind.FORBIDDEN,
                        "target_is_admin",
                        "Admins cannot be banned",
                        "target_user_id",
                    )
                )

            desired = (
                input_data.banned if input_data.banned is not None else not target.is_banned
            )
            if target.is_banned == desired:
                return UserOutput(user=target, errors=[], success=True)

            updated = self._users.set_user_banned(target.id, desired)
            if updated is None:
                raise Denied(
                    _error(
                        ErrorKind.INVALID_TRANSITION,
                        "user_not_found",
                        f"User {target.id} does not exist",
                        "target_user_id",
                    )
                )
            logger.info(
                "User %s %s by %s", target.id, "banned" if desired else "unbanned", caller.id
            )
            return UserOutput(user=updated, errors=[], success=True)
        except Denied as d:
            return UserOutput(user=None, errors=[d.error], success=False)
        except StoreError as e:
            logger.error("Store failure during ban of %s: %s", input_data.target_user_id, e)
            return UserOutput(user=None, errors=[store_failure(e, "update the user")], success=False)

    def run_generate_clues(self, input_data: ClueRequestInput) -> ClueOutput:
        """Preview search clues for the editor; failures are reported directly."""
        try:
            caller = self._resolve_caller(input_data.user_id, write=True)
            self._require(caller, "assist:clues", None, "User not allowed to use AI assistance")
        except Denied as d:
            return ClueOutput(clues=None, errors=[d.error], success=False)
        except StoreError as e:
            logger.error("Store failure while resolving caller: %s", e)
            return ClueOutput(clues=None, errors=[store_failure(e, "check your account")], success=False)

        return run_generate(
            GenerateCluesInput(body=input_data.body),
            generator=self._clue_generator,
            rules=self._rules.assist,
        )
