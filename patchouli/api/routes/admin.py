from uuid import UUID

from fastapi import APIRouter, Depends

from patchouli.api.deps import get_caller_id, get_lifecycle
from patchouli.api.errors import raise_for_errors
from patchouli.api.schemas import BanRequest, PostResponse, UserResponse
from patchouli.components.lifecycle import (
    ApprovePostInput,
    LifecycleComponent,
    ListFeedInput,
    ListUsersInput,
    RejectPostInput,
    ToggleUserBanInput,
)

router = APIRouter()


@router.get("/queue", response_model=list[PostResponse])
def review_queue(
    limit: int | None = None,
    offset: int = 0,
    caller_id: UUID | None = Depends(get_caller_id),
    lifecycle: LifecycleComponent = Depends(get_lifecycle),
) -> list[PostResponse]:
    """Pending posts awaiting a decision."""
    result = lifecycle.run_list_feed(
        ListFeedInput(user_id=caller_id, scope="review", limit=limit, offset=offset)
    )
    raise_for_errors(result.errors)
    return [PostResponse.model_validate(p) for p in result.posts]


@router.post("/posts/{post_id}/approve", response_model=PostResponse)
def approve_post(
    post_id: UUID,
    caller_id: UUID | None = Depends(get_caller_id),
    lifecycle: LifecycleComponent = Depends(get_lifecycle),
) -> PostResponse:
    result = lifecycle.run_approve(ApprovePostInput(user_id=caller_id, post_id=post_id))
    raise_for_errors(result.errors)
    return PostResponse.model_validate(result.post)


@router.post("/posts/{post_id}/reject", response_model=PostResponse)
def reject_post(
    post_id: UUID,
    caller_id: UUID | None = Depends(get_caller_id),
    lifecycle: LifecycleComponent = Depends(get_lifecycle),
) -> PostResponse:
    result = lifecycle.run_reject(RejectPostInput(user_id=caller_id, post_id=post_id))
    raise_for_errors(result.errors)
    return PostResponse.model_validate(result.post)


@router.get("/users", response_model=list[UserResponse])
def list_users(
    limit: int | None = None,
    offset: int = 0,
    caller_id: UUID | None = Depends(get_caller_id),
    lifecycle: LifecycleComponent = Depends(get_lifecycle),
) -> list[UserResponse]:
    """Profiles for the moderation screen, newest first."""
    result = lifecycle.run_list_users(
        ListUsersInput(user_id=caller_id, limit=limit, offset=offset)
    )
    raise_for_errors(result.errors)
    return [UserResponse.model_validate(u) for u in result.users]


@router.post("/users/{user_id}/ban", response_model=UserResponse)
def toggle_ban(
    user_id: UUID,
    req: BanRequest | None = None,
    caller_id: UUID | None = Depends(get_caller_id),
    lifecycle: LifecycleComponent = Depends(get_lifecycle),
) -> UserResponse:
    """Ban or unban a user; omit `banned` to flip the current flag."""
    inp = ToggleUserBanInput(
        user_id=caller_id,
        target_user_id=user_id,
        banned=req.banned if req else None,
    )
    result = lifecycle.run_toggle_ban(inp)
    raise_for_errors(result.errors)
    return UserResponse.model_validate(result.user)
