from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from patchouli.api.deps import get_caller_id, get_lifecycle
from patchouli.api.errors import raise_for_errors
from patchouli.api.schemas import (
    NoticeModel,
    PostCreateRequest,
    PostEnvelope,
    PostResponse,
    PostUpdateRequest,
)
from patchouli.components.lifecycle import (
    DeletePostInput,
    EditPostInput,
    GetPostInput,
    LifecycleComponent,
    ListFeedInput,
    PostOutput,
    SubmitPostInput,
)

router = APIRouter()


def _envelope(result: PostOutput) -> PostEnvelope:
    raise_for_errors(result.errors)
    assert result.post is not None
    return PostEnvelope(
        post=PostResponse.model_validate(result.post),
        notices=[NoticeModel.from_error(n) for n in result.notices],
    )


@router.get("", response_model=list[PostResponse])
def list_posts(
    scope: Literal["public", "mine"] = "public",
    limit: int | None = None,
    offset: int = 0,
    caller_id: UUID | None = Depends(get_caller_id),
    lifecycle: LifecycleComponent = Depends(get_lifecycle),
) -> list[PostResponse]:
    """Public feed (published posts) or the caller's own posts."""
    result = lifecycle.run_list_feed(
        ListFeedInput(user_id=caller_id, scope=scope, limit=limit, offset=offset)
    )
    raise_for_errors(result.errors)
    return [PostResponse.model_validate(p) for p in result.posts]


@router.get("/{post_id}", response_model=PostResponse)
def get_post(
    post_id: UUID,
    caller_id: UUID | None = Depends(get_caller_id),
    lifecycle: LifecycleComponent = Depends(get_lifecycle),
) -> PostResponse:
    result = lifecycle.run_get(GetPostInput(user_id=caller_id, post_id=post_id))
    raise_for_errors(result.errors)
    return PostResponse.model_validate(result.post)


@router.post("", response_model=PostEnvelope, status_code=201)
def submit_post(
    req: PostCreateRequest,
    caller_id: UUID | None = Depends(get_caller_id),
    lifecycle: LifecycleComponent = Depends(get_lifecycle),
) -> PostEnvelope:
    """Submit a post for review. It starts out pending."""
    inp = SubmitPostInput(
        user_id=caller_id,
        title=req.title,
        body=req.body,
        category=req.category,
        tags=req.tags,
        attachments=[a.to_component() for a in req.attachments],
        search_clues=req.search_clues,
        generate_clues=req.generate_clues,
    )
    return _envelope(lifecycle.run_submit(inp))


@router.patch("/{post_id}", response_model=PostEnvelope)
def edit_post(
    post_id: UUID,
    req: PostUpdateRequest,
    caller_id: UUID | None = Depends(get_caller_id),
    lifecycle: LifecycleComponent = Depends(get_lifecycle),
) -> PostEnvelope:
    changes = req.model_dump(exclude_unset=True, exclude={"regenerate_clues"})
    if req.attachments is not None:
        changes["attachments"] = [a.to_component() for a in req.attachments]

    inp = EditPostInput(
        user_id=caller_id,
        post_id=post_id,
        changes=changes,
        regenerate_clues=req.regenerate_clues,
    )
    return _envelope(lifecycle.run_edit(inp))


@router.delete("/{post_id}", status_code=204)
def delete_post(
    post_id: UUID,
    caller_id: UUID | None = Depends(get_caller_id),
    lifecycle: LifecycleComponent = Depends(get_lifecycle),
) -> Response:
    result = lifecycle.run_delete(DeletePostInput(user_id=caller_id, post_id=post_id))
    raise_for_errors(result.errors)
    return Response(status_code=204)
