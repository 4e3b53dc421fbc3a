from uuid import UUID

from fastapi import APIRouter, Depends

from patchouli.api.deps import get_caller_id, get_lifecycle
from patchouli.api.errors import raise_for_errors
from patchouli.api.schemas import ClueRequest, ClueResponse
from patchouli.components.lifecycle import ClueRequestInput, LifecycleComponent

router = APIRouter()


@router.post("/clues", response_model=ClueResponse)
def generate_clues(
    req: ClueRequest,
    caller_id: UUID | None = Depends(get_caller_id),
    lifecycle: LifecycleComponent = Depends(get_lifecycle),
) -> ClueResponse:
    """Preview search clues for a body before submitting it."""
    result = lifecycle.run_generate_clues(ClueRequestInput(user_id=caller_id, body=req.body))
    raise_for_errors(result.errors)
    return ClueResponse(clues=result.clues or "")
