from fastapi import APIRouter, Depends, Query

from patchouli.api.deps import get_search
from patchouli.api.errors import raise_for_errors
from patchouli.api.schemas import NoticeModel, PostResponse, SearchResponse
from patchouli.components.search import SearchComponent, SearchInput
from patchouli.domain.entities import SearchMode

router = APIRouter()


@router.get("", response_model=SearchResponse)
def search(
    q: str = Query(..., description="Search phrase"),
    mode: SearchMode = "keyword",
    limit: int | None = None,
    component: SearchComponent = Depends(get_search),
) -> SearchResponse:
    """Search published posts. AI mode falls back to keywords when unavailable."""
    result = component.run(SearchInput(phrase=q, mode=mode, limit=limit))
    raise_for_errors(result.errors)
    return SearchResponse(
        posts=[PostResponse.model_validate(p) for p in result.posts],
        query=result.query,
        translated=result.translated,
        title_fallback=result.title_fallback,
        notices=[NoticeModel.from_error(n) for n in result.notices],
    )
