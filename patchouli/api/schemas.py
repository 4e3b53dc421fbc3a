from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from patchouli.domain.errors import OperationError

# --- Shared Enums/Types ---
PostStatus = Literal["pending", "published", "rejected"]
PostCategory = Literal["script", "block", "entity"]
AttachmentKind = Literal["link", "file"]


# --- Attachments ---
class AttachmentModel(BaseModel):
    id: str | None = None
    name: str
    kind: AttachmentKind = "link"
    url: str

    model_config = ConfigDict(from_attributes=True)

    def to_component(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


# --- Posts ---
class PostCreateRequest(BaseModel):
    title: str
    body: str
    category: PostCategory = "script"
    tags: list[str] = Field(default_factory=list)
    attachments: list[AttachmentModel] = Field(default_factory=list)
    search_clues: str | None = None
    generate_clues: bool = True


class PostUpdateRequest(BaseModel):
    title: str | None = None
    body: str | None = None
    category: PostCategory | None = None
    tags: list[str] | None = None
    attachments: list[AttachmentModel] | None = None
    search_clues: str | None = None
    regenerate_clues: bool = False


class PostResponse(BaseModel):
    id: UUID
    title: str
    body: str
    category: PostCategory
    tags: list[str] = Field(default_factory=list)
    attachments: list[AttachmentModel] = Field(default_factory=list)
    search_clues: str | None = None
    status: PostStatus
    author_id: UUID
    author_name: str | None = None
    author_avatar: str = ""
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NoticeModel(BaseModel):
    kind: str
    code: str
    message: str
    field: str | None = None

    @classmethod
    def from_error(cls, error: OperationError) -> "NoticeModel":
        return cls(kind=error.kind.value, code=error.code, message=error.message, field=error.field)


class PostEnvelope(BaseModel):
    """A post plus any non-fatal notices from advisory steps."""

    post: PostResponse
    notices: list[NoticeModel] = Field(default_factory=list)


# --- Users ---
class UserResponse(BaseModel):
    id: UUID
    name: str
    avatar: str = ""
    role: Literal["user", "admin"]
    is_banned: bool

    model_config = ConfigDict(from_attributes=True)


class BanRequest(BaseModel):
    banned: bool | None = None


# --- Search / Assist ---
class SearchResponse(BaseModel):
    posts: list[PostResponse]
    query: str | None = None
    translated: bool = False
    title_fallback: bool = False
    notices: list[NoticeModel] = Field(default_factory=list)


class ClueRequest(BaseModel):
    body: str


class ClueResponse(BaseModel):
    clues: str
