from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
RoleType = Literal["user", "admin"]
PostStatus = Literal["pending", "published", "rejected"]
PostCategory = Literal["script", "block", "entity"]
AttachmentKind = Literal["link", "file"]
FeedScope = Literal["public", "review", "mine"]
SearchMode = Literal["keyword", "ai"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


# --- Identity ---

class User(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    avatar: str = ""
    role: RoleType = "user"
    is_banned: bool = False
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

# --- Posts ---

class Attachment(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    kind: AttachmentKind = "link"
    url: str
    # Position is implicitly defined by list order in Post

class Post(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    title: str
    body: str
    category: PostCategory = "script"
    tags: list[str] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    search_clues: str | None = None
    status: PostStatus = "pending"

    author_id: UUID
    # Resolved from the author's profile on read; never written.
    author_name: str | None = None
    author_avatar: str = ""

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_public(self) -> bool:
        return self.status == "published"
