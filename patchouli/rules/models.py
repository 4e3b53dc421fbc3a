from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str

class RbacRules(BaseModel):
    roles: dict[str, list[str]]
    public_permissions: list[str]

class AbacRule(BaseModel):
    if_condition: dict[str, Any] = Field(alias="if")
    allow: list[str]

    model_config = ConfigDict(populate_by_name=True)

class AbacRules(BaseModel):
    post_rules: list[AbacRule]

class RangeRule(BaseModel):
    min: int
    max: int

class PostRules(BaseModel):
    title: RangeRule
    body: RangeRule
    categories: list[str]
    allowed_tags: list[str]
    max_tags: int = 10
    max_attachments: int = 20

class FeedRules(BaseModel):
    limit: int = 20

class UserRules(BaseModel):
    limit: int = 100

class SearchRules(BaseModel):
    limit: int = 50
    title_fallback: bool = True

class AssistRules(BaseModel):
    clue_input_chars: int = 5000
    clue_max_chars: int = 100
    phrase_max_chars: int = 300
    timeout_seconds: float = 15.0

class StoreRules(BaseModel):
    timeout_seconds: float = 5.0

class OpsRules(BaseModel):
    required_env: list[str] = Field(default_factory=list)

class Rules(BaseModel):
    project: ProjectRules
    rbac: RbacRules
    abac: AbacRules
    posts: PostRules
    feed: FeedRules = Field(default_factory=FeedRules)
    users: UserRules = Field(default_factory=UserRules)
    search: SearchRules = Field(default_factory=SearchRules)
    assist: AssistRules = Field(default_factory=AssistRules)
    store: StoreRules = Field(default_factory=StoreRules)
    ops: OpsRules = Field(default_factory=OpsRules)
