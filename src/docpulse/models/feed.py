"""Feed post, comment and interaction models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PostType(str, Enum):
    """Kinds of feed posts."""

    INSIGHT = "insight"
    QUESTION = "question"
    AI_HIGHLIGHT = "ai"


class InteractAction(str, Enum):
    """Actions accepted by the post interact endpoint."""

    LIKE = "like"
    UNLIKE = "unlike"
    SAVE = "save"
    UNSAVE = "unsave"


class Author(BaseModel):
    """Public profile attached to posts and comments."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int | str | None = None
    username: str = "User"
    avatar: str | None = None
    company_name: str | None = None


class Comment(BaseModel):
    """A comment on a feed post."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: int | str
    author: Author | None = Field(None, alias="user")
    content: str
    created_at: datetime | None = None


class Post(BaseModel):
    """A feed post with its interaction and comment-thread state.

    ``comment_count`` is the server's count; ``comments`` only holds what has
    been fetched or submitted locally, so the count may exceed it until
    ``comments_loaded`` is set.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: int | str
    author: Author | None = Field(None, alias="user")
    post_type: PostType = PostType.INSIGHT
    created_at: datetime | None = None

    # Body variants
    summary: str | None = None
    tags: list[str] = Field(default_factory=list)
    question: str | None = None
    bullets: list[str] = Field(default_factory=list)

    # Interaction state
    like_count: int = Field(0, alias="likes")
    is_liked: bool = False
    is_saved: bool = False

    # Comment thread
    comment_count: int = Field(0, alias="comments_count")
    comments: tuple[Comment, ...] = ()
    comments_loaded: bool = False
    comments_expanded: bool = False
    comment_error: str | None = None

    @property
    def body(self) -> Any:
        """Body for the post's variant."""
        if self.post_type is PostType.QUESTION:
            return self.question
        if self.post_type is PostType.AI_HIGHLIGHT:
            return list(self.bullets)
        return {"summary": self.summary, "tags": list(self.tags)}

    def update(self, **changes: Any) -> "Post":
        return self.model_copy(update=changes)


class LikeResult(BaseModel):
    """Authoritative like state returned by the interact endpoint."""

    likes: int
    is_liked: bool


class SaveResult(BaseModel):
    """Authoritative save state returned by the interact endpoint."""

    is_saved: bool
