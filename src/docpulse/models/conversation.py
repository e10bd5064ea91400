"""Conversation and message models."""

import json
from datetime import datetime, timezone
from typing import Any, Literal
import uuid

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

GREETING_ID = "greeting"


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Insight(BaseModel):
    """A labelled value extracted by the assistant."""

    model_config = ConfigDict(frozen=True)

    label: str
    value: Any = None


class TokenUsage(BaseModel):
    """Token accounting reported with an assistant reply."""

    model_config = ConfigDict(frozen=True, extra="allow")

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


class Message(BaseModel):
    """A single message in a document conversation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int | str = Field(default_factory=_uuid, description="Message ID")
    role: Literal["user", "assistant"] = Field(..., description="Message role")
    content: str | dict[str, Any] | list[Any] = Field(..., description="Text or structured content")
    created_at: datetime = Field(
        default_factory=_now,
        validation_alias=AliasChoices("created_at", "timestamp"),
        description="Creation timestamp",
    )
    insights: list[Insight] = Field(default_factory=list, description="Extracted insights")
    token_usage: TokenUsage | None = Field(None, description="Token usage for assistant replies")
    is_structured: bool = Field(
        False,
        validation_alias=AliasChoices("is_structured", "is_json"),
        description="Content was requested as JSON",
    )

    @model_validator(mode="before")
    @classmethod
    def _role_from_type(cls, data: Any) -> Any:
        """Accept the backend's ``type: user|ai`` in place of ``role``."""
        if isinstance(data, dict) and "role" not in data and "type" in data:
            data = dict(data)
            data["role"] = "user" if data["type"] == "user" else "assistant"
        return data

    @property
    def key(self) -> tuple[str, int]:
        """Identity key: (id, created_at in epoch milliseconds)."""
        return str(self.id), int(self.created_at.timestamp() * 1000)

    @property
    def is_greeting(self) -> bool:
        return self.id == GREETING_ID

    def as_turn(self) -> dict[str, str]:
        """Serialize as a role-tagged turn for the analyze request."""
        content = self.content
        if not isinstance(content, str):
            content = json.dumps(content)
        return {"role": self.role, "content": content}


class AnalysisReply(BaseModel):
    """Response of the analyze endpoint.

    ``content`` is set for queries; ``saved_note`` for note-save requests.
    """

    model_config = ConfigDict(extra="ignore")

    content: str | dict[str, Any] | list[Any] | None = None
    insights: list[Insight] = Field(default_factory=list)
    token_usage: TokenUsage | None = None
    saved_note: dict[str, Any] | None = None


def greeting_message(text: str) -> Message:
    """The synthetic assistant greeting shown on an empty thread."""
    return Message(id=GREETING_ID, role="assistant", content=text)


class ConversationThread(BaseModel):
    """Messages for one selected document.

    Frozen: every mutation returns a new thread.
    """

    model_config = ConfigDict(frozen=True)

    document_id: int | str = Field(..., description="Selected document ID")
    messages: tuple[Message, ...] = Field(default_factory=tuple, description="Messages ordered by time")
    pending: bool = Field(False, description="An analyze request is outstanding")

    def append(self, message: Message) -> "ConversationThread":
        return self.model_copy(update={"messages": self.messages + (message,)})

    def with_pending(self, pending: bool) -> "ConversationThread":
        return self.model_copy(update={"pending": pending})

    def history_turns(self) -> list[dict[str, str]]:
        """Prior messages as role-tagged turns, greeting excluded."""
        return [m.as_turn() for m in self.messages if not m.is_greeting]

    def contains_reply(self, content: Any, created_at: datetime) -> bool:
        return any(
            m.role == "assistant" and m.content == content and m.created_at == created_at
            for m in self.messages
        )


def dedupe_messages(messages: list[Message]) -> tuple[Message, ...]:
    """Drop messages whose (id, created_at) key was already seen, keeping first-seen order."""
    seen: set[tuple[str, int]] = set()
    unique = []
    for message in messages:
        if message.key in seen:
            continue
        seen.add(message.key)
        unique.append(message)
    return tuple(unique)
