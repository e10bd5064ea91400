"""Saved note and document comparison models."""

import re
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from docpulse.models.documents import Document


def slugify(name: str) -> str:
    """Lowercase and replace whitespace with dashes, as used for default tags."""
    return re.sub(r"\s", "-", name.lower())


class Note(BaseModel):
    """A note saved from an analysis or a comparison."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int | str
    title: str = Field("", validation_alias=AliasChoices("title", "note_title"))
    content: Any = ""
    tags: list[str] = Field(default_factory=list)
    source_document: Any = None
    source_type: str | None = None
    source_id: str | None = None
    starred: bool = False
    color: str = "blue"
    created_at: datetime | None = None

    def matches(self, search: str) -> bool:
        """Case-insensitive search over title, content and tags."""
        term = search.lower()
        return (
            term in self.title.lower()
            or term in str(self.content).lower()
            or any(term in tag.lower() for tag in self.tags)
        )


class NoteMetadata(BaseModel):
    """What the user typed into the save-note form."""

    title: str = ""
    tags: str | list[str] = ""
    color: str | None = None

    def resolved_title(self, default: str) -> str:
        return self.title.strip() or default

    def resolved_tags(self, default: list[str]) -> list[str]:
        """Comma-separated tags, trimmed and lowercased; ``default`` when none given."""
        raw = self.tags.split(",") if isinstance(self.tags, str) else self.tags
        tags = [tag.strip().lower() for tag in raw if tag.strip()]
        return tags or default


class ComparisonResult(BaseModel):
    """Outcome of comparing two documents."""

    model_config = ConfigDict(frozen=True, extra="allow")

    id: int | str | None = None
    summary: str = ""
    key_differences: list[Any] = Field(
        default_factory=list, validation_alias=AliasChoices("key_differences", "keyDifferences")
    )
    similarities: list[Any] = Field(default_factory=list)
    recommendations: list[Any] = Field(default_factory=list)
    is_structured: bool = Field(False, validation_alias=AliasChoices("is_structured", "is_json"))
    document1_id: int | str | None = None
    document2_id: int | str | None = None


class ComparisonReply(BaseModel):
    """Response of the compare endpoint."""

    model_config = ConfigDict(extra="ignore")

    result: ComparisonResult | None = None
    saved_note: dict[str, Any] | None = None


class ComparisonEntry(BaseModel):
    """A comparison-history record."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int | str
    document1: Document
    document2: Document
    result: ComparisonResult
    created_at: datetime | None = None
