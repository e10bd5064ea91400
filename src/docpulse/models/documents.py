"""Document and upload queue models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
import mimetypes
import uuid

from pydantic import BaseModel, ConfigDict, Field


def _uuid() -> str:
    return str(uuid.uuid4())


class Document(BaseModel):
    """An uploaded document as listed by the backend."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int | str
    name: str
    file_type: str | None = None
    size: int | None = None
    uploaded_at: datetime | None = None


@dataclass(frozen=True)
class LocalFile:
    """A file picked or dropped by the user, not yet uploaded."""

    name: str
    size: int
    content: Any = b""  # bytes or a binary file object

    @property
    def extension(self) -> str:
        """Lowercased text after the last dot."""
        return self.name.rsplit(".", 1)[-1].lower()

    @property
    def content_type(self) -> str:
        return mimetypes.guess_type(self.name)[0] or "application/octet-stream"


class UploadStatus(str, Enum):
    """Lifecycle of a queued upload candidate."""

    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    ERROR = "error"


class UploadCandidate(BaseModel):
    """A queued file with its validation/upload outcome."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_uuid, description="Client-assigned ID")
    file: LocalFile
    name: str
    size_bytes: int
    status: UploadStatus = UploadStatus.PENDING
    error_reason: str | None = None


class UploadResult(BaseModel):
    """Per-file outcome of a batch upload."""

    model_config = ConfigDict(extra="ignore")

    name: str
    error: str | None = None
