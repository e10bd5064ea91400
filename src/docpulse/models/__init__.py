"""Shared Pydantic models for docpulse."""

from docpulse.models.conversation import (
    GREETING_ID,
    AnalysisReply,
    ConversationThread,
    Insight,
    Message,
    TokenUsage,
    dedupe_messages,
    greeting_message,
)
from docpulse.models.documents import (
    Document,
    LocalFile,
    UploadCandidate,
    UploadResult,
    UploadStatus,
)
from docpulse.models.feed import (
    Author,
    Comment,
    InteractAction,
    LikeResult,
    Post,
    PostType,
    SaveResult,
)
from docpulse.models.notes import (
    ComparisonEntry,
    ComparisonReply,
    ComparisonResult,
    Note,
    NoteMetadata,
    slugify,
)
from docpulse.models.profile import UserProfile, profile_form_fields

__all__ = [
    # Conversation
    "GREETING_ID",
    "AnalysisReply",
    "ConversationThread",
    "Insight",
    "Message",
    "TokenUsage",
    "dedupe_messages",
    "greeting_message",
    # Documents and uploads
    "Document",
    "LocalFile",
    "UploadCandidate",
    "UploadResult",
    "UploadStatus",
    # Feed
    "Author",
    "Comment",
    "InteractAction",
    "LikeResult",
    "Post",
    "PostType",
    "SaveResult",
    # Notes and comparisons
    "ComparisonEntry",
    "ComparisonReply",
    "ComparisonResult",
    "Note",
    "NoteMetadata",
    "slugify",
    # Profile
    "UserProfile",
    "profile_form_fields",
]
