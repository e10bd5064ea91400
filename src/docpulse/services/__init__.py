"""State components driven by the dashboard UI."""

from docpulse.services.comparison import ComparisonWorkspace
from docpulse.services.conversation import ConversationSession, SessionState
from docpulse.services.feed import FeedInteractionEngine, build_post_payload
from docpulse.services.notes import NotesLibrary
from docpulse.services.profile import ProfileView
from docpulse.services.uploads import UploadBatchManager, validate_file

__all__ = [
    "ComparisonWorkspace",
    "ConversationSession",
    "SessionState",
    "FeedInteractionEngine",
    "build_post_payload",
    "NotesLibrary",
    "ProfileView",
    "UploadBatchManager",
    "validate_file",
]
