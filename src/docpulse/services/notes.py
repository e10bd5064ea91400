"""Saved notes library."""

import logging
from collections import Counter

from docpulse.client import BackendClient
from docpulse.config import settings
from docpulse.errors import DocPulseError, NoteSaveError, ValidationError, describe
from docpulse.events import EventType, NotificationBus
from docpulse.models import Note, NoteMetadata

logger = logging.getLogger(__name__)

RECENT_COUNT = 5


class NotesLibrary:
    """Saved notes with star/delete actions and local filtering.

    Local state changes only after the backend confirms each action.
    """

    def __init__(self, client: BackendClient, credential: str, bus: NotificationBus | None = None):
        self.client = client
        self.credential = credential
        self.bus = bus or NotificationBus()
        self.notes: tuple[Note, ...] = ()
        self.is_loading = False

    async def load_notes(self) -> tuple[Note, ...]:
        self.is_loading = True
        try:
            notes = await self.client.fetch_notes(self.credential)
        except DocPulseError as e:
            logger.error(f"Failed to load notes: {e}")
            self.bus.error("Failed to load saved notes")
            return self.notes
        finally:
            self.is_loading = False
        self.notes = tuple(notes)
        self.bus.publish(EventType.NOTES_UPDATED, count=len(self.notes))
        return self.notes

    async def create_note(self, metadata: NoteMetadata, content: str) -> Note:
        """Create a standalone note and put it at the top of the library.

        Raises:
            ValidationError: If the title or content is blank
            NoteSaveError: If the backend rejects the note

        """
        title = metadata.title.strip()
        if not title or not content or not content.strip():
            self.bus.error("Please enter a title and content")
            raise ValidationError("Note title and content are required")

        data = {
            "title": title,
            "content": content,
            "tags": metadata.resolved_tags([]),
            "starred": False,
            "color": metadata.color or settings.default_note_color,
        }
        try:
            note = await self.client.save_note(data, self.credential)
        except DocPulseError as e:
            logger.error(f"Failed to create note {title!r}: {e}")
            self.bus.error(f"Failed to save note: {describe(e)}")
            raise NoteSaveError(f"Failed to save note: {describe(e)}") from e

        self.notes = (note,) + self.notes
        self.bus.success("Note saved successfully")
        self.bus.publish(EventType.NOTES_UPDATED, count=len(self.notes))
        return note

    async def toggle_star(self, note_id: int | str) -> Note | None:
        note = next((n for n in self.notes if n.id == note_id), None)
        if note is None:
            return None
        try:
            await self.client.update_note(note_id, {"starred": not note.starred}, self.credential)
        except DocPulseError as e:
            logger.error(f"Failed to update star status of note {note_id}: {e}")
            self.bus.error("Failed to update note")
            return None

        updated = note.model_copy(update={"starred": not note.starred})
        self.notes = tuple(updated if n.id == note_id else n for n in self.notes)
        self.bus.success(f"Note {'unstarred' if note.starred else 'starred'}")
        self.bus.publish(EventType.NOTES_UPDATED, count=len(self.notes))
        return updated

    async def delete_note(self, note_id: int | str) -> bool:
        try:
            await self.client.delete_note(note_id, self.credential)
        except DocPulseError as e:
            logger.error(f"Failed to delete note {note_id}: {e}")
            self.bus.error("Failed to delete note")
            return False
        self.notes = tuple(n for n in self.notes if n.id != note_id)
        self.bus.success("Note deleted")
        self.bus.publish(EventType.NOTES_UPDATED, count=len(self.notes))
        return True

    def filter_notes(self, search: str = "", filter_id: str = "all") -> list[Note]:
        """Notes matching a search term and a filter.

        ``filter_id`` is ``all``, ``starred``, ``recent`` (the first five
        notes) or a tag.
        """
        matches = []
        for index, note in enumerate(self.notes):
            if search and not note.matches(search):
                continue
            if filter_id == "all":
                matches.append(note)
            elif filter_id == "starred":
                if note.starred:
                    matches.append(note)
            elif filter_id == "recent":
                if index < RECENT_COUNT:
                    matches.append(note)
            elif filter_id in note.tags:
                matches.append(note)
        return matches

    def tag_filters(self) -> dict[str, int]:
        """Filter ids with their note counts."""
        counts = {
            "all": len(self.notes),
            "starred": sum(1 for n in self.notes if n.starred),
            "recent": min(len(self.notes), RECENT_COUNT),
        }
        tags = Counter(tag for note in self.notes for tag in set(note.tags))
        for tag, count in tags.items():
            counts.setdefault(tag, count)
        return counts
