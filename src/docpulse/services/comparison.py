"""Comparison workspace for document pairs."""

import json
import logging
import time
from typing import Literal

from docpulse.client import BackendClient
from docpulse.config import settings
from docpulse.errors import DocPulseError, NoteSaveError, ReconciliationError, ValidationError, describe
from docpulse.events import EventType, NotificationBus
from docpulse.models import (
    ComparisonEntry,
    ComparisonResult,
    Document,
    Note,
    NoteMetadata,
    slugify,
)

logger = logging.getLogger(__name__)


class ComparisonWorkspace:
    """Select two documents, compare them, browse and save comparisons."""

    def __init__(
        self,
        client: BackendClient,
        credential: str,
        bus: NotificationBus | None = None,
        output_format: Literal["markdown", "json"] | None = None,
    ):
        self.client = client
        self.credential = credential
        self.bus = bus or NotificationBus()
        self.output_format = output_format or settings.output_format

        self.document1: Document | None = None
        self.document2: Document | None = None
        self.result: ComparisonResult | None = None
        self.history: tuple[ComparisonEntry, ...] = ()
        self.active_history_id: int | str | None = None
        self.is_comparing = False

    def select(self, document1: Document | None, document2: Document | None) -> None:
        self.document1 = document1
        self.document2 = document2

    async def compare(self) -> ComparisonResult | None:
        """Compare the selected pair.

        Returns None when a comparison is already running.

        Raises:
            ValidationError: If the pair is incomplete or both sides are the same document

        """
        if self.document1 is None or self.document2 is None:
            self.bus.error("Please select two documents to compare")
            raise ValidationError("Please select two documents to compare")
        if self.document1.id == self.document2.id:
            self.bus.error("Cannot compare the same document")
            raise ValidationError("Cannot compare the same document")
        if self.is_comparing:
            return None

        first, second = self.document1, self.document2
        self.is_comparing = True
        try:
            reply = await self.client.compare_documents(
                first.id, second.id, self.credential, output_format=self.output_format
            )
            if reply.result is None:
                raise ReconciliationError("Comparison response has no result")
        except DocPulseError as e:
            logger.error(f"Comparison of {first.id} and {second.id} failed: {e}")
            self.bus.error(f"Comparison failed: {describe(e)}")
            return None
        finally:
            self.is_comparing = False

        self.result = reply.result.model_copy(
            update={"document1_id": first.id, "document2_id": second.id}
        )
        self.active_history_id = None
        self.bus.info("Comparison completed!")
        self.bus.publish(EventType.COMPARISON_UPDATED)
        return self.result

    async def load_history(self) -> tuple[ComparisonEntry, ...]:
        try:
            history = await self.client.fetch_comparison_history(self.credential)
        except DocPulseError as e:
            logger.error(f"Failed to load comparison history: {e}")
            self.bus.error("Failed to load comparison history")
            return self.history
        self.history = tuple(history)
        return self.history

    def view(self, entry: ComparisonEntry) -> ComparisonResult:
        """Make a history entry the active comparison."""
        self.document1 = entry.document1
        self.document2 = entry.document2
        self.result = entry.result.model_copy(
            update={"document1_id": entry.document1.id, "document2_id": entry.document2.id}
        )
        self.active_history_id = entry.id
        self.bus.info(f"Viewing comparison: {entry.document1.name} vs {entry.document2.name}")
        self.bus.publish(EventType.COMPARISON_UPDATED)
        return self.result

    async def save_as_note(self, metadata: NoteMetadata | None = None) -> Note:
        """Save the active comparison as a note through the compare endpoint."""
        result = self.result
        if result is None or result.document1_id is None or result.document2_id is None:
            self.bus.error("Missing comparison result or document IDs")
            raise ValidationError("Missing comparison result or document IDs")

        metadata = metadata or NoteMetadata()
        name1 = self.document1.name if self.document1 else "Document 1"
        name2 = self.document2.name if self.document2 else "Document 2"
        content = (
            json.dumps(result.model_dump(mode="json"), indent=2)
            if result.is_structured
            else result.summary
        )
        note_data = {
            "note_title": metadata.resolved_title(f"Comparison of {name1} vs {name2}"),
            "content": content,
            "tags": metadata.resolved_tags(["comparison", slugify(name1), slugify(name2)]),
            "source_document": result.document1_id,
            "source_type": "comparison",
            "source_id": str(result.id) if result.id is not None else str(int(time.time() * 1000)),
            "starred": False,
            "color": metadata.color or settings.default_comparison_note_color,
            "save_to_notes": True,
        }

        try:
            reply = await self.client.compare_documents(
                result.document1_id, result.document2_id, self.credential, **note_data
            )
        except DocPulseError as e:
            logger.error(f"Failed to save comparison note: {e}")
            self.bus.error(f"Failed to save note: {describe(e)}")
            raise NoteSaveError(f"Failed to save note: {describe(e)}") from e

        if not reply.saved_note:
            self.bus.error("Failed to save note: No note returned")
            raise NoteSaveError("Failed to save note: No note returned")

        self.bus.success("Note saved successfully")
        try:
            return Note.model_validate(reply.saved_note)
        except ValueError as e:
            raise NoteSaveError("Saved note is malformed") from e
