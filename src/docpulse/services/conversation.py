"""Conversation session: one chat thread bound to the selected document.

Keeps the local message list consistent with server history while layering
in the user's optimistic messages. History loads and sends share a single
in-flight guard, so at most one asynchronous mutation of the thread is
outstanding at a time.
"""

import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, Literal

from docpulse.client import BackendClient
from docpulse.config import settings
from docpulse.errors import (
    DocPulseError,
    HistoryFetchError,
    NoteSaveError,
    ReconciliationError,
    ValidationError,
    describe,
)
from docpulse.events import EventType, NotificationBus
from docpulse.models import (
    ConversationThread,
    Document,
    Message,
    Note,
    NoteMetadata,
    dedupe_messages,
    greeting_message,
    slugify,
)

logger = logging.getLogger(__name__)

ANALYSIS_ERROR_TEXT = "Sorry, I encountered an error analyzing your query. Please try again."


class SessionState(str, Enum):
    """What the session is doing right now."""

    IDLE = "idle"
    LOADING = "loading"
    SENDING = "sending"


class ConversationSession:
    """Chat thread for the currently selected document."""

    def __init__(
        self,
        client: BackendClient,
        credential: str,
        bus: NotificationBus | None = None,
        greeting: str | None = None,
        debounce_seconds: float | None = None,
        output_format: Literal["markdown", "json"] | None = None,
    ):
        self.client = client
        self.credential = credential
        self.bus = bus or NotificationBus()
        self.greeting = greeting_message(greeting or settings.greeting_message)
        self.debounce_seconds = (
            settings.history_debounce_seconds if debounce_seconds is None else debounce_seconds
        )
        self.output_format = output_format or settings.output_format

        self.document: Document | None = None
        self.thread: ConversationThread | None = None
        self.state = SessionState.IDLE
        self.is_saving_note = False

        self._debounce: asyncio.Task | None = None
        self._deferred_load = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def messages(self) -> tuple[Message, ...]:
        return self.thread.messages if self.thread else (self.greeting,)

    # ==================== Single-flight guard ====================

    @contextmanager
    def _single_flight(self, state: SessionState) -> Iterator[bool]:
        """Check-and-set the session state for the duration of one operation.

        Yields False without touching the state when another operation is in
        flight. The state is reset on every exit path of an acquired guard.
        """
        if self.state is not SessionState.IDLE:
            yield False
            return
        self.state = state
        try:
            yield True
        finally:
            self.state = SessionState.IDLE
            if self.thread is not None and self.thread.pending:
                self.thread = self.thread.with_pending(False)
            if self._deferred_load:
                self._deferred_load = False
                self._start_load()

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ==================== Document selection ====================

    def select_document(self, document: Document) -> None:
        """Replace the active thread and schedule a debounced history load."""
        self.document = document
        self.thread = ConversationThread(document_id=document.id, messages=(self.greeting,))
        self.bus.publish(EventType.THREAD_UPDATED, document_id=document.id)

        if self._debounce is not None and not self._debounce.done():
            self._debounce.cancel()
        self._debounce = self._spawn(self._debounced_load())

    async def _debounced_load(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._start_load()

    def _start_load(self) -> None:
        """Start a history load for the selected document, or defer it while busy."""
        if self.document is None:
            return
        if self.state is not SessionState.IDLE:
            logger.debug(f"Deferring history load for {self.document.id}: session {self.state.value}")
            self._deferred_load = True
            return
        self._spawn(self._load_in_background(self.document.id))

    async def _load_in_background(self, document_id: int | str) -> None:
        try:
            await self.load_history(document_id)
        except HistoryFetchError as e:
            logger.warning(f"Background history load for {document_id} failed: {e}")

    async def settle(self) -> None:
        """Wait until no debounce timer or history load is outstanding."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ==================== History ====================

    async def load_history(self, document_id: int | str) -> ConversationThread | None:
        """Fetch and apply server history for ``document_id``.

        Returns the resulting thread. Raises HistoryFetchError on failure,
        leaving the existing messages in place. Results and failures for a
        document that is no longer selected are dropped silently.
        """
        with self._single_flight(SessionState.LOADING) as acquired:
            if not acquired:
                self._deferred_load = True
                return self.thread

            try:
                history = await self.client.fetch_chat_history(document_id, self.credential)
            except DocPulseError as e:
                if self.document is None or self.document.id != document_id:
                    logger.warning(f"Ignoring failed history load for deselected document {document_id}: {e}")
                    return self.thread
                logger.error(f"Failed to load chat history for {document_id}: {e}")
                self.bus.error("Failed to load chat history")
                raise HistoryFetchError(f"Failed to load chat history for {document_id}") from e

            if self.document is None or self.document.id != document_id:
                logger.warning(f"Discarding stale chat history for {document_id}")
                return self.thread

            messages = dedupe_messages(history)
            if len(messages) < len(history):
                logger.info(f"Dropped {len(history) - len(messages)} duplicate message(s) for {document_id}")

            self.thread = ConversationThread(
                document_id=document_id,
                messages=messages or (self.greeting,),
            )
            self.bus.publish(EventType.THREAD_UPDATED, document_id=document_id)
            return self.thread

    # ==================== Sending ====================

    async def send_message(self, text: str) -> Message | None:
        """Send a user message and append the assistant's reply.

        Returns the reply (or the synthesized error notice), or None when the
        call was a no-op.
        """
        if not text or not text.strip() or self.document is None or self.thread is None:
            return None

        with self._single_flight(SessionState.SENDING) as acquired:
            if not acquired:
                logger.debug("Ignoring send while another operation is in flight")
                return None

            document_id = self.document.id
            turns = self.thread.history_turns()
            user_message = Message(role="user", content=text, created_at=datetime.now(timezone.utc))
            self.thread = self.thread.append(user_message).with_pending(True)
            thread = self.thread
            self.bus.publish(EventType.THREAD_UPDATED, document_id=document_id)

            try:
                reply = await self.client.analyze_document(
                    document_id,
                    text,
                    turns,
                    self.credential,
                    output_format=self.output_format,
                )
                if reply.content is None:
                    raise ReconciliationError("Analysis response has no content")
                message = Message(
                    role="assistant",
                    content=reply.content,
                    created_at=datetime.now(timezone.utc),
                    insights=reply.insights,
                    token_usage=reply.token_usage,
                    is_structured=self.output_format == "json",
                )
            except DocPulseError as e:
                logger.error(f"Analysis failed for document {document_id}: {e}")
                self.bus.error(f"Analysis failed: {describe(e)}")
                message = Message(role="assistant", content=ANALYSIS_ERROR_TEXT)

            # Reselecting the same document also replaces the thread
            if self.thread is not thread:
                logger.warning(f"Discarding reply for replaced thread {document_id}")
                return None
            if self.thread.contains_reply(message.content, message.created_at):
                return message

            self.thread = self.thread.append(message)
            self.bus.publish(EventType.THREAD_UPDATED, document_id=document_id)
            return message

    # ==================== Notes ====================

    async def save_message_as_note(
        self, message: Message, metadata: NoteMetadata | None = None
    ) -> Note:
        """Save a message as a note through the analyze endpoint."""
        if self.document is None:
            self.bus.error("No document selected")
            raise ValidationError("No document selected")

        metadata = metadata or NoteMetadata()
        document = self.document
        note_data = {
            "note_title": metadata.resolved_title(f"Analysis of {document.name}"),
            "content": message.content,
            "tags": metadata.resolved_tags(["analysis", slugify(document.name)]),
            "source_document": document.id,
            "source_type": "analysis",
            "source_id": str(message.id),
            "starred": False,
            "color": metadata.color or settings.default_note_color,
            "save_to_notes": True,
        }

        self.is_saving_note = True
        try:
            reply = await self.client.analyze_document(
                document.id, message.content, [], self.credential, **note_data
            )
        except DocPulseError as e:
            logger.error(f"Failed to save note for document {document.id}: {e}")
            self.bus.error(f"Failed to save note: {describe(e)}")
            raise NoteSaveError(f"Failed to save note: {describe(e)}") from e
        finally:
            self.is_saving_note = False

        if not reply.saved_note:
            self.bus.error("Failed to save note: No note returned")
            raise NoteSaveError("Failed to save note: No note returned")

        self.bus.success("Note saved successfully")
        try:
            return Note.model_validate(reply.saved_note)
        except ValueError as e:
            raise NoteSaveError("Saved note is malformed") from e
