"""Composition root wiring one client and bus into every component."""

import logging

import httpx

from docpulse.client import BackendClient, RefreshCredential
from docpulse.errors import FeedLoadError
from docpulse.events import NotificationBus
from docpulse.services import (
    ComparisonWorkspace,
    ConversationSession,
    FeedInteractionEngine,
    NotesLibrary,
    ProfileView,
    UploadBatchManager,
)

logger = logging.getLogger(__name__)


class Dashboard:
    """All dashboard components for one signed-in user.

    The access credential is owned by the session-bootstrap collaborator and
    passed in here; components only read it.
    """

    def __init__(
        self,
        credential: str,
        *,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        refresh_credential: RefreshCredential | None = None,
        bus: NotificationBus | None = None,
    ):
        self.bus = bus or NotificationBus()
        self.client = BackendClient(
            base_url,
            transport=transport,
            refresh_credential=refresh_credential,
            bus=self.bus,
        )
        self.conversation = ConversationSession(self.client, credential, bus=self.bus)
        self.feed = FeedInteractionEngine(self.client, credential, bus=self.bus)
        self.uploads = UploadBatchManager(self.client, credential, bus=self.bus)
        self.comparison = ComparisonWorkspace(self.client, credential, bus=self.bus)
        self.notes = NotesLibrary(self.client, credential, bus=self.bus)
        self.profile = ProfileView(self.client, credential, bus=self.bus)

    async def __aenter__(self) -> "Dashboard":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def start(self) -> None:
        """Initial loads for the landing views."""
        await self.uploads.load_documents()
        try:
            await self.feed.load_feed()
        except FeedLoadError as e:
            logger.warning(f"Feed unavailable at startup: {e}")

    async def close(self) -> None:
        await self.conversation.settle()
        await self.client.aclose()
