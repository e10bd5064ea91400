"""Profile view: the signed-in user's account and activity."""

import logging
from typing import Any

from docpulse.client import BackendClient
from docpulse.errors import DocPulseError
from docpulse.events import NotificationBus
from docpulse.models import Comment, Document, LocalFile, Note, Post, UserProfile

logger = logging.getLogger(__name__)

PROFILE_LOAD_ERROR = "Failed to load profile data. Please try again."
PROFILE_UPDATE_ERROR = "Failed to update profile. Please try again."


class ProfileView:
    """The user's own posts, documents and notes, plus profile editing."""

    def __init__(self, client: BackendClient, credential: str, bus: NotificationBus | None = None):
        self.client = client
        self.credential = credential
        self.bus = bus or NotificationBus()

        self.user: UserProfile | None = None
        self.posts: tuple[Post, ...] = ()
        self.documents: tuple[Document, ...] = ()
        self.notes: tuple[Note, ...] = ()
        self.comments: tuple[Comment, ...] = ()
        self.error: str | None = None
        self.is_loading = False

    async def load(self) -> bool:
        """Load the user and their activity tabs.

        Posts are the feed filtered to the user's own. Returns False and sets
        ``error`` when any request fails; earlier state is kept.
        """
        self.is_loading = True
        self.error = None
        try:
            user = self.user or await self.client.fetch_user(self.credential)
            posts = await self.client.fetch_posts(self.credential)
            documents = await self.client.fetch_documents(self.credential)
            notes = await self.client.fetch_notes(self.credential)
        except DocPulseError as e:
            logger.error(f"Error fetching profile data: {e}")
            self.error = PROFILE_LOAD_ERROR
            return False
        finally:
            self.is_loading = False

        self.user = user
        self.posts = tuple(p for p in posts if p.author is not None and p.author.id == user.id)
        self.documents = tuple(documents)
        self.notes = tuple(notes)
        logger.info(
            f"Loaded profile for {user.username}: {len(self.posts)} post(s), "
            f"{len(self.documents)} document(s), {len(self.notes)} note(s)"
        )
        return True

    async def load_comments(self) -> tuple[Comment, ...]:
        try:
            comments = await self.client.fetch_user_comments(self.credential)
        except DocPulseError as e:
            logger.error(f"Error fetching user comments: {e}")
            self.bus.error("Failed to load comments")
            return self.comments
        self.comments = tuple(comments)
        return self.comments

    async def update(self, fields: dict[str, Any], avatar: LocalFile | None = None) -> UserProfile | None:
        """Submit profile changes, then re-read the user from the server."""
        self.is_loading = True
        self.error = None
        try:
            await self.client.update_user(fields, self.credential, avatar=avatar)
            self.bus.success("Profile updated successfully")
            self.user = await self.client.fetch_user(self.credential)
        except DocPulseError as e:
            logger.error(f"Error updating profile: {e}")
            self.error = PROFILE_UPDATE_ERROR
            return None
        finally:
            self.is_loading = False
        return self.user
