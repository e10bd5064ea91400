"""Feed interaction engine: posts, likes, saves and comment threads.

The server is the source of truth for counts. Toggles never increment
locally; the post is overwritten with whatever the interact endpoint
returns. Per-post actions are independent, so there is no cross-operation
lock, and back-to-back toggles on one post are not coalesced.
"""

import logging
from typing import Any

from docpulse.client import BackendClient
from docpulse.errors import (
    DocPulseError,
    FeedLoadError,
    NetworkError,
    ReconciliationError,
    ValidationError,
    extract_error_message,
)
from docpulse.events import EventType, NotificationBus
from docpulse.models import InteractAction, Post, PostType

logger = logging.getLogger(__name__)

COMMENTS_LOAD_ERROR = "Failed to load comments. Please try again."


def build_post_payload(post_type: PostType | str, content: str, tags: str = "") -> dict[str, Any]:
    """Build the create-post payload for an insight or question.

    Raises:
        ValidationError: If content is blank or the type cannot be authored

    """
    post_type = PostType(post_type)
    if not content or not content.strip():
        raise ValidationError("Content cannot be empty")
    if post_type is PostType.INSIGHT:
        return {
            "summary": content,
            "tags": [tag.strip() for tag in tags.split(",") if tag.strip()],
        }
    if post_type is PostType.QUESTION:
        return {"question": content}
    raise ValidationError(f"Posts of type {post_type.value!r} cannot be created by users")


class FeedInteractionEngine:
    """Feed posts with optimistic-then-reconciled interaction state."""

    def __init__(self, client: BackendClient, credential: str, bus: NotificationBus | None = None):
        self.client = client
        self.credential = credential
        self.bus = bus or NotificationBus()
        self.posts: tuple[Post, ...] = ()
        self.error: str | None = None
        self.is_loading = False

    def get_post(self, post_id: int | str) -> Post | None:
        for post in self.posts:
            if post.id == post_id:
                return post
        return None

    def _replace(self, post_id: int | str, **changes: Any) -> Post | None:
        """Replace one post with an updated copy; returns it, or None if it is gone."""
        updated = None
        posts = []
        for post in self.posts:
            if post.id == post_id:
                post = updated = post.update(**changes)
            posts.append(post)
        if updated is not None:
            self.posts = tuple(posts)
            self.bus.publish(EventType.FEED_UPDATED, post_id=post_id)
        return updated

    def _require(self, post_id: int | str) -> Post | None:
        post = self.get_post(post_id)
        if post is None:
            logger.warning(f"Post {post_id} is not in the feed")
        return post

    # ==================== Loading ====================

    async def load_feed(self) -> tuple[Post, ...]:
        """Load feed posts.

        Raises:
            FeedLoadError: On network failure or a malformed payload. The feed
                is left empty with ``error`` set.

        """
        self.is_loading = True
        try:
            posts = await self.client.fetch_posts(self.credential)
        except ReconciliationError as e:
            logger.error(f"Malformed feed payload: {e}")
            self._fail_load("Invalid data format from server")
            raise FeedLoadError("Invalid data format from server") from e
        except DocPulseError as e:
            logger.error(f"Error fetching posts: {e}")
            self._fail_load("Failed to load posts. Please try again.")
            raise FeedLoadError("Failed to load posts") from e
        finally:
            self.is_loading = False

        self.posts = tuple(posts)
        self.error = None
        logger.info(f"Loaded {len(self.posts)} post(s)")
        self.bus.publish(EventType.FEED_UPDATED)
        return self.posts

    def _fail_load(self, message: str) -> None:
        self.posts = ()
        self.error = message
        self.bus.publish(EventType.FEED_UPDATED)

    # ==================== Interactions ====================

    async def toggle_like(self, post_id: int | str) -> Post | None:
        """Like or unlike a post and apply the server's authoritative count."""
        post = self._require(post_id)
        if post is None:
            return None
        action = InteractAction.UNLIKE if post.is_liked else InteractAction.LIKE
        try:
            result = await self.client.interact_with_post(post_id, action, self.credential)
        except DocPulseError as e:
            logger.error(f"Error toggling like on post {post_id}: {e}")
            self.bus.error("Failed to update like status")
            return None
        return self._replace(post_id, like_count=result.likes, is_liked=result.is_liked)

    async def toggle_save(self, post_id: int | str) -> Post | None:
        """Save or unsave a post and apply the server's flag."""
        post = self._require(post_id)
        if post is None:
            return None
        action = InteractAction.UNSAVE if post.is_saved else InteractAction.SAVE
        try:
            result = await self.client.interact_with_post(post_id, action, self.credential)
        except DocPulseError as e:
            logger.error(f"Error toggling save on post {post_id}: {e}")
            self.bus.error("Failed to update save status")
            return None
        return self._replace(post_id, is_saved=result.is_saved)

    # ==================== Comments ====================

    async def expand_comments(self, post_id: int | str) -> Post | None:
        """Open a post's comment thread, fetching comments on first expansion only."""
        post = self._require(post_id)
        if post is None:
            return None
        post = self._replace(post_id, comments_expanded=True)
        if post.comments_loaded:
            return post

        try:
            comments = await self.client.fetch_comments(post_id, self.credential)
        except DocPulseError as e:
            logger.error(f"Error fetching comments for post {post_id}: {e}")
            self.bus.error("Failed to load comments")
            return self._replace(post_id, comment_error=COMMENTS_LOAD_ERROR)

        return self._replace(
            post_id,
            comments=tuple(comments),
            comment_count=len(comments),
            comments_loaded=True,
            comment_error=None,
        )

    def collapse_comments(self, post_id: int | str) -> Post | None:
        if self._require(post_id) is None:
            return None
        return self._replace(post_id, comments_expanded=False)

    async def toggle_comments(self, post_id: int | str) -> Post | None:
        post = self._require(post_id)
        if post is None:
            return None
        if post.comments_expanded:
            return self.collapse_comments(post_id)
        return await self.expand_comments(post_id)

    async def submit_comment(self, post_id: int | str, content: str) -> Post | None:
        """Add a comment; appends the server's comment and bumps the count by one."""
        if not isinstance(content, str) or not content.strip():
            self.bus.error("Please enter a valid comment")
            return None
        if self._require(post_id) is None:
            return None

        try:
            comment = await self.client.create_comment(post_id, content.strip(), self.credential)
        except DocPulseError as e:
            payload = e.payload if isinstance(e, NetworkError) else None
            message = extract_error_message(payload, "Failed to add comment")
            logger.error(f"Error adding comment to post {post_id}: {e}")
            self.bus.error(message)
            return None

        # Re-read: the post may have been updated while the request was in flight
        post = self.get_post(post_id)
        if post is None:
            return None
        self.bus.success("Comment added!")
        return self._replace(
            post_id,
            comments=post.comments + (comment,),
            comment_count=post.comment_count + 1,
        )

    # ==================== Posting ====================

    async def create_post(self, post_type: PostType | str, payload: dict[str, Any]) -> Post | None:
        """Create a post and prepend the server's copy to the feed."""
        post_type = PostType(post_type)
        try:
            post = await self.client.create_post(
                {"post_type": post_type.value, **payload}, self.credential
            )
        except DocPulseError as e:
            logger.error(f"Error creating post: {e}")
            self.bus.error("Failed to create post")
            return None

        post = post.update(comments=(), comments_loaded=False, comments_expanded=False)
        self.posts = (post,) + self.posts
        self.bus.success("Post created successfully")
        self.bus.publish(EventType.FEED_UPDATED, post_id=post.id)
        return post
