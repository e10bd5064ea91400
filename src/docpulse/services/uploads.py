"""Upload batch manager: local validation, one batched submit, per-file reconciliation."""

import logging
from typing import Iterable

from docpulse.client import BackendClient
from docpulse.config import settings
from docpulse.errors import DocPulseError, describe
from docpulse.events import EventType, NotificationBus
from docpulse.models import Document, LocalFile, UploadCandidate, UploadResult, UploadStatus

logger = logging.getLogger(__name__)

UNSUPPORTED_TYPE = "Unsupported file type"
UPLOAD_FAILED = "Upload failed"


def validate_file(
    file: LocalFile,
    allowed_types: Iterable[str] | None = None,
    max_bytes: int | None = None,
) -> str | None:
    """Return the rejection reason for a file, or None if it may be uploaded.

    The type check takes precedence over the size check.
    """
    allowed = {t.lower() for t in (allowed_types or settings.upload_allowed_types)}
    limit = settings.upload_max_bytes if max_bytes is None else max_bytes
    if file.extension not in allowed:
        return UNSUPPORTED_TYPE
    if file.size > limit:
        return f"File size exceeds {limit // (1024 * 1024)}MB"
    return None


class UploadBatchManager:
    """Queue of candidate files submitted as one batch."""

    def __init__(
        self,
        client: BackendClient,
        credential: str,
        bus: NotificationBus | None = None,
        max_bytes: int | None = None,
        allowed_types: Iterable[str] | None = None,
    ):
        self.client = client
        self.credential = credential
        self.bus = bus or NotificationBus()
        self.max_bytes = settings.upload_max_bytes if max_bytes is None else max_bytes
        self.allowed_types = list(allowed_types or settings.upload_allowed_types)
        self.candidates: tuple[UploadCandidate, ...] = ()
        self.documents: tuple[Document, ...] = ()

    def _set_candidates(self, candidates: Iterable[UploadCandidate]) -> None:
        self.candidates = tuple(candidates)
        self.bus.publish(EventType.QUEUE_UPDATED, count=len(self.candidates))

    @property
    def pending(self) -> tuple[UploadCandidate, ...]:
        return tuple(c for c in self.candidates if c.status is UploadStatus.PENDING)

    # ==================== Queue ====================

    def add_files(self, files: Iterable[LocalFile]) -> tuple[UploadCandidate, ...]:
        """Validate files and append them to the queue."""
        added = []
        for file in files:
            reason = validate_file(file, self.allowed_types, self.max_bytes)
            added.append(
                UploadCandidate(
                    file=file,
                    name=file.name,
                    size_bytes=file.size,
                    status=UploadStatus.ERROR if reason else UploadStatus.PENDING,
                    error_reason=reason,
                )
            )
        self._set_candidates(self.candidates + tuple(added))
        return tuple(added)

    def remove_file(self, candidate_id: str) -> None:
        self._set_candidates(c for c in self.candidates if c.id != candidate_id)

    def clear_queue(self) -> None:
        self._set_candidates(())

    # ==================== Submission ====================

    async def submit_batch(self) -> tuple[UploadCandidate, ...]:
        """Upload every pending candidate in one request and reconcile the results.

        Results are matched to candidates by file name. Candidates the server
        does not report on return to pending.
        """
        batch = self.pending
        if not batch:
            return self.candidates

        batch_ids = {c.id for c in batch}
        self._set_candidates(
            c.model_copy(update={"status": UploadStatus.UPLOADING}) if c.id in batch_ids else c
            for c in self.candidates
        )

        try:
            results = await self.client.upload_documents([c.file for c in batch], self.credential)
        except DocPulseError as e:
            logger.error(f"Batch upload of {len(batch)} file(s) failed: {e}")
            self._set_candidates(
                c.model_copy(update={"status": UploadStatus.ERROR, "error_reason": UPLOAD_FAILED})
                if c.id in batch_ids
                else c
                for c in self.candidates
            )
            self.bus.error(f"Upload failed: {describe(e)}")
            return self.candidates

        self._set_candidates(self._reconcile(c, batch_ids, results) for c in self.candidates)
        logger.info(f"Batch upload finished: {len(results)} result(s) for {len(batch)} file(s)")
        self.bus.success("Files uploaded successfully!")

        await self.load_documents()
        return self.candidates

    @staticmethod
    def _reconcile(
        candidate: UploadCandidate, batch_ids: set[str], results: list[UploadResult]
    ) -> UploadCandidate:
        if candidate.id not in batch_ids:
            return candidate
        result = next((r for r in results if r.name == candidate.name), None)
        if result is None:
            return candidate.model_copy(update={"status": UploadStatus.PENDING})
        if result.error:
            return candidate.model_copy(
                update={"status": UploadStatus.ERROR, "error_reason": result.error}
            )
        return candidate.model_copy(update={"status": UploadStatus.COMPLETED, "error_reason": None})

    # ==================== Documents ====================

    async def load_documents(self) -> tuple[Document, ...]:
        """Refresh the authoritative uploaded-document list."""
        try:
            documents = await self.client.fetch_documents(self.credential)
        except DocPulseError as e:
            logger.error(f"Failed to load documents: {e}")
            self.bus.error(f"Failed to load documents: {describe(e)}")
            return self.documents
        self.documents = tuple(documents)
        self.bus.publish(EventType.DOCUMENTS_UPDATED, count=len(self.documents))
        return self.documents
