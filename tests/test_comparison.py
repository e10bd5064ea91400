"""Unit tests for the comparison workspace."""

import asyncio

import httpx
import pytest

from docpulse.errors import NoteSaveError, ValidationError
from docpulse.events import EventType
from docpulse.models import ComparisonEntry, NoteMetadata
from docpulse.services.comparison import ComparisonWorkspace

from conftest import TOKEN

RESULT = {
    "id": 40,
    "summary": "B is more conservative.",
    "keyDifferences": ["Pricing", "Headcount"],
    "similarities": ["Same fiscal year"],
    "is_json": False,
}


@pytest.fixture
def workspace(client, bus):
    return ComparisonWorkspace(client, TOKEN, bus=bus, output_format="markdown")


class TestCompare:
    """Test running comparisons."""

    @pytest.mark.asyncio
    async def test_compare_stores_result_with_ids(self, backend, workspace, bus, make_document):
        backend.on("POST", "/compare/", {"result": RESULT})
        workspace.select(make_document(1, "A.pdf"), make_document(2, "B.pdf"))

        result = await workspace.compare()

        assert result.key_differences == ["Pricing", "Headcount"]
        assert (result.document1_id, result.document2_id) == (1, 2)
        assert backend.body(backend.calls("POST", "/compare/")[0]) == {
            "document1_id": 1,
            "document2_id": 2,
            "output_format": "markdown",
        }
        assert bus.messages(EventType.INFO) == ["Comparison completed!"]

    @pytest.mark.asyncio
    async def test_incomplete_pair_is_rejected(self, backend, workspace, bus, make_document):
        workspace.select(make_document(1), None)

        with pytest.raises(ValidationError):
            await workspace.compare()

        assert backend.requests == []
        assert bus.messages(EventType.ERROR) == ["Please select two documents to compare"]

    @pytest.mark.asyncio
    async def test_same_document_is_rejected(self, backend, workspace, bus, make_document):
        workspace.select(make_document(1), make_document(1))

        with pytest.raises(ValidationError):
            await workspace.compare()

        assert bus.messages(EventType.ERROR) == ["Cannot compare the same document"]

    @pytest.mark.asyncio
    async def test_missing_result_is_reported(self, backend, workspace, bus, make_document):
        backend.on("POST", "/compare/", {"status": "ok"})
        workspace.select(make_document(1), make_document(2))

        assert await workspace.compare() is None

        assert workspace.result is None
        assert workspace.is_comparing is False
        assert bus.messages(EventType.ERROR) == ["Comparison failed: Comparison response has no result"]

    @pytest.mark.asyncio
    async def test_concurrent_compare_is_ignored(self, backend, workspace, make_document):
        release = asyncio.Event()

        async def compare(request):
            await release.wait()
            return httpx.Response(200, json={"result": RESULT})

        backend.on("POST", "/compare/", compare)
        workspace.select(make_document(1), make_document(2))

        first = asyncio.create_task(workspace.compare())
        await asyncio.sleep(0)
        assert await workspace.compare() is None

        release.set()
        assert (await first).summary == "B is more conservative."
        assert len(backend.calls("POST", "/compare/")) == 1


class TestHistory:
    """Test comparison history."""

    @pytest.mark.asyncio
    async def test_load_and_view(self, backend, workspace, bus):
        backend.on(
            "GET",
            "/comparison-history/",
            [
                {
                    "id": 7,
                    "document1": {"id": 1, "name": "A.pdf"},
                    "document2": {"id": 2, "name": "B.pdf"},
                    "result": RESULT,
                }
            ],
        )

        history = await workspace.load_history()
        result = workspace.view(history[0])

        assert isinstance(history[0], ComparisonEntry)
        assert workspace.active_history_id == 7
        assert (result.document1_id, result.document2_id) == (1, 2)
        assert bus.messages(EventType.INFO) == ["Viewing comparison: A.pdf vs B.pdf"]

    @pytest.mark.asyncio
    async def test_load_failure_keeps_history(self, backend, workspace, bus):
        backend.on("GET", "/comparison-history/", {}, status=500)

        assert await workspace.load_history() == ()
        assert bus.messages(EventType.ERROR) == ["Failed to load comparison history"]


class TestSaveAsNote:
    """Test saving comparisons as notes."""

    @pytest.mark.asyncio
    async def test_default_note_fields(self, backend, workspace, bus, make_document):
        backend.on("POST", "/compare/", {"result": RESULT})
        workspace.select(make_document(1, "Plan A.pdf"), make_document(2, "Plan B.pdf"))
        await workspace.compare()
        backend.on("POST", "/compare/", {"saved_note": {"id": 12, "note_title": "Comparison of Plan A.pdf vs Plan B.pdf"}})

        note = await workspace.save_as_note()

        body = backend.body(backend.calls("POST", "/compare/")[-1])
        assert body["note_title"] == "Comparison of Plan A.pdf vs Plan B.pdf"
        assert body["tags"] == ["comparison", "plan-a.pdf", "plan-b.pdf"]
        assert body["source_type"] == "comparison"
        assert body["source_id"] == "40"
        assert body["content"] == "B is more conservative."
        assert body["color"] == "purple"
        assert body["save_to_notes"] is True
        assert note.id == 12
        assert bus.messages(EventType.SUCCESS) == ["Note saved successfully"]

    @pytest.mark.asyncio
    async def test_user_metadata(self, backend, workspace, make_document):
        backend.on("POST", "/compare/", {"result": RESULT})
        workspace.select(make_document(1), make_document(2, "Other.pdf"))
        await workspace.compare()
        backend.on("POST", "/compare/", {"saved_note": {"id": 1}})

        await workspace.save_as_note(NoteMetadata(title="Plans", tags="Budget, FY25", color="green"))

        body = backend.body(backend.calls("POST", "/compare/")[-1])
        assert (body["note_title"], body["tags"], body["color"]) == ("Plans", ["budget", "fy25"], "green")

    @pytest.mark.asyncio
    async def test_without_result_is_rejected(self, backend, workspace):
        with pytest.raises(ValidationError):
            await workspace.save_as_note()

        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_unconfirmed_save_raises(self, backend, workspace, bus, make_document):
        backend.on("POST", "/compare/", {"result": RESULT})
        workspace.select(make_document(1), make_document(2))
        await workspace.compare()
        backend.on("POST", "/compare/", {"result": RESULT})

        with pytest.raises(NoteSaveError):
            await workspace.save_as_note()

        assert bus.messages(EventType.ERROR) == ["Failed to save note: No note returned"]
