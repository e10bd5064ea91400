"""Unit tests for the notes library."""

import pytest
import pytest_asyncio

from docpulse.errors import NoteSaveError, ValidationError
from docpulse.events import EventType
from docpulse.models import Note, NoteMetadata, slugify
from docpulse.services.notes import NotesLibrary

from conftest import TOKEN


def note_payload(id, title="Note", tags=(), starred=False, content="body"):
    return {"id": id, "title": title, "content": content, "tags": list(tags), "starred": starred}


@pytest.fixture
def library(client, bus):
    return NotesLibrary(client, TOKEN, bus=bus)


@pytest_asyncio.fixture
async def loaded_library(backend, library):
    backend.on(
        "GET",
        "/notes/",
        [
            note_payload(1, "Revenue drivers", ["analysis", "q1"], starred=True),
            note_payload(2, "Cost review", ["comparison"]),
            note_payload(3, "Hiring plan", ["analysis"], content="Headcount grows in Q3"),
        ],
    )
    await library.load_notes()
    return library


class TestLoadNotes:
    """Test loading the library."""

    @pytest.mark.asyncio
    async def test_loads_notes(self, loaded_library):
        assert [n.id for n in loaded_library.notes] == [1, 2, 3]
        assert loaded_library.is_loading is False

    @pytest.mark.asyncio
    async def test_failure_keeps_notes(self, backend, loaded_library, bus):
        backend.on("GET", "/notes/", {"detail": "down"}, status=500)

        notes = await loaded_library.load_notes()

        assert [n.id for n in notes] == [1, 2, 3]
        assert bus.messages(EventType.ERROR) == ["Failed to load saved notes"]


class TestNoteActions:
    """Test star and delete."""

    @pytest.mark.asyncio
    async def test_star_flips_after_confirmation(self, backend, loaded_library, bus):
        backend.on("PUT", "/notes/2/", {"id": 2, "starred": True})

        note = await loaded_library.toggle_star(2)

        assert note.starred is True
        assert backend.body(backend.calls("PUT", "/notes/2/")[0]) == {"starred": True}
        assert bus.messages(EventType.SUCCESS) == ["Note starred"]

    @pytest.mark.asyncio
    async def test_unstar(self, backend, loaded_library, bus):
        backend.on("PUT", "/notes/1/", {"id": 1, "starred": False})

        note = await loaded_library.toggle_star(1)

        assert note.starred is False
        assert bus.messages(EventType.SUCCESS) == ["Note unstarred"]

    @pytest.mark.asyncio
    async def test_failed_star_leaves_note(self, backend, loaded_library, bus):
        backend.on("PUT", "/notes/2/", {}, status=500)

        assert await loaded_library.toggle_star(2) is None

        assert loaded_library.notes[1].starred is False
        assert bus.messages(EventType.ERROR) == ["Failed to update note"]

    @pytest.mark.asyncio
    async def test_delete(self, backend, loaded_library, bus):
        backend.on("DELETE", "/notes/3/", None, status=204)

        assert await loaded_library.delete_note(3) is True

        assert [n.id for n in loaded_library.notes] == [1, 2]
        assert bus.messages(EventType.SUCCESS) == ["Note deleted"]

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_note(self, backend, loaded_library, bus):
        backend.on("DELETE", "/notes/3/", {"detail": "Not found."}, status=404)

        assert await loaded_library.delete_note(3) is False

        assert len(loaded_library.notes) == 3
        assert bus.messages(EventType.ERROR) == ["Failed to delete note"]


class TestCreateNote:
    """Test creating standalone notes."""

    @pytest.mark.asyncio
    async def test_prepends_created_note(self, backend, loaded_library, bus):
        backend.on("POST", "/notes/", note_payload(4, "Board prep", ["board"]))

        note = await loaded_library.create_note(NoteMetadata(title=" Board prep ", tags="Board"), "Agenda items")

        assert note.id == 4
        assert [n.id for n in loaded_library.notes] == [4, 1, 2, 3]
        assert backend.body(backend.calls("POST", "/notes/")[0]) == {
            "title": "Board prep",
            "content": "Agenda items",
            "tags": ["board"],
            "starred": False,
            "color": "blue",
        }
        assert bus.messages(EventType.SUCCESS) == ["Note saved successfully"]

    @pytest.mark.asyncio
    async def test_blank_title_is_rejected(self, backend, library):
        with pytest.raises(ValidationError):
            await library.create_note(NoteMetadata(title="  "), "body")

        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_rejected_note_raises(self, backend, loaded_library, bus):
        backend.on("POST", "/notes/", {"title": ["This field is required."]}, status=400)

        with pytest.raises(NoteSaveError):
            await loaded_library.create_note(NoteMetadata(title="x"), "body")

        assert len(loaded_library.notes) == 3
        assert bus.messages(EventType.ERROR) == ["Failed to save note: This field is required."]


class TestFiltering:
    """Test local search and filters."""

    @pytest.mark.asyncio
    async def test_filters(self, loaded_library):
        assert [n.id for n in loaded_library.filter_notes(filter_id="starred")] == [1]
        assert [n.id for n in loaded_library.filter_notes(filter_id="analysis")] == [1, 3]
        assert [n.id for n in loaded_library.filter_notes(filter_id="recent")] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_search_matches_content_and_tags(self, loaded_library):
        assert [n.id for n in loaded_library.filter_notes("headcount")] == [3]
        assert [n.id for n in loaded_library.filter_notes("COMPARISON")] == [2]
        assert [n.id for n in loaded_library.filter_notes("review", "analysis")] == []

    @pytest.mark.asyncio
    async def test_tag_filter_counts(self, loaded_library):
        assert loaded_library.tag_filters() == {
            "all": 3,
            "starred": 1,
            "recent": 3,
            "analysis": 2,
            "q1": 1,
            "comparison": 1,
        }


class TestNoteModels:
    """Test note helpers."""

    def test_title_accepts_wire_alias(self):
        assert Note.model_validate({"id": 1, "note_title": "From wire"}).title == "From wire"

    def test_slugify(self):
        assert slugify("Quarterly Report.pdf") == "quarterly-report.pdf"

    def test_metadata_tags_are_normalized(self):
        metadata = NoteMetadata(tags=" Revenue, Q1 ,,")

        assert metadata.resolved_tags(["default"]) == ["revenue", "q1"]

    def test_metadata_defaults(self):
        metadata = NoteMetadata(title="   ")

        assert metadata.resolved_title("Analysis of x") == "Analysis of x"
        assert metadata.resolved_tags(["analysis"]) == ["analysis"]
