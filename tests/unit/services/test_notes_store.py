import asyncio
import json

import pytest

from scribe.services.notes_store.manager import NotesDocument, SessionRecord


def write_notes(services_manager, document: dict) -> None:
    path = services_manager.notes_store_service.notes_file_path
    with open(path, "w", encoding="utf-8") as f:
        json.dump(document, f)


@pytest.mark.unit
class TestNotesDocument:
    def test_missing_file_is_empty_document(self):
        document = NotesDocument.from_json(None)
        assert document.characters == {}
        assert document.sessions == []

    def test_partial_document_gets_defaults(self):
        document = NotesDocument.from_json(b'{"characters": {"Alice": "A rogue"}}')
        assert document.characters == {"Alice": "A rogue"}
        assert document.sessions == []

    def test_serialized_layout(self):
        document = NotesDocument(
            characters={"Zoë": "Druid"},
            sessions=[SessionRecord(date="2025-03-01T19:30:00.000Z", transcript="hi")],
        )
        raw = document.to_json()

        assert json.loads(raw) == {
            "characters": {"Zoë": "Druid"},
            "sessions": [{"date": "2025-03-01T19:30:00.000Z", "transcript": "hi"}],
        }
        # 2-space indentation, non-ASCII kept readable
        assert b'\n  "characters"' in raw
        assert "Zoë".encode() in raw

    def test_unknown_keys_survive_round_trip(self):
        raw = json.dumps(
            {
                "characters": {"Alice": "Bard"},
                "sessions": [{"date": "2025-01-01T00:00:00.000Z", "transcript": "x", "tag": "s1"}],
                "locations": {"Waterdeep": "City of Splendors"},
            }
        ).encode()

        assert json.loads(NotesDocument.from_json(raw).to_json()) == json.loads(raw)

    def test_non_object_document_is_rejected(self):
        with pytest.raises(ValueError):
            NotesDocument.from_json(b"[1, 2, 3]")


@pytest.mark.unit
class TestNotesStoreService:
    async def test_load_missing_file(self, services_manager):
        document = await services_manager.notes_store_service.load()
        assert document.characters == {}
        assert document.sessions == []

    async def test_get_character_note(self, services_manager):
        write_notes(services_manager, {"characters": {"Alice": "Half-elf bard"}, "sessions": []})
        store = services_manager.notes_store_service

        assert await store.get_character_note("Alice") == "Half-elf bard"
        assert await store.get_character_note("alice") is None
        assert await store.get_character_note("Bob") is None

    async def test_save_then_load(self, services_manager):
        store = services_manager.notes_store_service
        document = NotesDocument(
            characters={"Alice": "Bard"},
            sessions=[SessionRecord(date="2025-01-01T00:00:00.000Z", transcript="x")],
        )

        await store.save(document)
        loaded = await store.load()

        assert loaded == document

    async def test_append_session_keeps_existing_content(self, services_manager):
        write_notes(
            services_manager,
            {
                "characters": {"Alice": "Bard"},
                "sessions": [{"date": "2025-01-01T00:00:00.000Z", "transcript": "old"}],
            },
        )
        store = services_manager.notes_store_service
        record = SessionRecord(date="2025-01-02T00:00:00.000Z", transcript="new")

        updated = await store.append_session(record)

        assert [s.transcript for s in updated.sessions] == ["old", "new"]
        reloaded = await store.load()
        assert reloaded.characters == {"Alice": "Bard"}
        assert reloaded.sessions[-1] == record

    async def test_append_session_keeps_hand_added_keys(self, services_manager):
        write_notes(
            services_manager,
            {
                "characters": {"Alice": "Bard"},
                "sessions": [],
                "locations": {"Neverwinter": "Jewel of the North"},
            },
        )
        store = services_manager.notes_store_service

        await store.append_session(SessionRecord(date="2025-01-02T00:00:00.000Z", transcript="t"))

        with open(store.notes_file_path, encoding="utf-8") as f:
            saved = json.load(f)
        assert saved["locations"] == {"Neverwinter": "Jewel of the North"}
        assert saved["characters"] == {"Alice": "Bard"}
        assert saved["sessions"] == [{"date": "2025-01-02T00:00:00.000Z", "transcript": "t"}]

    async def test_concurrent_appends_are_serialized(self, services_manager):
        store = services_manager.notes_store_service
        records = [
            SessionRecord(date=f"2025-01-0{i}T00:00:00.000Z", transcript=str(i))
            for i in range(1, 6)
        ]

        await asyncio.gather(*(store.append_session(r) for r in records))

        document = await store.load()
        assert sorted(s.transcript for s in document.sessions) == ["1", "2", "3", "4", "5"]

    async def test_corrupt_document_propagates(self, services_manager):
        path = services_manager.notes_store_service.notes_file_path
        with open(path, "w", encoding="utf-8") as f:
            f.write("{not json")

        with pytest.raises(json.JSONDecodeError):
            await services_manager.notes_store_service.load()
