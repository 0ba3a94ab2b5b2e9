"""
Notes document storage.

The document is a single JSON file::

    {
      "characters": {"<name>": "<note>"},
      "sessions": [{"date": "<ISO-8601>", "transcript": "<text>"}]
    }

It is read fresh on every lookup and rewritten wholesale on every change.
Any other keys, top-level or per session, are carried through unchanged.
Appending a session holds the file lock across the whole read-modify-write,
so concurrent appends from this process do not clobber each other. Nothing
protects against a second process writing the same file.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from scribe.context import Context

from scribe.services.manager import BaseNotesStoreServiceManager

# -------------------------------------------------------------- #
# Data Model
# -------------------------------------------------------------- #


@dataclass
class SessionRecord:
    """One finished recording session."""

    date: str
    transcript: str
    # fields added by hand or by other tools, written back untouched
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {**self.extra, "date": self.date, "transcript": self.transcript}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionRecord:
        extra = {k: v for k, v in data.items() if k not in ("date", "transcript")}
        return cls(date=data["date"], transcript=data["transcript"], extra=extra)


@dataclass
class NotesDocument:
    """Character notes plus the ordered list of session transcripts.

    Top-level keys other than ``characters`` and ``sessions`` are kept in
    ``extra`` so a rewrite never drops them.
    """

    characters: dict[str, str] = field(default_factory=dict)
    sessions: list[SessionRecord] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "characters": dict(self.characters),
            "sessions": [record.to_dict() for record in self.sessions],
            **self.extra,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NotesDocument:
        """Build a document from parsed JSON.

        Raises:
            ValueError: If the top-level shape is wrong
        """
        if not isinstance(data, dict):
            raise ValueError("Notes document must be a JSON object")
        return cls(
            characters=dict(data.get("characters") or {}),
            sessions=[SessionRecord.from_dict(item) for item in data.get("sessions") or []],
            extra={k: v for k, v in data.items() if k not in ("characters", "sessions")},
        )

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_json(cls, raw: bytes | None) -> NotesDocument:
        """Parse raw file contents; missing contents give an empty document."""
        if raw is None:
            return cls()
        return cls.from_dict(json.loads(raw.decode("utf-8")))


# -------------------------------------------------------------- #
# Notes Store Service
# -------------------------------------------------------------- #


class NotesStoreService(BaseNotesStoreServiceManager):
    """Reads and writes the notes document through the file manager."""

    def __init__(self, context: Context, notes_file_path: str):
        super().__init__(context)
        self.notes_file_path = os.path.abspath(notes_file_path)

    async def on_start(self, services):
        await super().on_start(services)
        await self.services.logging_service.info(
            f"NotesStoreService initialized with notes file: {self.notes_file_path}"
        )

    # -------------------------------------------------------------- #
    # Document Operations
    # -------------------------------------------------------------- #

    async def load(self) -> NotesDocument:
        """Load the document; a missing file reads as the empty document.

        Corrupt JSON is not recovered from: ``json.JSONDecodeError`` propagates.
        """
        try:
            raw = await self.services.file_service_manager.read_file(self.notes_file_path)
        except FileNotFoundError:
            return NotesDocument()
        return NotesDocument.from_json(raw)

    async def save(self, document: NotesDocument) -> None:
        await self.services.file_service_manager.write_file(
            self.notes_file_path, document.to_json()
        )

    async def get_character_note(self, name: str) -> str | None:
        document = await self.load()
        return document.characters.get(name)

    async def append_session(self, record: SessionRecord) -> NotesDocument:
        """Append a session record and persist the whole document."""
        updated: NotesDocument | None = None

        def add_record(raw: bytes | None) -> bytes:
            nonlocal updated
            updated = NotesDocument.from_json(raw)
            updated.sessions.append(record)
            return updated.to_json()

        await self.services.file_service_manager.update_file(self.notes_file_path, add_record)
        await self.services.logging_service.info(
            f"Saved session transcript dated {record.date} "
            f"({len(record.transcript)} characters) to {self.notes_file_path}"
        )
        return updated
