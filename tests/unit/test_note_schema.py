"""
Note Schema Unit Tests

Verifies normalization of loosely typed client payloads into Note and the
serialized size used for storage accounting.
"""

from __future__ import annotations

import json
import uuid

from chimera_sync.models.schemas import (
    DEFAULT_FOLDER,
    DEFAULT_TITLE,
    Note,
    StoredNote,
    parse_iso_ms,
)

# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


class TestNoteDefaults:
    def test_empty_payload(self):
        note = Note.model_validate({})

        assert note.title == DEFAULT_TITLE
        assert note.folder == DEFAULT_FOLDER
        assert note.content == ""
        assert note.local_id is None
        assert note.links == []
        assert note.updated_at is not None
        assert note.updated_at.endswith("Z")
        assert note.last_modified is not None

    def test_blank_title_and_folder_fall_back(self):
        note = Note.model_validate({"title": "   ", "folder": ""})

        assert note.title == DEFAULT_TITLE
        assert note.folder == DEFAULT_FOLDER

    def test_blank_local_id_is_none(self):
        assert Note.model_validate({"localId": "  "}).local_id is None

    def test_accepts_camel_case_aliases(self):
        note = Note.model_validate(
            {"localId": "abc", "updatedAt": "2024-01-02T03:04:05Z", "lastModified": 7}
        )

        assert note.local_id == "abc"
        assert note.updated_at == "2024-01-02T03:04:05.000Z"
        assert note.last_modified == 7

    def test_non_string_fields_are_coerced(self):
        note = Note.model_validate({"title": 12, "content": 3.5, "localId": 99})

        assert note.title == "12"
        assert note.content == "3.5"
        assert note.local_id == "99"

    def test_unknown_fields_are_ignored(self):
        note = Note.model_validate({"title": "x", "userId": "someone-else"})

        assert "userId" not in note.storage_fields()


class TestLastModified:
    def test_derived_from_updated_at(self):
        note = Note.model_validate({"updatedAt": "2024-01-01T00:00:00Z"})

        assert note.last_modified == parse_iso_ms("2024-01-01T00:00:00Z")
        assert note.last_modified == 1_704_067_200_000

    def test_numeric_string(self):
        assert Note.model_validate({"lastModified": "1700000000000"}).last_modified == (
            1_700_000_000_000
        )

    def test_garbage_falls_back_to_updated_at(self):
        note = Note.model_validate(
            {"lastModified": "soon", "updatedAt": "2024-01-01T00:00:00Z"}
        )

        assert note.last_modified == 1_704_067_200_000

    def test_nan_and_bool_are_ignored(self):
        assert Note.model_validate({"lastModified": float("nan")}).last_modified > 0
        assert Note.model_validate({"lastModified": True}).last_modified > 1

    def test_unparseable_updated_at_uses_now(self):
        note = Note.model_validate({"updatedAt": "yesterday"})

        assert note.updated_at == "yesterday"
        assert note.last_modified > 1_704_067_200_000

    def test_epoch_zero_updated_at_is_kept(self):
        note = Note.model_validate({"updatedAt": "1970-01-01T00:00:00Z"})

        assert note.last_modified == 0
        assert note.updated_at == "1970-01-01T00:00:00.000Z"


class TestUpdatedAtFormat:
    def test_offsets_are_converted_to_utc(self):
        note = Note.model_validate({"updatedAt": "2024-01-01T02:00:00+02:00"})

        assert note.updated_at == "2024-01-01T00:00:00.000Z"

    def test_naive_values_are_taken_as_utc(self):
        assert Note.model_validate({"updatedAt": "2024-01-01"}).updated_at == (
            "2024-01-01T00:00:00.000Z"
        )

    def test_string_order_matches_time_order(self):
        whole = Note.model_validate({"updatedAt": "2024-01-01T00:00:00Z"})
        later = Note.model_validate({"updatedAt": "2024-01-01T00:00:00.500Z"})

        assert later.updated_at > whole.updated_at


class TestLinks:
    def test_non_list_becomes_empty(self):
        assert Note.model_validate({"links": "a,b"}).links == []

    def test_order_is_kept_and_items_stringified(self):
        note = Note.model_validate({"links": ["b", 1, None, "a"]})

        assert note.links == ["b", "1", "a"]


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


class TestStorageBytes:
    def test_counts_utf8_bytes_of_compact_json(self):
        note = Note.model_validate(
            {"title": "é", "content": "日本", "lastModified": 1, "updatedAt": "t"}
        )
        expected = json.dumps(
            note.storage_fields(), ensure_ascii=False, separators=(",", ":")
        ).encode("utf-8")

        assert note.storage_bytes() == len(expected)
        # Multi-byte characters count by encoded size
        assert note.storage_bytes() > len(expected.decode("utf-8"))

    def test_grows_with_content(self):
        small = Note.model_validate({"content": "a", "lastModified": 1, "updatedAt": "t"})
        large = Note.model_validate({"content": "a" * 10, "lastModified": 1, "updatedAt": "t"})

        assert large.storage_bytes() - small.storage_bytes() == 9


class TestStoredNoteToApi:
    def test_carries_id_alias_and_owner(self):
        note_id = uuid.uuid4()
        stored = StoredNote(
            id=note_id,
            owner_id="user-a",
            title="T",
            local_id="L1",
            updated_at="2024-01-01T00:00:00Z",
            links=["x"],
        )
        body = stored.to_api()

        assert body["id"] == str(note_id)
        assert body["_id"] == str(note_id)
        assert body["userId"] == "user-a"
        assert body["localId"] == "L1"
        assert body["lastModified"] == 1_704_067_200_000
        assert body["links"] == ["x"]
