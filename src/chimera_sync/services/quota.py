"""
Quota Accountant

Decides, before anything is written, whether saving a note would push its
owner past the plan ceilings.

Checks run in a fixed order and the first violation wins:

    1. characters in the candidate note
    2. number of notes after the write
    3. total serialized storage after the write

A candidate replaces an existing note when it matches one by id, or
failing that by localId; otherwise it counts as a new note.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from chimera_sync.models.schemas import Note, StoredNote
from chimera_sync.services.plans import PlanLimits, PlanTier, normalize_plan

logger = logging.getLogger(__name__)

NOTE_CHAR_LIMIT_EXCEEDED = "NOTE_CHAR_LIMIT_EXCEEDED"
NOTE_COUNT_LIMIT_EXCEEDED = "NOTE_COUNT_LIMIT_EXCEEDED"
STORAGE_LIMIT_EXCEEDED = "STORAGE_LIMIT_EXCEEDED"


@dataclass(frozen=True)
class QuotaDenial:
    """Structured rejection returned to the client so it can offer an upgrade."""

    message: str
    error_code: str
    limit_type: str
    requires_pro: bool
    plan: PlanTier
    limits: PlanLimits
    usage: dict[str, int] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "errorCode": self.error_code,
            "limitType": self.limit_type,
            "requiresPro": self.requires_pro,
            "plan": self.plan.value,
            "limits": self.limits.to_dict(),
            "usage": self.usage,
        }


def find_replaced(
    existing_notes: Sequence[StoredNote],
    candidate: Note,
    candidate_id: UUID | None = None,
) -> StoredNote | None:
    """The existing note a candidate would overwrite, matched by id then localId."""
    if candidate_id is not None:
        for note in existing_notes:
            if note.id == candidate_id:
                return note
        return None
    if candidate.local_id is not None:
        for note in existing_notes:
            if note.local_id == candidate.local_id:
                return note
    return None


class QuotaAccountant:
    """Stateless plan-limit checks for note writes."""

    def check_write(
        self,
        owner_id: str,
        candidate: Note,
        existing_notes: Sequence[StoredNote],
        limits: PlanLimits,
        *,
        plan: Any = PlanTier.FREE,
        candidate_id: UUID | None = None,
    ) -> QuotaDenial | None:
        """
        Return None if the write is allowed, otherwise the first violated limit.

        Args:
            owner_id: Owner of the write; notes of other owners are ignored.
            candidate: The normalized note about to be saved.
            existing_notes: The owner's current notes.
            limits: Ceilings for the owner's plan.
            plan: Owner's plan tier; pro is always allowed.
            candidate_id: Server id when the write targets a known note.
        """
        tier = normalize_plan(plan)
        if tier is PlanTier.PRO:
            return None

        owned = [note for note in existing_notes if note.owner_id == owner_id]

        def deny(message: str, code: str, limit_type: str, usage: dict[str, int]) -> QuotaDenial:
            logger.info("Quota denial for %s: %s %s", owner_id, code, usage)
            return QuotaDenial(
                message=message,
                error_code=code,
                limit_type=limit_type,
                requires_pro=True,
                plan=tier,
                limits=limits,
                usage=usage,
            )

        chars_in_note = len(candidate.content)
        if limits.max_chars_per_note is not None and chars_in_note > limits.max_chars_per_note:
            return deny(
                f"Free plan notes are limited to {limits.max_chars_per_note} characters. "
                "Upgrade to Pro for unlimited note length.",
                NOTE_CHAR_LIMIT_EXCEEDED,
                "chars",
                {"charsInNote": chars_in_note, "maxCharsPerNote": limits.max_chars_per_note},
            )

        replaced = find_replaced(owned, candidate, candidate_id)
        note_count = len(owned)
        note_count_after = note_count if replaced is not None else note_count + 1
        if limits.max_notes is not None and note_count_after > limits.max_notes:
            return deny(
                f"Free plan is limited to {limits.max_notes} notes. "
                "Upgrade to Pro for unlimited notes.",
                NOTE_COUNT_LIMIT_EXCEEDED,
                "notes",
                {"noteCount": note_count, "noteCountAfter": note_count_after},
            )

        storage_bytes = sum(note.storage_bytes() for note in owned)
        storage_after = storage_bytes + candidate.storage_bytes()
        if replaced is not None:
            storage_after -= replaced.storage_bytes()
        if limits.max_storage_bytes is not None and storage_after > limits.max_storage_bytes:
            return deny(
                f"Free plan storage is limited to {limits.max_storage_bytes} bytes. "
                "Upgrade to Pro for unlimited storage.",
                STORAGE_LIMIT_EXCEEDED,
                "storage",
                {"storageBytes": storage_bytes, "storageBytesAfter": storage_after},
            )

        return None


# Module-level singleton for convenience imports
quota_accountant = QuotaAccountant()
