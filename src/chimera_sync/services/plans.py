"""
Plan Policy

Maps a plan tier to its quota ceilings. Pure and total: unknown tiers are
treated as free, and the pro tier is unbounded on every axis.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from chimera_sync.core.config import Settings, settings


class PlanTier(StrEnum):
    FREE = "free"
    PRO = "pro"


def normalize_plan(value: Any) -> PlanTier:
    """Case-insensitive ``"pro"`` is pro; anything else is free."""
    return PlanTier.PRO if str(value or "").strip().lower() == "pro" else PlanTier.FREE


@dataclass(frozen=True)
class PlanLimits:
    """
    Quota ceilings for a plan. ``None`` means unbounded.

    Attributes:
        max_notes: Maximum number of notes an owner may keep.
        max_chars_per_note: Maximum content length of a single note.
        max_storage_bytes: Maximum serialized size across all notes.
    """

    max_notes: int | None
    max_chars_per_note: int | None
    max_storage_bytes: int | None

    @property
    def unbounded(self) -> bool:
        return (
            self.max_notes is None
            and self.max_chars_per_note is None
            and self.max_storage_bytes is None
        )

    def to_dict(self) -> dict[str, int | None]:
        return {
            "maxNotes": self.max_notes,
            "maxCharsPerNote": self.max_chars_per_note,
            "maxStorageBytes": self.max_storage_bytes,
        }


UNBOUNDED = PlanLimits(max_notes=None, max_chars_per_note=None, max_storage_bytes=None)


def limits_for(tier: Any, config: Settings | None = None) -> PlanLimits:
    """Quota ceilings for ``tier``; free ceilings come from configuration."""
    if normalize_plan(tier) is PlanTier.PRO:
        return UNBOUNDED
    config = config or settings
    return PlanLimits(
        max_notes=config.FREE_MAX_NOTES,
        max_chars_per_note=config.FREE_MAX_CHARS_PER_NOTE,
        max_storage_bytes=config.FREE_MAX_STORAGE_BYTES,
    )


def plan_snapshot(tier: Any, config: Settings | None = None) -> dict[str, Any]:
    """``{"plan", "limits"}`` as returned alongside auth, billing and save responses."""
    plan = normalize_plan(tier)
    return {"plan": plan.value, "limits": limits_for(plan, config).to_dict()}
