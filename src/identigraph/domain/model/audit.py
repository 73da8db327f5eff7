"""Audit records for automatic merge decisions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, cast
from uuid import UUID

from .enums import IdentityType

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class SharedIdentity:
    """An identity fact two contacts were found to have in common."""

    type: IdentityType
    value: str
    confidence: float

    def label(self) -> str:
        return f"{self.type}={self.value}"


@dataclass(frozen=True, slots=True)
class AutoMergeRecord:
    primary_id: UUID
    primary_name: str
    merged_id: UUID
    merged_name: str
    confidence: float
    shared_identities: tuple[SharedIdentity, ...]
    timestamp: datetime

    def to_payload(self) -> dict[str, object]:
        """JSON-safe form stored in the organization settings."""
        return {
            "primary": str(self.primary_id),
            "primary_name": self.primary_name,
            "merged": str(self.merged_id),
            "merged_name": self.merged_name,
            "confidence": self.confidence,
            "shared_identities": [
                {"type": str(shared.type), "value": shared.value, "confidence": shared.confidence}
                for shared in self.shared_identities
            ],
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> AutoMergeRecord:
        raw_shared = cast("list[Mapping[str, object]]", payload.get("shared_identities") or [])
        shared = tuple(
            SharedIdentity(
                type=IdentityType(str(item["type"])),
                value=str(item["value"]),
                confidence=float(cast("float", item.get("confidence", 0.0))),
            )
            for item in raw_shared
        )
        return cls(
            primary_id=UUID(str(payload["primary"])),
            primary_name=str(payload.get("primary_name", "")),
            merged_id=UUID(str(payload["merged"])),
            merged_name=str(payload.get("merged_name", "")),
            confidence=float(cast("float", payload["confidence"])),
            shared_identities=shared,
            timestamp=_aware(datetime.fromisoformat(str(payload["timestamp"]))),
        )


def _aware(moment: datetime) -> datetime:
    """Naive timestamps are read as UTC."""
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=UTC)
