"""Tenants and their loosely-structured settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar, Final, cast

from identigraph.domain.model.audit import AutoMergeRecord
from identigraph.domain.model.entity import Entity, utcnow
from identigraph.domain.model.enums import EntityType

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

AUTO_MERGE_HISTORY_KEY: Final[str] = "auto_merge_history"


@dataclass(eq=False, kw_only=True)
class Organization(Entity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.ORGANIZATION

    name: str
    settings: dict[str, object] = field(default_factory=dict[str, object])
    created_at: datetime = field(default_factory=utcnow)

    @property
    def auto_merge_history(self) -> tuple[AutoMergeRecord, ...]:
        """Automatic merges, newest first."""
        raw = self.settings.get(AUTO_MERGE_HISTORY_KEY)
        if not isinstance(raw, list):
            return ()
        entries = cast("list[Mapping[str, object]]", raw)
        return tuple(AutoMergeRecord.from_payload(entry) for entry in entries)

    def record_auto_merge(self, record: AutoMergeRecord, *, limit: int) -> None:
        """Prepend ``record`` and evict the oldest entries beyond ``limit``."""
        raw = self.settings.get(AUTO_MERGE_HISTORY_KEY)
        existing = cast("list[object]", raw) if isinstance(raw, list) else []
        history = [record.to_payload(), *existing][:limit]
        # reassign so the JSON column is flagged dirty
        self.settings = {**self.settings, AUTO_MERGE_HISTORY_KEY: history}
