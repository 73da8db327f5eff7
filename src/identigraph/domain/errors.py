"""Errors raised by the identity resolution services."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID


class IdentityResolutionError(RuntimeError):
    """Base class for failures surfaced to callers of the identity services."""


class NotFoundError(IdentityResolutionError):
    """Raised when an entity is unknown within the requested organization."""

    def __init__(self, entity: str, entity_id: UUID | str, *, organization_id: UUID | None = None):
        self.entity = entity
        self.entity_id = entity_id
        self.organization_id = organization_id
        scope = f" in organization {organization_id}" if organization_id is not None else ""
        super().__init__(f"{entity} {entity_id} not found{scope}")


class InvalidMergeRequestError(IdentityResolutionError, ValueError):
    """Raised when a merge request is malformed before anything is touched."""


class TransientStoreError(IdentityResolutionError):
    """Raised when the store timed out or dropped the connection; safe to retry later."""
