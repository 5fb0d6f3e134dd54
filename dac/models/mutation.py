"""Mutation-related data models."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from dac.core.errors import ClassifiedError, ErrorKind
from dac.core.identity import normalize_id

IdempotencyScope = tuple[str, str | None, str]


class MutationAction(StrEnum):
    """State-changing operations on an entity."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    TRANSITION = "transition"


class MutationIntent(BaseModel):
    """A requested change to one entity."""

    model_config = ConfigDict(frozen=True)

    entity: str = Field(description="Resource or entity name, e.g. 'company' or 'companies'")
    action: MutationAction
    entity_id: str | None = Field(default=None, description="Target id; absent for create")
    transition: str | None = Field(default=None, description="Action endpoint for transitions, e.g. 'verify'")
    payload: dict[str, Any] | None = None
    files: dict[str, Any] | None = Field(default=None, description="Multipart file parts, passed to the transport")

    def idempotency_scope(self, entity_type: str | None = None) -> IdempotencyScope:
        """The (entity type, entity id, action) triple that may have one mutation in flight."""
        entity_id = normalize_id(self.entity_id) if self.entity_id else None
        return (entity_type or self.entity, entity_id, self.action.value)


class MutationOutcome(BaseModel):
    """Result of executing a MutationIntent."""

    intent: MutationIntent
    ok: bool
    data: Any = None
    error: ClassifiedError | None = None
    invalidated: list[str] = Field(default_factory=list)

    @property
    def busy(self) -> bool:
        return self.error is not None and self.error.kind == ErrorKind.BUSY
