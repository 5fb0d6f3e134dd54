"""Execution of state-changing operations with busy tracking and cache invalidation."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from dac.api.resources import ResourceConfig, get_resource_config
from dac.cache.store import ResourceQueryStore
from dac.core.errors import classify
from dac.exceptions import BusyError, DACError
from dac.models.mutation import IdempotencyScope, MutationAction, MutationIntent, MutationOutcome

logger = logging.getLogger(__name__)

Sender = Callable[[ResourceConfig, MutationIntent], Awaitable[Any]]


class MutationCoordinator:
    """Runs mutations, allowing one in flight per (entity type, entity id, action).

    A second intent with the same scope while the first is pending is rejected
    locally as ``Busy`` without touching the network. The scope is released
    when the mutation finishes, however it finishes. Successful mutations
    invalidate the resource families declared for the action; failures are
    classified and handed back, never retried.
    """

    def __init__(
        self,
        sender: Sender,
        store: ResourceQueryStore | None = None,
        resolve_config: Callable[[str], ResourceConfig] = get_resource_config,
    ) -> None:
        self._sender = sender
        self._store = store
        self._resolve_config = resolve_config
        self._busy: set[IdempotencyScope] = set()

    @property
    def busy_scopes(self) -> frozenset[IdempotencyScope]:
        return frozenset(self._busy)

    def scope_for(self, intent: MutationIntent) -> IdempotencyScope:
        """Idempotency scope keyed by canonical resource name, so aliases share it."""
        return intent.idempotency_scope(self._resolve_config(intent.entity).name)

    def is_busy(self, intent: MutationIntent) -> bool:
        return self.scope_for(intent) in self._busy

    async def execute(self, intent: MutationIntent) -> MutationOutcome:
        """Execute a mutation intent.

        Args:
            intent: What to change

        Returns:
            Outcome with the response data, or the classified error

        Raises:
            ConfigurationError: If the entity or transition is not declared, or the
                resource takes no generic create/update/delete

        """
        resource = self._resolve_config(intent.entity)
        if intent.action == MutationAction.TRANSITION:
            resource.transition_route(intent.transition)
        else:
            resource.require_mutable(intent.action.value)
        scope = intent.idempotency_scope(resource.name)

        # Check-and-set with no suspension point in between
        if scope in self._busy:
            error = classify(BusyError(scope))
            logger.warning(f"Rejected {intent.action.value} on {resource.entity} {intent.entity_id or ''}: busy")
            return MutationOutcome(intent=intent, ok=False, error=error)
        self._busy.add(scope)

        try:
            data = await self._sender(resource, intent)
        except DACError as e:
            error = classify(e)
            logger.error(f"{intent.action.value} on {resource.entity} failed: {error.kind} ({error.message})")
            return MutationOutcome(intent=intent, ok=False, error=error)
        finally:
            self._busy.discard(scope)

        invalidated = resource.invalidation_targets(intent.transition or intent.action.value)
        if self._store is not None:
            self._store.invalidate_resource(*invalidated)

        target = f"{resource.entity} {intent.entity_id}" if intent.entity_id else resource.entity
        logger.info(f"{intent.action.value} on {target} succeeded, invalidated {', '.join(invalidated)}")
        return MutationOutcome(intent=intent, ok=True, data=data, invalidated=invalidated)
