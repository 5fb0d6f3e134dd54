"""Facade that wires the client, cache store and mutation coordinator together."""

import logging
from collections.abc import AsyncIterator
from datetime import date, datetime
from typing import Any

from dac.api.client import AdminAPIClient
from dac.api.resources import ResourceConfig, get_resource_config
from dac.cache.store import ResourceQueryStore
from dac.config import Config
from dac.core.constants import AccountConstants, APIConstants, DatePreset
from dac.core.errors import classify
from dac.core.normalizer import ResponseNormalizer
from dac.exceptions import ValidationError
from dac.models.cache import CacheEntry
from dac.models.mutation import MutationAction, MutationIntent, MutationOutcome
from dac.models.page import ResourcePage, ResourceQuery
from dac.services.mutations import MutationCoordinator

logger = logging.getLogger(__name__)

WEEKLY_REPORTS = "weekly-reports"
ACCOUNT = "account"
CHANGE_PASSWORD = "change-password"


class AdminConsole:
    """Entry point list screens and commands use instead of talking HTTP directly."""

    def __init__(self, client: AdminAPIClient, config: Config | None = None) -> None:
        self.client = client
        self.config = config or client.config
        self._normalizers: dict[str, ResponseNormalizer] = {}
        self.store = ResourceQueryStore(
            self._fetch_page,
            max_entries=self.config.cache_max_entries,
            stale_after=self.config.stale_after_seconds,
        )
        self.mutations = MutationCoordinator(self.client.send_mutation, self.store)

    def build_query(self, resource: str, ui_state: dict[str, Any], now: datetime | None = None) -> ResourceQuery:
        """Turn UI filter state into a ResourceQuery for ``resource``."""
        config = get_resource_config(resource)
        config.require_listable()
        canonical = config.filter_builder(self.config.page_size).build(ui_state, now=now)
        return ResourceQuery.from_filters(config.name, canonical)

    async def list(self, resource: str, ui_state: dict[str, Any] | None = None, slot: str | None = None) -> CacheEntry:
        """Fetch (or serve from cache) one page of a resource list."""
        query = self.build_query(resource, ui_state or {})
        return await self.store.fetch(query, slot=slot or query.resource_type)

    def watch(self, resource: str, ui_state: dict[str, Any] | None = None, slot: str | None = None) -> CacheEntry:
        """Non-blocking variant of ``list`` for render loops."""
        query = self.build_query(resource, ui_state or {})
        return self.store.get(query, slot=slot or query.resource_type)

    async def refresh(self, resource: str, ui_state: dict[str, Any] | None = None, slot: str | None = None) -> CacheEntry:
        """User-initiated retry: refetch even if the cached page is fresh."""
        query = self.build_query(resource, ui_state or {})
        return await self.store.fetch(query, slot=slot or query.resource_type, force=True)

    async def iter_pages(self, resource: str, ui_state: dict[str, Any] | None = None) -> AsyncIterator[ResourcePage]:
        """Walk every page of a list, starting from the page in ``ui_state``."""
        query = self.build_query(resource, ui_state or {})
        while True:
            page = await self._fetch_page(query)
            yield page
            if not page.items or not page.has_next:
                return
            query = query.with_page(query.page + 1)

    async def detail(self, resource: str, entity_id: str) -> Any:
        """Fetch one entity; detail reads bypass the list cache."""
        return await self.client.get_resource(get_resource_config(resource), entity_id)

    async def create(
        self, resource: str, payload: dict[str, Any], files: dict[str, Any] | None = None
    ) -> MutationOutcome:
        return await self.mutations.execute(
            MutationIntent(entity=resource, action=MutationAction.CREATE, payload=payload, files=files)
        )

    async def update(
        self, resource: str, entity_id: str, payload: dict[str, Any], files: dict[str, Any] | None = None
    ) -> MutationOutcome:
        return await self.mutations.execute(
            MutationIntent(
                entity=resource, action=MutationAction.UPDATE, entity_id=entity_id, payload=payload, files=files
            )
        )

    async def delete(self, resource: str, entity_id: str) -> MutationOutcome:
        return await self.mutations.execute(
            MutationIntent(entity=resource, action=MutationAction.DELETE, entity_id=entity_id)
        )

    async def transition(
        self,
        resource: str,
        entity_id: str | None,
        action: str,
        payload: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> MutationOutcome:
        """Run a resource action endpoint such as ``verify``, ``reject`` or ``toggle``."""
        return await self.mutations.execute(
            MutationIntent(
                entity=resource,
                action=MutationAction.TRANSITION,
                entity_id=entity_id,
                transition=action,
                payload=payload,
                files=files,
            )
        )

    async def weekly_report(self, start: date, end: date) -> CacheEntry:
        """Weekly user-location report for one date window.

        The report shares the list cache: each window is its own key of the
        ``weekly-reports`` family, so switching weeks never shows another
        week's numbers, and revisiting a fresh week makes no request.
        """
        config = get_resource_config(WEEKLY_REPORTS)
        week = config.date_filter
        ui_state = {
            week.name: DatePreset.CUSTOM,
            week.custom_from_key: start.isoformat(),
            week.custom_to_key: end.isoformat(),
            "limit": APIConstants.MAX_PAGE_SIZE,
        }
        return await self.list(config.name, ui_state, slot=config.name)

    async def change_password(self, current_password: str, new_password: str) -> MutationOutcome:
        """Change the signed-in admin's password.

        Missing or too short passwords are rejected locally as a validation
        failure and nothing is sent.
        """
        intent = MutationIntent(
            entity=ACCOUNT,
            action=MutationAction.TRANSITION,
            transition=CHANGE_PASSWORD,
            payload={"currentPassword": current_password, "newPassword": new_password},
        )

        fields: dict[str, str] = {}
        if not current_password:
            fields["currentPassword"] = "required"
        if not new_password:
            fields["newPassword"] = "required"
        elif len(new_password) < AccountConstants.MIN_PASSWORD_LENGTH:
            fields["newPassword"] = f"must be at least {AccountConstants.MIN_PASSWORD_LENGTH} characters"
        if fields:
            error = ValidationError("Password change rejected", fields=fields)
            return MutationOutcome(intent=intent, ok=False, error=classify(error))

        return await self.mutations.execute(intent)

    def normalizer_for(self, config: ResourceConfig) -> ResponseNormalizer:
        if config.name not in self._normalizers:
            self._normalizers[config.name] = config.normalizer()
        return self._normalizers[config.name]

    async def _fetch_page(self, query: ResourceQuery) -> ResourcePage:
        config = get_resource_config(query.resource_type)
        raw = await self.client.list_resource(config, query)
        page = self.normalizer_for(config).normalize(raw, query)
        if page.degraded:
            logger.debug(f"{config.name} page {query.page} normalized with warnings: {', '.join(page.warnings)}")
        return page
