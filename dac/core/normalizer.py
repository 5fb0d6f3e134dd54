"""Normalization of the backend's list envelopes into one canonical page."""

import logging
from collections.abc import Iterable
from typing import Any

from dac.core.constants import PageWarning
from dac.core.fields import FieldResolver, default_resolver
from dac.models.page import Pagination, ResourcePage, ResourceQuery, compute_total_pages

logger = logging.getLogger(__name__)

ENVELOPE_KEYS = ("success", "message", "meta", "status")


def unwrap_envelope(raw: Any) -> Any:
    """Strip the ``{success, data, message}`` API envelope.

    A nested ``data`` level is also unwrapped, since some endpoints answer
    ``{"data": {"data": {...}}}``. Values that are not enveloped come back as is.
    """
    current = raw
    for _ in range(2):
        if not isinstance(current, dict) or "data" not in current:
            break
        if "items" in current or "pagination" in current:
            break
        others = set(current) - {"data"}
        if others and not others & set(ENVELOPE_KEYS):
            break
        current = current["data"]
    return current


def _as_int(value: Any, default: int, minimum: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= minimum else default


class ResponseNormalizer:
    """Turns any supported list envelope into a ``ResourcePage``.

    Shapes are tried in order and the first structural match wins:

    a. ``{"items": [...], "pagination": {...}}``
    b. a bare list
    c. ``{"<plural>": [...], "page"?, "limit"?, "total"?, "totalPages"?, "summary"?}``
    d. anything else, which becomes an empty page flagged as unrecognized

    The normalizer never raises. For resources whose endpoint ignores
    page/limit (``paginated=False``) an array is the full result and the
    requested page window is always sliced out of it; on paginated resources
    that happens only when an array holds more than ``limit`` items. Either
    way ``total`` counts the array, never the position of the window.
    """

    def __init__(
        self,
        plural_keys: Iterable[str] = (),
        resolver: FieldResolver | None = None,
        paginated: bool = True,
    ) -> None:
        self.plural_keys = tuple(dict.fromkeys([*plural_keys, "items", "results", "rows", "data"]))
        self.resolver = resolver or default_resolver
        self.paginated = paginated

    def normalize(self, raw: Any, query: ResourceQuery) -> ResourcePage:
        body = unwrap_envelope(raw)

        if self._is_canonical(body):
            return self._from_canonical(body, query)
        if isinstance(body, list):
            return self._from_items(body, query, total=None, page=query.page, limit=query.limit)

        named = self._named_items(body)
        if named is not None:
            key, items = named
            logger.debug(f"{query.resource_type}: items found under '{key}'")
            meta = body.get("pagination") if isinstance(body.get("pagination"), dict) else body
            summary = body["summary"] if isinstance(body.get("summary"), dict) else {}
            if not self.paginated:
                # The server ignored page/limit, so its window metadata describes the whole array
                return self._from_items(items, query, total=None, page=query.page, limit=query.limit, summary=summary)
            return self._from_items(
                items,
                query,
                total=self.resolver.resolve(meta, "total"),
                page=_as_int(self.resolver.resolve(meta, "page"), query.page, minimum=1),
                limit=_as_int(self.resolver.resolve(meta, "limit"), query.limit, minimum=1),
                summary=summary,
            )

        logger.warning(f"{query.resource_type}: unrecognized list envelope ({type(raw).__name__}), showing empty page")
        return ResourcePage.empty(query.page, query.limit, warnings=[PageWarning.UNRECOGNIZED_ENVELOPE])

    @staticmethod
    def _is_canonical(body: Any) -> bool:
        return isinstance(body, dict) and isinstance(body.get("items"), list) and isinstance(body.get("pagination"), dict)

    def _named_items(self, body: Any) -> tuple[str, list[Any]] | None:
        if not isinstance(body, dict):
            return None
        for key in self.plural_keys:
            if isinstance(body.get(key), list):
                return key, body[key]
        return None

    def _from_canonical(self, body: dict[str, Any], query: ResourceQuery) -> ResourcePage:
        meta = body["pagination"]
        items = body["items"]
        warnings: list[str] = []

        page = _as_int(self.resolver.resolve(meta, "page"), query.page, minimum=1)
        limit = _as_int(self.resolver.resolve(meta, "limit"), query.limit, minimum=1)
        raw_total = self.resolver.resolve(meta, "total")
        total = _as_int(raw_total, len(items))
        if raw_total is None or total != raw_total:
            warnings.append(PageWarning.PAGINATION_REPAIRED)

        reported_pages = self.resolver.resolve(meta, "totalPages")
        if reported_pages is not None and reported_pages != compute_total_pages(total, limit):
            if PageWarning.PAGINATION_REPAIRED not in warnings:
                warnings.append(PageWarning.PAGINATION_REPAIRED)
            logger.debug(f"{query.resource_type}: server totalPages={reported_pages!r} recomputed from total={total}")

        if len(items) > limit:
            # Server returned more than a page; keep its own page window
            items = items[:limit]
            warnings.append(PageWarning.CLIENT_PAGINATED)

        return self._build(items, page, limit, max(total, len(items)), warnings, query)

    def _from_items(
        self,
        items: list[Any],
        query: ResourceQuery,
        total: Any,
        page: int,
        limit: int,
        summary: dict[str, Any] | None = None,
    ) -> ResourcePage:
        warnings: list[str] = []
        resolved_total = max(_as_int(total, len(items)), len(items))
        oversized = len(items) > limit

        if oversized or not self.paginated:
            start = (page - 1) * limit
            items = items[start : start + limit]
            logger.debug(f"{query.resource_type}: sliced page {page} out of an unpaginated array")
        if oversized:
            warnings.append(PageWarning.CLIENT_PAGINATED)

        return self._build(items, page, limit, resolved_total, warnings, query, summary)

    def _build(
        self,
        items: list[Any],
        page: int,
        limit: int,
        total: int,
        warnings: list[str],
        query: ResourceQuery,
        summary: dict[str, Any] | None = None,
    ) -> ResourcePage:
        records = [item for item in items if item is not None]
        if len(records) != len(items):
            warnings.append(PageWarning.DROPPED_ITEMS)

        if warnings:
            logger.debug(f"{query.resource_type}: normalized with warnings {warnings}")

        return ResourcePage(
            items=records,
            pagination=Pagination.build(page=page, limit=limit, total=total),
            warnings=warnings,
            summary=summary or {},
        )
