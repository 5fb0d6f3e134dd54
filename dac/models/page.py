"""Query and page models shared by the filter, normalizer and cache layers."""

import math
from typing import Any, Generic, NamedTuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dac.core.constants import APIConstants

T = TypeVar("T")

FilterValue = str | int | float | bool


def compute_total_pages(total: int, limit: int) -> int:
    """Number of pages needed for ``total`` items; never less than one."""
    if limit <= 0:
        return 1
    return max(1, math.ceil(total / limit))


class QueryKey(NamedTuple):
    """Hashable cache key derived from a ResourceQuery."""

    resource_type: str
    filters: tuple[tuple[str, FilterValue], ...]
    page: int
    limit: int


class ResourceQuery(BaseModel):
    """An immutable list request: resource, canonical filters and page window."""

    model_config = ConfigDict(frozen=True)

    resource_type: str
    filters: dict[str, FilterValue] = Field(default_factory=dict)
    page: int = Field(default=APIConstants.DEFAULT_PAGE, ge=1)
    limit: int = Field(default=APIConstants.DEFAULT_PAGE_SIZE, gt=0)

    @field_validator("filters", mode="before")
    @classmethod
    def strip_nulls(cls, v: Any) -> Any:
        """Drop null filters and store the rest in sorted key order."""
        if not isinstance(v, dict):
            return v
        return {k: v[k] for k in sorted(v) if v[k] is not None}

    @classmethod
    def from_filters(cls, resource_type: str, canonical: dict[str, Any]) -> "ResourceQuery":
        """Build a query from a canonical filter mapping that includes page/limit."""
        filters = dict(canonical)
        page = filters.pop("page", APIConstants.DEFAULT_PAGE)
        limit = filters.pop("limit", APIConstants.DEFAULT_PAGE_SIZE)
        return cls(resource_type=resource_type, filters=filters, page=page, limit=limit)

    @property
    def key(self) -> QueryKey:
        return QueryKey(self.resource_type, tuple(self.filters.items()), self.page, self.limit)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def to_params(self) -> dict[str, Any]:
        """Request parameters: filters plus pagination."""
        return {**self.filters, "page": self.page, "limit": self.limit}

    def with_page(self, page: int) -> "ResourceQuery":
        return self.model_copy(update={"page": page})

    def __hash__(self) -> int:
        return hash(self.key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceQuery):
            return NotImplemented
        return self.key == other.key


class Pagination(BaseModel):
    """Pagination block of a canonical page."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page: int = Field(ge=1)
    limit: int = Field(ge=0)
    total: int = Field(ge=0)
    total_pages: int = Field(ge=1, alias="totalPages")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=compute_total_pages(total, limit))


class ResourcePage(BaseModel, Generic[T]):
    """Canonical list result, whatever envelope the server used."""

    model_config = ConfigDict(frozen=True)

    items: list[T] = Field(default_factory=list)
    pagination: Pagination
    warnings: list[str] = Field(default_factory=list)
    summary: dict[str, Any] = Field(default_factory=dict, description="Aggregate block sent next to the items")

    @classmethod
    def empty(cls, page: int = 1, limit: int = APIConstants.DEFAULT_PAGE_SIZE, **kwargs: Any) -> "ResourcePage[T]":
        return cls(items=[], pagination=Pagination.build(page, limit, 0), **kwargs)

    @property
    def has_next(self) -> bool:
        return self.pagination.page < self.pagination.total_pages

    @property
    def has_previous(self) -> bool:
        return self.pagination.page > 1

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)
