"""Cache-related data models."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from dac.core.errors import ClassifiedError
from dac.models.page import QueryKey, ResourcePage


class CacheStatus(StrEnum):
    """Lifecycle of a cache entry."""

    IDLE = "idle"
    LOADING = "loading"
    FETCHING = "fetching"
    SUCCESS = "success"
    ERROR = "error"


class CacheEntry(BaseModel):
    """State of one cached list page."""

    key: QueryKey
    data: ResourcePage | None = None
    status: CacheStatus = CacheStatus.IDLE
    in_flight_request_id: int | None = None
    last_error: ClassifiedError | None = None
    updated_at: float | None = None  # monotonic time of last successful settle
    invalidated: bool = False

    @property
    def is_loading(self) -> bool:
        """True only for the first load, when there is nothing to show yet."""
        return self.status == CacheStatus.LOADING

    @property
    def is_fetching(self) -> bool:
        """True while any request is in flight, including background refreshes."""
        return self.status in (CacheStatus.LOADING, CacheStatus.FETCHING)

    @property
    def is_error(self) -> bool:
        return self.status == CacheStatus.ERROR

    @property
    def is_success(self) -> bool:
        return self.status == CacheStatus.SUCCESS

    @property
    def items(self) -> list[Any]:
        return list(self.data.items) if self.data else []


class CacheStats(BaseModel):
    """Counters exposed for diagnostics."""

    entries: int = 0
    in_flight: int = 0
    requests: int = 0
    deduplicated: int = 0
    discarded: int = 0
    evictions: int = 0
    invalidations: int = 0
    resource_types: list[str] = Field(default_factory=list)
