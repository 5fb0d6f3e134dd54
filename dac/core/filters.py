"""Conversion of declarative UI filter state into canonical request parameters."""

import logging
from datetime import date, datetime, timedelta
from typing import Annotated, Any, Literal

import dateparser
from pydantic import BaseModel, Field

from dac.core.constants import UNSET_SENTINEL, APIConstants, DatePreset

logger = logging.getLogger(__name__)

PAGINATION_KEYS = ("page", "limit")


class ValueFilter(BaseModel):
    """A UI value passed through under a single server parameter."""

    kind: Literal["value"] = "value"
    name: str = Field(description="Key in the UI state")
    param: str = Field(description="Server query parameter")


class ChoiceFilter(BaseModel):
    """One logical filter whose values map onto different server parameters."""

    kind: Literal["choice"] = "choice"
    name: str = Field(description="Key in the UI state")
    choices: dict[str, tuple[str, Any]] = Field(description="UI value -> (server parameter, server value)")

    @property
    def params(self) -> set[str]:
        return {param for param, _ in self.choices.values()}


class DateRangeFilter(BaseModel):
    """A date-range preset resolved to concrete calendar bounds."""

    kind: Literal["date_range"] = "date_range"
    name: str = Field(default="dateRange", description="Key in the UI state")
    from_param: str = Field(default="dateFrom", description="Server parameter for the lower bound")
    to_param: str = Field(default="dateTo", description="Server parameter for the upper bound")

    @property
    def custom_from_key(self) -> str:
        return f"{self.name}From"

    @property
    def custom_to_key(self) -> str:
        return f"{self.name}To"


FilterSpec = Annotated[ValueFilter | ChoiceFilter | DateRangeFilter, Field(discriminator="kind")]


def is_unset(value: Any) -> bool:
    """True for values that mean "no filter"."""
    if value is None:
        return True
    if isinstance(value, str):
        stripped = value.strip()
        return not stripped or stripped.lower() == UNSET_SENTINEL
    return False


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def quarter_start(day: date) -> date:
    return date(day.year, 3 * ((day.month - 1) // 3) + 1, 1)


def resolve_date_preset(preset: str, now: datetime | None = None) -> tuple[date, date] | None:
    """Resolve a preset to inclusive ``(from, to)`` dates relative to ``now``.

    Returns None for ``all`` and for unknown presets, meaning no bound at all.
    """
    today = (now or datetime.now()).date()

    match preset:
        case DatePreset.TODAY:
            return today, today
        case DatePreset.WEEK:
            return week_start(today), today
        case DatePreset.LAST_WEEK:
            start = week_start(today) - timedelta(days=7)
            return start, start + timedelta(days=6)
        case DatePreset.MONTH:
            return today.replace(day=1), today
        case DatePreset.QUARTER:
            return quarter_start(today), today
        case DatePreset.YEAR:
            return date(today.year, 1, 1), today
        case _:
            return None


def parse_date(text: Any, now: datetime | None = None) -> date | None:
    """Parse a free-text or ISO date bound with dateparser."""
    if isinstance(text, datetime):
        return text.date()
    if isinstance(text, date):
        return text
    if is_unset(text):
        return None

    settings: dict[str, Any] = {"PREFER_DAY_OF_MONTH": "first", "RETURN_AS_TIMEZONE_AWARE": False}
    if now is not None:
        settings["RELATIVE_BASE"] = now
    parsed = dateparser.parse(str(text), settings=settings)
    if parsed is None:
        logger.debug(f"Ignoring unparseable date bound: {text!r}")
        return None
    return parsed.date()


def coerce_positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


class FilterBuilder:
    """Builds the canonical filter mapping for one resource's list screen."""

    def __init__(self, specs: list[Any] | None = None, page_size: int = APIConstants.DEFAULT_PAGE_SIZE) -> None:
        self.specs = list(specs or [])
        self.page_size = page_size

    def build(self, ui_state: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
        """Convert UI state into canonical filters.

        Args:
            ui_state: Raw UI values keyed by filter name, plus page/limit
            now: Reference instant for date presets (defaults to the current time)

        Returns:
            New mapping with sorted keys; page and limit always present

        """
        result: dict[str, Any] = {}

        for spec in self.specs:
            match spec:
                case ValueFilter():
                    self._apply_value(spec, ui_state, result)
                case ChoiceFilter():
                    self._apply_choice(spec, ui_state, result)
                case DateRangeFilter():
                    self._apply_date_range(spec, ui_state, result, now)

        result["page"] = coerce_positive_int(ui_state.get("page"), APIConstants.DEFAULT_PAGE)
        result["limit"] = min(coerce_positive_int(ui_state.get("limit"), self.page_size), APIConstants.MAX_PAGE_SIZE)

        return {key: result[key] for key in sorted(result)}

    @staticmethod
    def _apply_value(spec: ValueFilter, ui_state: dict[str, Any], result: dict[str, Any]) -> None:
        value = ui_state.get(spec.name)
        if is_unset(value):
            return
        result[spec.param] = value.strip() if isinstance(value, str) else value

    @staticmethod
    def _apply_choice(spec: ChoiceFilter, ui_state: dict[str, Any], result: dict[str, Any]) -> None:
        value = ui_state.get(spec.name)
        if is_unset(value):
            return

        choice = spec.choices.get(str(value).strip())
        if choice is None:
            logger.debug(f"Ignoring unknown {spec.name} value: {value!r}")
            return

        # One server parameter per logical filter, never both
        for param in spec.params:
            result.pop(param, None)
        param, server_value = choice
        result[param] = server_value

    @staticmethod
    def _apply_date_range(
        spec: DateRangeFilter, ui_state: dict[str, Any], result: dict[str, Any], now: datetime | None
    ) -> None:
        preset = ui_state.get(spec.name)
        if is_unset(preset):
            return

        bounds: tuple[date | None, date | None] | None
        if preset == DatePreset.CUSTOM:
            bounds = (
                parse_date(ui_state.get(spec.custom_from_key), now),
                parse_date(ui_state.get(spec.custom_to_key), now),
            )
        else:
            bounds = resolve_date_preset(str(preset), now)

        if bounds is None:
            return

        start, end = bounds
        if start and end and start > end:
            start, end = end, start
        if start:
            result[spec.from_param] = start.isoformat()
        if end:
            result[spec.to_param] = end.isoformat()
