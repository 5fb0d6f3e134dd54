"""Lookup of logical fields across the naming variants the backend uses."""

import re
from collections.abc import Mapping
from typing import Any

_MISSING = object()
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Variants beyond the plain camelCase/snake_case pair
FIELD_VARIANTS: dict[str, tuple[str, ...]] = {
    "id": ("id", "_id", "uuid"),
    "createdAt": ("createdAt", "created_at", "createdDate", "created_date", "date"),
    "updatedAt": ("updatedAt", "updated_at", "updatedDate"),
    "isActive": ("isActive", "is_active", "active"),
    "companyId": ("companyId", "company_id", "company.id"),
    "companyName": ("companyName", "company_name", "company.name", "company"),
    "brandName": ("brandName", "brand_name", "brand.name", "brand"),
    "categoryName": ("categoryName", "category_name", "category.name", "category"),
    "customerName": ("customerName", "customer_name", "customer.name", "user.name", "customer"),
    "kycStatus": ("kycStatus", "kyc_status", "kyc.status"),
    "total": ("total", "totalCount", "total_count", "totalItems", "total_items", "count"),
    "totalPages": ("totalPages", "total_pages", "pages", "pageCount", "page_count"),
    "page": ("page", "currentPage", "current_page"),
    "limit": ("limit", "pageSize", "page_size", "perPage", "per_page"),
}


def to_snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def to_camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


class FieldResolver:
    """Resolves logical field names against raw server records.

    Each logical field maps to an ordered list of name variants; the first one
    present in a record wins. Dotted variants (``company.id``) walk nested
    mappings. Fields without a declaration fall back to the name itself and its
    camelCase / snake_case spellings.
    """

    def __init__(self, extra_variants: Mapping[str, tuple[str, ...]] | None = None) -> None:
        self._variants: dict[str, tuple[str, ...]] = dict(FIELD_VARIANTS)
        for field, names in (extra_variants or {}).items():
            merged = list(names) + [n for n in self._variants.get(field, ()) if n not in names]
            self._variants[field] = tuple(merged)

    def variants(self, field: str) -> tuple[str, ...]:
        """Return the ordered name variants for a logical field."""
        declared = self._variants.get(field)
        if declared:
            return declared
        spellings = [field, to_camel_case(field), to_snake_case(field)]
        return tuple(dict.fromkeys(spellings))

    def resolve(self, record: Any, field: str, default: Any = None) -> Any:
        """Return the first present value for ``field`` in ``record``.

        A present value is any value other than ``None``; falsy values such as
        ``0`` or ``False`` count as present.
        """
        if not isinstance(record, Mapping):
            return default

        for name in self.variants(field):
            value = self._lookup(record, name)
            if value is not _MISSING and value is not None:
                return value
        return default

    def has(self, record: Any, field: str) -> bool:
        return self.resolve(record, field, _MISSING) is not _MISSING

    def project(self, record: Any, fields: list[str]) -> dict[str, Any]:
        """Build a flat row of logical fields for display or export."""
        return {field: self.resolve(record, field) for field in fields}

    @staticmethod
    def _lookup(record: Mapping[str, Any], name: str) -> Any:
        if name in record:
            return record[name]
        if "." not in name:
            return _MISSING

        current: Any = record
        for part in name.split("."):
            if not isinstance(current, Mapping) or part not in current:
                return _MISSING
            current = current[part]
        return current


default_resolver = FieldResolver()
