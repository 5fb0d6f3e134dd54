"""Per-resource configuration for the admin endpoint families."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from dac.core.constants import API_PREFIX
from dac.core.fields import FieldResolver
from dac.core.filters import ChoiceFilter, DateRangeFilter, FilterBuilder, FilterSpec, ValueFilter
from dac.core.normalizer import ResponseNormalizer
from dac.exceptions import UnknownResourceError, UnknownTransitionError, UnsupportedOperationError

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

ALL_ACTIONS = "*"


class ActionRoute(BaseModel):
    """A resource-specific action endpoint such as ``/{id}/verify``."""

    method: HttpMethod = "PUT"
    suffix: str = Field(description="Path segment after the entity id")
    multipart: bool = False


class ResourceConfig(BaseModel):
    """Everything the generic layers need to know about one resource."""

    name: str = Field(description="Plural resource name used as the cache family")
    entity: str = Field(description="Singular entity name")
    path: str = Field(description="Collection path under the API prefix")
    label: str = Field(description="Human readable title")
    plural_keys: list[str] = Field(default_factory=list, description="Array keys used by envelope shape (c)")
    filters: list[FilterSpec] = Field(default_factory=list)
    transitions: dict[str, ActionRoute] = Field(default_factory=dict)
    invalidates: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Action (or '*') -> resource families invalidated on success",
    )
    field_variants: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    columns: list[str] = Field(default_factory=lambda: ["id", "name", "status", "createdAt"])
    multipart: bool = Field(default=False, description="Create/update bodies are multipart uploads")
    paginated: bool = Field(default=True, description="Whether the list endpoint honours page/limit")
    listable: bool = Field(default=True, description="Whether the resource has a list endpoint")
    mutable: bool = Field(default=True, description="Whether generic create/update/delete apply")

    @property
    def collection_path(self) -> str:
        return f"{API_PREFIX}/{self.path}"

    def item_path(self, entity_id: str) -> str:
        return f"{self.collection_path}/{entity_id}"

    @property
    def date_filter(self) -> DateRangeFilter | None:
        return next((spec for spec in self.filters if isinstance(spec, DateRangeFilter)), None)

    def require_listable(self) -> None:
        if not self.listable:
            raise UnsupportedOperationError(self.name, "listing")

    def require_mutable(self, action: str) -> None:
        if not self.mutable:
            raise UnsupportedOperationError(self.name, action)

    def transition_route(self, transition: str | None) -> ActionRoute:
        if transition is None or transition not in self.transitions:
            raise UnknownTransitionError(self.name, transition)
        return self.transitions[transition]

    def invalidation_targets(self, action: str) -> list[str]:
        """Resource families to invalidate after ``action`` succeeds; always includes itself."""
        targets = self.invalidates.get(action) or self.invalidates.get(ALL_ACTIONS) or []
        return list(dict.fromkeys([self.name, *targets]))

    def resolver(self) -> FieldResolver:
        return FieldResolver(self.field_variants)

    def normalizer(self) -> ResponseNormalizer:
        return ResponseNormalizer(self.plural_keys, self.resolver(), paginated=self.paginated)

    def filter_builder(self, page_size: int) -> FilterBuilder:
        return FilterBuilder(self.filters, page_size=page_size)


SEARCH = ValueFilter(name="search", param="search")
STATUS = ValueFilter(name="status", param="status")


RESOURCES: list[ResourceConfig] = [
    ResourceConfig(
        name="products",
        entity="product",
        path="products",
        label="Products",
        plural_keys=["products"],
        filters=[
            SEARCH,
            STATUS,
            ValueFilter(name="category", param="category"),
            ValueFilter(name="company", param="company"),
            ValueFilter(name="brand", param="brand"),
            ValueFilter(name="stock", param="stock_status"),
            ValueFilter(name="sort", param="sort"),
            ValueFilter(name="order", param="order"),
        ],
        transitions={"images": ActionRoute(method="POST", suffix="images", multipart=True)},
        columns=["id", "name", "sku", "brandName", "categoryName", "price", "stock", "status"],
        field_variants={"stock": ("stock", "stockQuantity", "stock_quantity", "quantity")},
        multipart=True,
    ),
    ResourceConfig(
        name="orders",
        entity="order",
        path="orders",
        label="Orders",
        plural_keys=["orders"],
        filters=[
            SEARCH,
            STATUS,
            ValueFilter(name="paymentMethod", param="paymentMethod"),
            DateRangeFilter(name="dateRange", from_param="dateFrom", to_param="dateTo"),
            ValueFilter(name="sort", param="sort"),
            ValueFilter(name="order", param="order"),
        ],
        transitions={
            "status": ActionRoute(method="PUT", suffix="status"),
            "cancel": ActionRoute(method="POST", suffix="cancel"),
        },
        invalidates={ALL_ACTIONS: ["users"]},
        columns=["id", "orderNumber", "customerName", "amount", "paymentMethod", "status", "createdAt"],
        field_variants={
            "orderNumber": ("orderNumber", "order_number", "orderId", "order_id"),
            "amount": ("amount", "totalAmount", "total_amount", "grandTotal"),
            "paymentMethod": ("paymentMethod", "payment_method"),
        },
    ),
    ResourceConfig(
        name="users",
        entity="user",
        path="users",
        label="Users",
        plural_keys=["users"],
        filters=[
            SEARCH,
            ValueFilter(name="kycStatus", param="kycStatus"),
            ChoiceFilter(
                name="status",
                choices={
                    "active": ("isActive", True),
                    "blocked": ("isActive", False),
                    "inactive": ("isActive", False),
                },
            ),
            ValueFilter(name="sort", param="sort"),
            ValueFilter(name="order", param="order"),
        ],
        transitions={
            "block": ActionRoute(method="PUT", suffix="block"),
            "reset-password": ActionRoute(method="POST", suffix="reset-password"),
        },
        invalidates={ALL_ACTIONS: ["kyc"]},
        columns=["id", "name", "email", "phone", "businessName", "kycStatus", "isActive", "createdAt"],
        field_variants={"businessName": ("businessName", "business_name", "business.name", "business")},
    ),
    ResourceConfig(
        name="kyc",
        entity="kyc",
        path="kyc",
        label="KYC submissions",
        plural_keys=["submissions", "kyc", "kycSubmissions", "kyc_submissions"],
        filters=[SEARCH, STATUS],
        transitions={
            "verify": ActionRoute(method="PUT", suffix="verify"),
            "reject": ActionRoute(method="PUT", suffix="reject"),
        },
        invalidates={ALL_ACTIONS: ["users"]},
        columns=["id", "businessName", "gstNumber", "panNumber", "status", "createdAt"],
        field_variants={
            "businessName": ("businessName", "business_name", "user.businessName", "user.name"),
            "gstNumber": ("gstNumber", "gst_number", "gst"),
            "panNumber": ("panNumber", "pan_number", "pan"),
            "createdAt": ("submittedAt", "submitted_at", "createdAt", "created_at"),
        },
    ),
    ResourceConfig(
        name="companies",
        entity="company",
        path="companies",
        label="Companies",
        plural_keys=["companies"],
        filters=[SEARCH],
        # Brand and product records embed company names
        invalidates={ALL_ACTIONS: ["brands", "products"]},
        columns=["id", "name", "brandCount", "productCount", "isActive", "createdAt"],
        field_variants={
            "brandCount": ("brandCount", "brand_count", "brandsCount", "brands_count"),
            "productCount": ("productCount", "product_count", "productsCount", "products_count"),
        },
        multipart=True,
        paginated=False,
    ),
    ResourceConfig(
        name="brands",
        entity="brand",
        path="brands",
        label="Brands",
        plural_keys=["brands"],
        filters=[SEARCH, ValueFilter(name="companyId", param="companyId")],
        invalidates={ALL_ACTIONS: ["companies", "products"]},
        columns=["id", "name", "companyName", "categoryName", "isActive", "createdAt"],
        multipart=True,
        paginated=False,
    ),
    ResourceConfig(
        name="categories",
        entity="category",
        path="categories",
        label="Categories",
        plural_keys=["categories"],
        filters=[SEARCH],
        transitions={"reorder": ActionRoute(method="PUT", suffix="reorder")},
        invalidates={ALL_ACTIONS: ["products"]},
        columns=["id", "name", "parentName", "displayOrder", "productCount", "isActive"],
        field_variants={
            "parentName": ("parentName", "parent_name", "parent.name"),
            "displayOrder": ("displayOrder", "display_order", "order"),
            "productCount": ("productCount", "product_count", "productsCount"),
        },
        paginated=False,
    ),
    ResourceConfig(
        name="offers",
        entity="offer",
        path="offers",
        label="Offers",
        plural_keys=["offers"],
        filters=[SEARCH, ValueFilter(name="type", param="type"), STATUS],
        transitions={"toggle": ActionRoute(method="PUT", suffix="toggle")},
        columns=["id", "title", "type", "discount", "validUntil", "status"],
        field_variants={
            "title": ("title", "name"),
            "discount": ("discount", "discountValue", "discount_value"),
            "validUntil": ("validUntil", "valid_until", "endDate", "end_date"),
        },
        multipart=True,
        paginated=False,
    ),
    ResourceConfig(
        name="sellers",
        entity="seller",
        path="sellers",
        label="Sellers",
        plural_keys=["sellers"],
        filters=[SEARCH],
        transitions={"reset-password": ActionRoute(method="POST", suffix="reset-password")},
        columns=["id", "name", "email", "companyName", "isActive", "createdAt"],
    ),
    ResourceConfig(
        name="delivery-persons",
        entity="delivery-person",
        path="delivery-persons",
        label="Delivery persons",
        plural_keys=["deliveryPersons", "delivery_persons", "persons"],
        filters=[
            SEARCH,
            ChoiceFilter(name="online", choices={"online": ("is_online", True), "offline": ("is_online", False)}),
            ChoiceFilter(
                name="availability",
                choices={"available": ("is_available", True), "busy": ("is_available", False)},
            ),
        ],
        columns=["id", "name", "phone", "employeeId", "vehicleNumber", "vehicleType", "isOnline", "isAvailable"],
        field_variants={
            "employeeId": ("employeeId", "employee_id"),
            "vehicleNumber": ("vehicleNumber", "vehicle_number"),
            "vehicleType": ("vehicleType", "vehicle_type"),
            "isOnline": ("isOnline", "is_online"),
            "isAvailable": ("isAvailable", "is_available"),
        },
    ),
    ResourceConfig(
        name="weekly-reports",
        entity="weekly-report",
        path="reports/weekly/user-location",
        label="Weekly user locations",
        plural_keys=["locations"],
        filters=[DateRangeFilter(name="week", from_param="startDate", to_param="endDate")],
        columns=["city", "state", "activeUsers", "inactiveUsers", "totalUsers"],
        field_variants={
            "activeUsers": ("activeUsers", "active_users", "active"),
            "inactiveUsers": ("inactiveUsers", "inactive_users", "inactive"),
            "totalUsers": ("totalUsers", "total_users", "users"),
        },
        paginated=False,
        mutable=False,
    ),
    ResourceConfig(
        name="account",
        entity="admin",
        path="auth",
        label="Admin account",
        transitions={"change-password": ActionRoute(method="PUT", suffix="change-password")},
        listable=False,
        mutable=False,
    ),
]

_BY_NAME: dict[str, ResourceConfig] = {}
for _config in RESOURCES:
    _BY_NAME[_config.name] = _config
    _BY_NAME[_config.entity] = _config
    _BY_NAME[_config.name.replace("-", "_")] = _config


def get_resource_config(name: str) -> ResourceConfig:
    """Look up a resource by plural name or singular entity name."""
    config = _BY_NAME.get(name.strip().lower()) if name else None
    if config is None:
        raise UnknownResourceError(name)
    return config


def resource_names() -> list[str]:
    return [config.name for config in RESOURCES]


def describe_resources() -> list[dict[str, Any]]:
    """Summary rows for the ``resources`` command."""
    return [
        {
            "name": config.name,
            "entity": config.entity,
            "path": config.collection_path,
            "filters": ", ".join(spec.name for spec in config.filters),
            "actions": ", ".join(config.transitions) or "-",
            "invalidates": ", ".join(config.invalidation_targets(ALL_ACTIONS)[1:]) or "-",
        }
        for config in RESOURCES
    ]
