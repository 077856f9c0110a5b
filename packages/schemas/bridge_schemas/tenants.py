"""Tenant schemas - storefront/city to POS organization bindings."""

from pydantic import BaseModel, ConfigDict, Field


class TenantConfig(BaseModel):
    """One storefront/city pairing with its POS credentials."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str
    api_login: str = Field(alias="apiLogin")
    organization_id: str = Field(alias="organizationId")
    terminal_group_id: str = Field(alias="terminalGroupId")
    payment_type_id: str | None = Field(default=None, alias="paymentTypeId")
    payment_type_kind: str = Field(default="Card", alias="paymentTypeKind")
    fallback_product_id: str | None = Field(default=None, alias="fallbackProductId")


class TenantRegistry(BaseModel):
    """All configured tenants plus the lookup tables used to find them."""

    model_config = ConfigDict(frozen=True)

    default_tenant: str = ""
    project_id_to_city: dict[str, str] = Field(default_factory=dict)
    page_id_to_city: dict[str, str] = Field(default_factory=dict)
    tenants: dict[str, TenantConfig] = Field(default_factory=dict)
