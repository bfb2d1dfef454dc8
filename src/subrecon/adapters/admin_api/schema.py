"""Pydantic models describing the admin API payloads."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime  # noqa: TC003
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Timestamp = str | int | float | None


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _id_to_str(value: object) -> object:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return value


def _require_text(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError("must not be blank")
    return stripped


class AdminApiBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PurchasePayload(AdminApiBaseModel):
    id: str = Field(alias="_id")
    product_id: str | None = Field(default=None, alias="productId")
    product_key: str | None = Field(default=None, alias="productKey")
    product_name: str | None = Field(default=None, alias="productName")
    status: str | None = None
    started_at: Timestamp = Field(default=None, alias="startedAt")
    ends_at: Timestamp = Field(default=None, alias="endsAt")

    _normalize_id = field_validator("id", "product_id", mode="before")(_id_to_str)
    _normalize_blank = field_validator(
        "product_id", "product_key", "product_name", "status", "started_at", "ends_at",
        mode="before",
    )(_blank_to_none)


class UserPayload(AdminApiBaseModel):
    id: str = Field(alias="_id")
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    role: str | None = None
    # validated one by one so a single bad purchase does not drop the user
    purchases: list[object] = Field(default_factory=list)

    _normalize_id = field_validator("id", mode="before")(_id_to_str)
    _require_id = field_validator("id")(_require_text)

    @field_validator("purchases", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return [] if value is None else value


class UsersResponse(AdminApiBaseModel):
    items: list[object] = Field(default_factory=list)
    page: int | None = None
    page_size: int | None = Field(default=None, alias="pageSize")
    total: int | None = None

    @field_validator("items", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return [] if value is None else value


class UserRefPayload(AdminApiBaseModel):
    id: str | None = Field(default=None, alias="_id")
    name: str | None = None
    email: str | None = None
    phone: str | None = None

    _normalize_id = field_validator("id", mode="before")(_id_to_str)
    _normalize_blank = field_validator("id", mode="before")(_blank_to_none)


class ProductRefPayload(AdminApiBaseModel):
    id: str | None = Field(default=None, alias="_id")
    key: str | None = None
    name: str | None = None

    _normalize_id = field_validator("id", mode="before")(_id_to_str)
    _normalize_blank = field_validator("key", "name", mode="before")(_blank_to_none)


class ExpiredRowPayload(AdminApiBaseModel):
    id: str | None = Field(default=None, alias="_id")
    ends_at: Timestamp = Field(default=None, alias="endsAt")
    status: str | None = None
    user: UserRefPayload = Field(default_factory=UserRefPayload)
    product: ProductRefPayload = Field(default_factory=ProductRefPayload)


class ExpiredSummaryResponse(AdminApiBaseModel):
    items: list[Mapping[str, object]] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_list(cls, value: object) -> object:
        if isinstance(value, list):
            return {"items": cast(list[object], value)}
        if isinstance(value, Mapping):
            mapping_value = cast(Mapping[str, object], value)
            if mapping_value.get("items") is None:
                return {**mapping_value, "items": []}
        return value


# Payloads exposed to the presentation layer


class UserOut(AdminApiBaseModel):
    id: str = Field(serialization_alias="_id")
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class ProductOut(AdminApiBaseModel):
    id: str = Field(serialization_alias="_id")
    key: str | None = None
    name: str


class ExpiredRowOut(AdminApiBaseModel):
    id: str = Field(serialization_alias="_id")
    ends_at: datetime | None = Field(default=None, serialization_alias="endsAt")
    status: str
    user: UserOut
    product: ProductOut


class RenewalRowOut(AdminApiBaseModel):
    id: str = Field(serialization_alias="_id")
    ends_at: datetime = Field(serialization_alias="endsAt")
    status: str | None = None
    user: UserOut
    product: ProductOut


class ExpiredResultOut(AdminApiBaseModel):
    items: list[ExpiredRowOut]
    source: str
    status: str
    truncated: bool
    scanned_users: int = Field(serialization_alias="scannedUsers")
    error: str | None = None


class RenewalResultOut(AdminApiBaseModel):
    items: list[RenewalRowOut]
    truncated: bool
