"""Stable product identities derived from heterogeneous product descriptors.

Purchases reach us with a catalog key, a free-text name, an opaque id, or any
combination of them, and these do not always agree. Grouping is done by what the
admin sees: the display label (name, then key, then id) is slugged, so two cycles
labelled "FNO Khazana" group together even if one carries ``fno-khazana`` and the
other ``FNO_KHAZANA_V2`` as its key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable

_SEPARATOR = "_"
_NON_SLUG_RUN = re.compile(r"[^a-z0-9]+")
_VALID_SLUG = re.compile(r"(?:[a-z0-9]+(?:_[a-z0-9]+)*)?")


class ProductDescriptor(Protocol):
    @property
    def product_name(self) -> str | None: ...

    @property
    def product_key(self) -> str | None: ...

    @property
    def product_id(self) -> str | None: ...


@dataclass(frozen=True, slots=True, order=True)
class ProductIdentity:
    """Normalized product slug. The empty slug means "unknown product"."""

    slug: str

    UNKNOWN: ClassVar[ProductIdentity]

    def __post_init__(self) -> None:
        if _VALID_SLUG.fullmatch(self.slug) is None:
            raise ValueError(f"Invalid product identity slug: {self.slug!r}")

    @property
    def is_unknown(self) -> bool:
        return not self.slug

    def __str__(self) -> str:
        return self.slug


ProductIdentity.UNKNOWN = ProductIdentity("")


@dataclass(frozen=True, slots=True, order=True)
class EntitlementKey:
    """Composite ``user:product`` key used for grouping and deduplication."""

    user_id: str
    identity: ProductIdentity

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("Entitlement key requires a user id")

    def __str__(self) -> str:
        return f"{self.user_id}:{self.identity.slug}"


def first_label(candidates: Iterable[str | None]) -> str:
    for candidate in candidates:
        if candidate is None:
            continue
        stripped = candidate.strip()
        if stripped:
            return stripped
    return ""


def identity_for_label(label: str | None) -> ProductIdentity:
    if not label:
        return ProductIdentity.UNKNOWN
    slug = _NON_SLUG_RUN.sub(_SEPARATOR, label.strip().lower()).strip(_SEPARATOR)
    return ProductIdentity(slug)


def product_label(descriptor: ProductDescriptor) -> str:
    """Return the display label: name, else key, else id."""

    return first_label((descriptor.product_name, descriptor.product_key, descriptor.product_id))


def canonicalize(descriptor: ProductDescriptor) -> ProductIdentity:
    return identity_for_label(product_label(descriptor))


def entitlement_key(user_id: str, descriptor: ProductDescriptor) -> EntitlementKey:
    return EntitlementKey(user_id=user_id, identity=canonicalize(descriptor))


__all__ = [
    "EntitlementKey",
    "ProductDescriptor",
    "ProductIdentity",
    "canonicalize",
    "entitlement_key",
    "first_label",
    "identity_for_label",
    "product_label",
]
