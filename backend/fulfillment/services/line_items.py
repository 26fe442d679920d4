# Overview: Normalizes raw checkout line items into a product id plus a structured size.

"""
Older storefront clients encode the size variant inside other fields:

- composite item ids: ``"<product_id>__<size>"``
- display names ending in ``"(<size>)"``, e.g. ``"Sneaker (42)"``

New clients send ``selected_size`` directly. The parsing below exists to
migrate the legacy shapes at intake time; acceptance only re-applies it to
stored items that still have no structured size.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from .. import validation
from ..errors import ValidationError


COMPOSITE_SEPARATOR = "__"
_NAME_SIZE_RE = re.compile(r"\(([^)]+)\)$")


@dataclass(frozen=True)
class LineItem:
    product_id: str
    name: str | None
    price_cents: int
    quantity: int
    selected_size: str | None = None
    image_url: str | None = None


def split_composite_id(raw_id: str | None) -> tuple[str | None, str | None]:
    if not raw_id:
        return None, None
    if COMPOSITE_SEPARATOR in raw_id:
        product_id, size = raw_id.split(COMPOSITE_SEPARATOR, 1)
        return product_id or None, size or None
    return raw_id, None


def size_from_name(name: str | None) -> str | None:
    if not name:
        return None
    match = _NAME_SIZE_RE.search(name.strip())
    return match.group(1).strip() if match else None


def canonical_size(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def resolve_product_and_size(
    *,
    raw_id: str | None,
    product_id: str | None,
    name: str | None,
    selected_size: Any = None,
) -> tuple[str | None, str | None]:
    """
    Precedence for the size: explicit selected_size, composite id suffix,
    trailing parenthetical in the name. The product id is the composite id
    prefix, else ``product_id``, else the raw id.
    """
    composite_pid, composite_size = (None, None)
    if raw_id and COMPOSITE_SEPARATOR in raw_id:
        composite_pid, composite_size = split_composite_id(raw_id)

    pid = composite_pid or validation.optional_str(product_id) or validation.optional_str(raw_id)
    # product ids stored by older clients may themselves be composite
    if pid and COMPOSITE_SEPARATOR in pid:
        pid, embedded_size = split_composite_id(pid)
        composite_size = composite_size or embedded_size

    size = canonical_size(selected_size) or composite_size or size_from_name(name)
    return pid, canonical_size(size)


def normalize_line_item(raw: Mapping[str, Any], *, position: int | None = None) -> LineItem:
    if not isinstance(raw, Mapping):
        raise ValidationError("Each item must be an object", details={"position": position})

    raw_id = validation.optional_str(raw.get("id"))
    name = validation.optional_str(raw.get("name"))
    product_id, size = resolve_product_and_size(
        raw_id=raw_id,
        product_id=raw.get("product_id"),
        name=name,
        selected_size=raw.get("selected_size"),
    )
    if not product_id:
        raise ValidationError("Item is missing product_id", details={"position": position})

    return LineItem(
        product_id=product_id,
        name=name,
        price_cents=validation.price_cents(raw.get("price_cents"), "price_cents"),
        quantity=validation.quantity(raw.get("quantity")),
        selected_size=size,
        image_url=validation.optional_str(raw.get("image_url")),
    )
