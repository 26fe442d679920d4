# Overview: Stock adjuster; validates and applies product stock deltas inside a pipeline transaction.

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InsufficientStockError, ProductNotFoundError, SizeNotFoundError
from ..extensions import db
from ..models import Product
from .. import validation
from .concurrency import lock_for_update
"""
Stock invariants (authoritative)

- Product.quantity and every size bucket quantity stay >= 0.
- A sale against a size bucket decrements BOTH the bucket and the global
  quantity, so both must cover the request.
- Several lines for the same product in one transaction share one plan and
  are validated cumulatively against the same snapshot.
- Planning never writes. apply_plan() runs only after every read of the
  transaction is done.
"""


@dataclass
class StockPlan:
    product: Product
    remaining: int
    decrement: int = 0
    # Replacement size list; None means sizes are left untouched
    sizes: list[dict] | None = None


def load_product(product_id: str, *, lock: bool = True) -> Product | None:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def require_product(product_id: str, *, lock: bool = True) -> Product:
    product = load_product(product_id, lock=lock)
    if product is None:
        raise ProductNotFoundError(
            f"Product {product_id} not found",
            details={"product_id": product_id},
        )
    return product


def tracked_size(product: Product, selected_size: str | None) -> str | None:
    """The size a sale draws its stock from; None when the product keeps no buckets."""
    if selected_size is None or not product.size_buckets():
        return None
    return selected_size


def _find_bucket(buckets: list[dict], size: str) -> int:
    for idx, bucket in enumerate(buckets):
        if str(bucket.get("size")) == str(size):
            return idx
    return -1


def plan_decrement(
    plans: dict[str, StockPlan],
    product: Product,
    quantity: int,
    selected_size: str | None = None,
) -> StockPlan:
    """
    Validate a stock request against the product snapshot and fold it into
    the per-product plan. Raises before touching the plan on failure.
    """
    quantity = validation.quantity(quantity)

    plan = plans.get(product.id)
    if plan is None:
        plan = StockPlan(product=product, remaining=int(product.quantity or 0))

    buckets = plan.sizes if plan.sizes is not None else product.size_buckets()
    new_sizes = None

    if selected_size is not None and buckets:
        idx = _find_bucket(buckets, selected_size)
        if idx == -1:
            raise SizeNotFoundError(
                f"Size {selected_size} is not available for {product.name}",
                details={"product_id": product.id, "size": selected_size},
            )
        bucket_qty = int(buckets[idx].get("quantity") or 0)
        if bucket_qty < quantity:
            raise InsufficientStockError(
                f"Not enough stock for {product.name} (size {selected_size})",
                details={
                    "product_id": product.id,
                    "size": selected_size,
                    "requested_quantity": quantity,
                    "on_hand": bucket_qty,
                },
            )
        new_sizes = [dict(bucket) for bucket in buckets]
        new_sizes[idx]["quantity"] = bucket_qty - quantity

    if plan.remaining < quantity:
        raise InsufficientStockError(
            f"Not enough stock for {product.name}",
            details={
                "product_id": product.id,
                "requested_quantity": quantity,
                "on_hand": plan.remaining,
            },
        )

    plan.remaining -= quantity
    plan.decrement += quantity
    if new_sizes is not None:
        plan.sizes = new_sizes
    plans[product.id] = plan
    return plan


def apply_plan(plan: StockPlan) -> None:
    """Stage the planned writes on the product row (flushed at commit)."""
    product = plan.product
    if plan.decrement:
        product.quantity = Product.quantity - plan.decrement
    if plan.sizes is not None:
        product.sizes = plan.sizes


def restore_stock(product: Product, quantity: int, size: str | None = None) -> None:
    """Inverse of a committed decrement. Missing buckets are left as they are."""
    product.quantity = Product.quantity + quantity

    if size is None:
        return
    buckets = product.size_buckets()
    idx = _find_bucket(buckets, size)
    if idx == -1:
        return
    restored = [dict(bucket) for bucket in buckets]
    restored[idx]["quantity"] = int(restored[idx].get("quantity") or 0) + quantity
    product.sizes = restored
