# Overview: Sale recorder; creates the immutable per-product sale row and its transaction hash.

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass

from ..extensions import db
from ..models import Product, Sale


HASH_PREFIX = "hs"
HASH_SEPARATOR = "-_-"
HASH_RANDOM_LENGTH = 20
_HASH_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class SaleFacts:
    """Validated facts for one sold line item, shared by the sale and ledger rows."""

    product_id: str
    product_name: str | None
    product_price_cents: int | None
    quantity: int
    size: str | None
    selling_price_cents: int
    purchase_price_cents: int
    order_id: str | None
    original_price_cents: int | None = None
    discount_percentage: float | None = None
    discounted_price_cents: int | None = None

    @property
    def total_income_cents(self) -> int:
        return self.selling_price_cents * self.quantity

    @property
    def total_profit_cents(self) -> int:
        return self.total_income_cents - self.purchase_price_cents * self.quantity

    @classmethod
    def from_product(
        cls,
        product: Product,
        *,
        quantity: int,
        selling_price_cents: int,
        size: str | None,
        order_id: str | None,
        product_name: str | None = None,
    ) -> "SaleFacts":
        return cls(
            product_id=product.id,
            product_name=product_name or product.name,
            product_price_cents=product.price_cents,
            quantity=quantity,
            size=size,
            selling_price_cents=selling_price_cents,
            purchase_price_cents=int(product.purchase_price_cents or 0),
            order_id=order_id,
            original_price_cents=product.original_price_cents,
            discount_percentage=product.discount_percentage,
            discounted_price_cents=product.discounted_price_cents,
        )


def generate_transaction_hash(product_id: str) -> str:
    """
    Random token namespaced by product id: ``hs<20 base36 chars>-_-<product_id>``.

    20 characters of base36 give ~103 bits of entropy; uniqueness is also
    enforced by a unique index on both sales and balance_transactions.
    """
    random_part = "".join(secrets.choice(_HASH_ALPHABET) for _ in range(HASH_RANDOM_LENGTH))
    return f"{HASH_PREFIX}{random_part}{HASH_SEPARATOR}{product_id}"


def record_sale(facts: SaleFacts) -> Sale:
    """Add the sale row and flush so its id is available for the ledger line."""
    sale = Sale(
        product_id=facts.product_id,
        product_name=facts.product_name,
        product_price_cents=facts.product_price_cents,
        quantity=facts.quantity,
        size=facts.size,
        selling_price_cents=facts.selling_price_cents,
        purchase_price_cents=facts.purchase_price_cents,
        total_income_cents=facts.total_income_cents,
        total_profit_cents=facts.total_profit_cents,
        original_price_cents=facts.original_price_cents,
        discount_percentage=facts.discount_percentage,
        discounted_price_cents=facts.discounted_price_cents,
        transaction_hash=generate_transaction_hash(facts.product_id),
        order_id=facts.order_id,
        deleted=False,
    )
    db.session.add(sale)
    db.session.flush()  # ensures sale.id is assigned without committing
    return sale
