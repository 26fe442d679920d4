# Overview: Direct (manual point-of-sale) sale pipeline for operator-entered sales.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..time_utils import epoch_millis
from .. import validation
from . import balance_service, stock_service
from .concurrency import run_in_transaction
from .sale_recorder import SaleFacts, record_sale


MANUAL_ORDER_PREFIX = "manual_"


@dataclass(frozen=True)
class SaleReceipt:
    sale_id: int
    transaction_hash: str
    product_id: str
    quantity: int
    total_income_cents: int
    total_profit_cents: int

    def to_dict(self) -> dict:
        return {
            "sale_id": self.sale_id,
            "transaction_hash": self.transaction_hash,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "total_income_cents": self.total_income_cents,
            "total_profit_cents": self.total_profit_cents,
        }


def manual_order_marker() -> str:
    return f"{MANUAL_ORDER_PREFIX}{epoch_millis()}"


def record_direct_sale(
    product_id: str,
    selling_price_cents,
    quantity,
    size: str | None = None,
) -> SaleReceipt:
    """
    Sell stock directly without an order document.

    Same guarantees as order acceptance for a single line: stock is checked
    and decremented, and the sale, ledger line and balance increment commit
    together or not at all.
    """
    product_id = validation.required_str(product_id, "product_id")
    price = validation.price_cents(selling_price_cents, "selling_price_cents")
    qty = validation.quantity(quantity)
    size = validation.optional_str(size)

    def _op() -> SaleReceipt:
        product = stock_service.require_product(product_id)

        plans: dict[str, stock_service.StockPlan] = {}
        plan = stock_service.plan_decrement(plans, product, qty, size)
        facts = SaleFacts.from_product(
            product,
            quantity=qty,
            selling_price_cents=price,
            size=stock_service.tracked_size(product, size),
            order_id=manual_order_marker(),
        )

        stock_service.apply_plan(plan)
        sale = record_sale(facts)
        balance_service.post_ledger_line(facts, sale)
        balance_service.increment_balance(facts.total_income_cents, facts.total_profit_cents)

        return SaleReceipt(
            sale_id=sale.id,
            transaction_hash=sale.transaction_hash,
            product_id=product_id,
            quantity=qty,
            total_income_cents=facts.total_income_cents,
            total_profit_cents=facts.total_profit_cents,
        )

    receipt = run_in_transaction(_op)
    current_app.logger.info(
        "Direct sale of %d x %s recorded (%s)",
        receipt.quantity,
        receipt.product_id,
        receipt.transaction_hash,
    )
    return receipt
