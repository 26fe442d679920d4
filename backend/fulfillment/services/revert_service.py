# Overview: Compensation pipeline; reverts one recorded sale and its ledger line.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..errors import (
    AlreadyRevertedError,
    IncompleteTransactionDataError,
    TransactionNotFoundError,
)
from ..extensions import db
from ..models import BalanceTransaction, Sale
from ..time_utils import utcnow
from .. import validation
from . import balance_service, stock_service
from .concurrency import run_in_transaction


DEFAULT_REASON = "N/A"


@dataclass(frozen=True)
class RevertResult:
    transaction_hash: str
    product_id: str
    quantity: int
    stock_restored: bool
    sale_marked: bool

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "transaction_hash": self.transaction_hash,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "stock_restored": self.stock_restored,
            "sale_marked": self.sale_marked,
        }


def _require_revertible(line: BalanceTransaction | None, transaction_hash: str) -> BalanceTransaction:
    if line is None:
        raise TransactionNotFoundError(
            "Transaction not found in balance history",
            details={"transaction_hash": transaction_hash},
        )
    if line.deleted:
        raise AlreadyRevertedError(
            "Transaction has already been reverted",
            details={"transaction_hash": transaction_hash},
        )
    missing = [name for name in ("product_id", "sale_id", "quantity") if not getattr(line, name)]
    missing += [name for name in ("total_income_cents", "real_profit_cents") if getattr(line, name) is None]
    if missing:
        raise IncompleteTransactionDataError(
            "Transaction data is incomplete and cannot be reverted",
            details={"transaction_hash": transaction_hash, "missing": missing},
        )
    return line


def revert_transaction(transaction_hash: str, reason: str | None = None) -> RevertResult:
    """
    Undo one sale: return its stock, subtract it from the balance, and mark
    both the ledger line and the sale as deleted. Valid exactly once per hash.

    A product that no longer exists does not block the revert; the ledger is
    still corrected and stock restoration is skipped.
    """
    transaction_hash = validation.required_str(transaction_hash, "transaction_hash")
    reason = validation.optional_str(reason) or DEFAULT_REASON

    def _op() -> RevertResult:
        # Read phase
        line = _require_revertible(
            balance_service.find_transaction(transaction_hash, lock=True),
            transaction_hash,
        )
        product = stock_service.load_product(line.product_id)
        sale = db.session.get(Sale, line.sale_id)

        # Write phase
        stock_restored = False
        if product is None:
            current_app.logger.warning(
                "Product %s not found while reverting %s; stock will not be updated",
                line.product_id,
                transaction_hash,
            )
        else:
            stock_service.restore_stock(product, line.quantity, line.size)
            stock_restored = True

        balance_service.increment_balance(-line.total_income_cents, -line.real_profit_cents)

        now = utcnow()
        line.deleted = True
        line.delete_reason = reason
        line.deleted_at = now

        sale_marked = False
        if sale is not None:
            sale.deleted = True
            sale.delete_reason = reason
            sale.deleted_at = now
            sale_marked = True

        return RevertResult(
            transaction_hash=transaction_hash,
            product_id=line.product_id,
            quantity=line.quantity,
            stock_restored=stock_restored,
            sale_marked=sale_marked,
        )

    result = run_in_transaction(_op)
    current_app.logger.info(
        "Transaction %s reverted (reason=%s, stock_restored=%s)",
        transaction_hash,
        reason,
        result.stock_restored,
    )
    return result
