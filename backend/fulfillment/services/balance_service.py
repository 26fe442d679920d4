# Overview: Balance ledger; running totals, append-only transaction lines, and raw ledger reads.

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..errors import SaleNotFoundError, TransactionNotFoundError
from ..extensions import db
from ..models import Balance, BalanceTransaction, BALANCE_ID, Sale
from .concurrency import lock_for_update
from .sale_recorder import SaleFacts
"""
Balance Ledger Invariants (authoritative)

- Balance totals move only through SQL-side increments, in the same DB
  transaction as the sale / ledger line they account for. Concurrent
  increments commute, so this module never reads the balance to write it.
- sum(non-deleted BalanceTransaction.total_income_cents) == Balance.total_income_cents,
  likewise for real_profit_cents.
- Every non-deleted Sale has exactly one non-deleted BalanceTransaction with
  the same transaction_hash.
- Ledger lines are never removed; compensation flips ``deleted``.
"""


def post_ledger_line(facts: SaleFacts, sale: Sale) -> BalanceTransaction:
    """Append the audit copy of a sale. Does not touch the totals."""
    line = BalanceTransaction(
        product_id=facts.product_id,
        product_name=facts.product_name,
        quantity=facts.quantity,
        size=facts.size,
        selling_price_cents=facts.selling_price_cents,
        purchase_price_cents=facts.purchase_price_cents,
        total_income_cents=facts.total_income_cents,
        real_profit_cents=facts.total_profit_cents,
        original_price_cents=facts.original_price_cents,
        discount_percentage=facts.discount_percentage,
        discounted_price_cents=facts.discounted_price_cents,
        sale_id=sale.id,
        transaction_hash=sale.transaction_hash,
        order_id=facts.order_id,
        deleted=False,
    )
    db.session.add(line)
    db.session.flush()
    return line


def increment_balance(income_delta_cents: int, profit_delta_cents: int) -> None:
    """
    Atomically add deltas to the singleton balance, creating it on first use.

    The insert runs in a savepoint so a concurrent first insert (unique key
    violation) only rolls back the savepoint; the increment is then retried
    against the row the other transaction created.
    """
    stmt = (
        update(Balance)
        .where(Balance.id == BALANCE_ID)
        .values(
            total_income_cents=Balance.total_income_cents + income_delta_cents,
            real_profit_cents=Balance.real_profit_cents + profit_delta_cents,
            updated_at=func.now(),
        )
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        return

    try:
        with db.session.begin_nested():
            db.session.add(
                Balance(
                    id=BALANCE_ID,
                    total_income_cents=income_delta_cents,
                    real_profit_cents=profit_delta_cents,
                )
            )
    except IntegrityError:
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise


def ensure_balance() -> Balance:
    """
    Ensure the singleton balance row exists.

    Safe to call repeatedly (idempotent).
    """
    balance = db.session.get(Balance, BALANCE_ID)
    if balance:
        return balance
    balance = Balance(id=BALANCE_ID, total_income_cents=0, real_profit_cents=0)
    db.session.add(balance)
    db.session.flush()
    return balance


def get_balance() -> dict:
    balance = db.session.get(Balance, BALANCE_ID)
    if balance is None:
        return {"total_income_cents": 0, "real_profit_cents": 0, "updated_at": None}
    db.session.refresh(balance)
    return balance.to_dict()


def has_ledger_lines_for_order(order_id: str) -> bool:
    return (
        db.session.query(BalanceTransaction.id)
        .filter(BalanceTransaction.order_id == order_id)
        .first()
        is not None
    )


def find_transaction(transaction_hash: str, *, lock: bool = False) -> BalanceTransaction | None:
    query = db.session.query(BalanceTransaction).filter_by(transaction_hash=transaction_hash)
    if lock:
        query = lock_for_update(query)
    return query.first()


def get_transaction(transaction_hash: str) -> dict:
    """Transaction-detail view: the ledger line plus its sale, if any."""
    line = find_transaction(transaction_hash)
    if line is None:
        raise TransactionNotFoundError(
            "Transaction not found in balance history",
            details={"transaction_hash": transaction_hash},
        )
    sale = db.session.query(Sale).filter_by(transaction_hash=transaction_hash).first()
    return {
        "transaction": line.to_dict(),
        "sale": sale.to_dict() if sale else None,
    }


def list_transactions(
    *,
    include_deleted: bool = False,
    order_id: str | None = None,
    limit: int = 100,
) -> list[BalanceTransaction]:
    limit = max(1, min(int(limit), 500))
    query = db.session.query(BalanceTransaction)
    if not include_deleted:
        query = query.filter(BalanceTransaction.deleted.is_(False))
    if order_id:
        query = query.filter(BalanceTransaction.order_id == order_id)
    return (
        query.order_by(BalanceTransaction.created_at.desc(), BalanceTransaction.id.desc())
        .limit(limit)
        .all()
    )


def list_sales(
    product_id: str,
    *,
    include_deleted: bool = False,
    limit: int = 100,
) -> list[Sale]:
    """Sale history of one product, newest first."""
    limit = max(1, min(int(limit), 500))
    query = db.session.query(Sale).filter(Sale.product_id == product_id)
    if not include_deleted:
        query = query.filter(Sale.deleted.is_(False))
    return query.order_by(Sale.sold_at.desc(), Sale.id.desc()).limit(limit).all()


def get_sale(sale_id: int) -> dict:
    """Sale-detail view: the sale plus its ledger line, if any."""
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise SaleNotFoundError("Sale not found", details={"sale_id": sale_id})
    line = find_transaction(sale.transaction_hash)
    return {
        "sale": sale.to_dict(),
        "transaction": line.to_dict() if line else None,
    }


@dataclass
class ReconcileReport:
    balance_income_cents: int
    balance_profit_cents: int
    ledger_income_cents: int
    ledger_profit_cents: int
    sales_without_ledger_line: list[str] = field(default_factory=list)
    ledger_lines_without_sale: list[str] = field(default_factory=list)

    @property
    def totals_match(self) -> bool:
        return (
            self.balance_income_cents == self.ledger_income_cents
            and self.balance_profit_cents == self.ledger_profit_cents
        )

    @property
    def is_consistent(self) -> bool:
        return (
            self.totals_match
            and not self.sales_without_ledger_line
            and not self.ledger_lines_without_sale
        )

    def to_dict(self) -> dict:
        return {
            "consistent": self.is_consistent,
            "totals_match": self.totals_match,
            "balance": {
                "total_income_cents": self.balance_income_cents,
                "real_profit_cents": self.balance_profit_cents,
            },
            "ledger": {
                "total_income_cents": self.ledger_income_cents,
                "real_profit_cents": self.ledger_profit_cents,
            },
            "sales_without_ledger_line": self.sales_without_ledger_line,
            "ledger_lines_without_sale": self.ledger_lines_without_sale,
        }


def reconcile() -> ReconcileReport:
    """Read-only check of the balance totals and the sale <-> ledger pairing."""
    balance = get_balance()

    income, profit = (
        db.session.query(
            func.coalesce(func.sum(BalanceTransaction.total_income_cents), 0),
            func.coalesce(func.sum(BalanceTransaction.real_profit_cents), 0),
        )
        .filter(BalanceTransaction.deleted.is_(False))
        .one()
    )

    sale_hashes = {
        row[0]
        for row in db.session.query(Sale.transaction_hash).filter(Sale.deleted.is_(False))
    }
    line_hashes = {
        row[0]
        for row in db.session.query(BalanceTransaction.transaction_hash).filter(
            BalanceTransaction.deleted.is_(False)
        )
    }

    return ReconcileReport(
        balance_income_cents=int(balance["total_income_cents"] or 0),
        balance_profit_cents=int(balance["real_profit_cents"] or 0),
        ledger_income_cents=int(income or 0),
        ledger_profit_cents=int(profit or 0),
        sales_without_ledger_line=sorted(sale_hashes - line_hashes),
        ledger_lines_without_sale=sorted(line_hashes - sale_hashes),
    )
