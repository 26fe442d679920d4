"""
Compensation (revert) pipeline tests.

Verifies:
- Revert restores stock and balance to their pre-sale values exactly
- A hash can be reverted once; the second call changes nothing
- Missing products and incomplete ledger rows are handled explicitly
"""

import pytest

from fulfillment.errors import (
    AlreadyRevertedError,
    IncompleteTransactionDataError,
    TransactionNotFoundError,
    ValidationError,
)
from fulfillment.extensions import db
from fulfillment.models import BalanceTransaction, Product
from fulfillment.services import balance_service, direct_sale_service, order_service, revert_service

from conftest import balance_totals, ledger_lines, place_order, sales, sizes_of, stock_of


def _accept_single(product_id="p1", price_cents=2000, quantity=3, **extra):
    order = place_order({"product_id": product_id, "price_cents": price_cents, "quantity": quantity, **extra})
    result = order_service.accept_order(order.id)
    return result.sales[0]["transaction_hash"]


class TestRevertTransaction:

    def test_revert_restores_stock_and_balance(self, product):
        direct_sale_service.record_direct_sale("p1", 2000, 3)
        before = (stock_of("p1"), balance_totals())

        tx_hash = _accept_single(quantity=3)
        assert stock_of("p1") == 4

        result = revert_service.revert_transaction(tx_hash, reason="priceIsLow")

        assert result.stock_restored is True
        assert result.sale_marked is True
        assert (stock_of("p1"), balance_totals()) == before

        line = balance_service.find_transaction(tx_hash)
        assert line.deleted is True
        assert line.delete_reason == "priceIsLow"
        assert line.deleted_at is not None

        [sale] = [s for s in sales() if s.transaction_hash == tx_hash]
        assert sale.deleted is True
        assert sale.delete_reason == "priceIsLow"

    def test_revert_of_direct_sale(self, product):
        receipt = direct_sale_service.record_direct_sale("p1", 2000, 2)

        revert_service.revert_transaction(receipt.transaction_hash)

        assert stock_of("p1") == 10
        assert balance_totals() == (0, 0)
        assert balance_service.find_transaction(receipt.transaction_hash).delete_reason == revert_service.DEFAULT_REASON

    def test_second_revert_fails_without_changes(self, product):
        tx_hash = _accept_single(quantity=2)
        revert_service.revert_transaction(tx_hash)
        after_first = (stock_of("p1"), balance_totals())

        with pytest.raises(AlreadyRevertedError) as exc:
            revert_service.revert_transaction(tx_hash)

        assert exc.value.outcome == "already_done"
        assert (stock_of("p1"), balance_totals()) == after_first

    def test_revert_restores_size_bucket(self, sized_product):
        tx_hash = _accept_single("shoe", 8000, 2, selected_size="43")
        assert sizes_of("shoe") == {"42": 2, "43": 2}

        revert_service.revert_transaction(tx_hash)

        assert stock_of("shoe") == 5
        assert sizes_of("shoe") == {"42": 2, "43": 4}

    def test_revert_one_line_of_multi_item_order(self, product, second_product):
        order = place_order(
            {"product_id": "p1", "price_cents": 2000, "quantity": 1},
            {"product_id": "p2", "price_cents": 1500, "quantity": 1},
        )
        result = order_service.accept_order(order.id)
        p2_hash = next(s["transaction_hash"] for s in result.sales if s["product_id"] == "p2")

        revert_service.revert_transaction(p2_hash)

        assert stock_of("p1") == 9
        assert stock_of("p2") == 2
        assert balance_totals() == (2000, 1500)
        assert len(ledger_lines(include_deleted=False)) == 1
        assert balance_service.reconcile().is_consistent

    def test_missing_product_still_fixes_ledger(self, product):
        tx_hash = _accept_single(quantity=1)
        db.session.delete(db.session.get(Product, "p1"))
        db.session.commit()

        result = revert_service.revert_transaction(tx_hash)

        assert result.stock_restored is False
        assert balance_totals() == (0, 0)
        assert balance_service.find_transaction(tx_hash).deleted is True

    def test_unknown_hash(self, db_session):
        with pytest.raises(TransactionNotFoundError):
            revert_service.revert_transaction("hsnothing-_-p1")

    def test_blank_hash(self, db_session):
        with pytest.raises(ValidationError):
            revert_service.revert_transaction("  ")

    @pytest.mark.parametrize("missing", ["product_id", "sale_id", "quantity", "total_income_cents", "real_profit_cents"])
    def test_incomplete_ledger_row(self, product, missing):
        tx_hash = _accept_single(quantity=1)
        line = balance_service.find_transaction(tx_hash)
        setattr(line, missing, None)
        db.session.commit()
        before = (stock_of("p1"), balance_totals())

        with pytest.raises(IncompleteTransactionDataError) as exc:
            revert_service.revert_transaction(tx_hash)

        assert missing in exc.value.details["missing"]
        assert (stock_of("p1"), balance_totals()) == before
        assert db.session.get(BalanceTransaction, line.id).deleted is False
