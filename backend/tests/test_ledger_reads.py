"""
Balance ledger read and reconcile tests.
"""

import pytest

from fulfillment.errors import SaleNotFoundError, TransactionNotFoundError
from fulfillment.extensions import db
from fulfillment.models import Balance, BALANCE_ID
from fulfillment.services import balance_service, direct_sale_service, order_service, revert_service

from conftest import place_order


class TestBalance:

    def test_zero_balance_before_first_sale(self, db_session):
        balance = balance_service.get_balance()
        assert balance["total_income_cents"] == 0
        assert balance["real_profit_cents"] == 0

    def test_ensure_balance_is_idempotent(self, db_session):
        balance_service.ensure_balance()
        balance_service.ensure_balance()
        db.session.commit()

        assert db.session.query(Balance).count() == 1

    def test_increment_creates_then_adds(self, db_session):
        balance_service.increment_balance(1000, 400)
        balance_service.increment_balance(-250, -100)
        db.session.commit()

        balance = db.session.get(Balance, BALANCE_ID)
        db.session.refresh(balance)
        assert (balance.total_income_cents, balance.real_profit_cents) == (750, 300)


class TestTransactionReads:

    def test_get_transaction_includes_sale(self, product):
        receipt = direct_sale_service.record_direct_sale("p1", 2000, 1)

        detail = balance_service.get_transaction(receipt.transaction_hash)

        assert detail["transaction"]["transaction_hash"] == receipt.transaction_hash
        assert detail["sale"]["id"] == receipt.sale_id

    def test_get_unknown_transaction(self, db_session):
        with pytest.raises(TransactionNotFoundError):
            balance_service.get_transaction("hsmissing-_-p1")

    def test_list_hides_reverted_lines_by_default(self, product):
        kept = direct_sale_service.record_direct_sale("p1", 2000, 1)
        reverted = direct_sale_service.record_direct_sale("p1", 2000, 1)
        revert_service.revert_transaction(reverted.transaction_hash)

        visible = {line.transaction_hash for line in balance_service.list_transactions()}
        everything = {line.transaction_hash for line in balance_service.list_transactions(include_deleted=True)}

        assert visible == {kept.transaction_hash}
        assert everything == {kept.transaction_hash, reverted.transaction_hash}

    def test_list_filters_by_order(self, product):
        order = place_order({"product_id": "p1", "price_cents": 2000, "quantity": 1})
        order_service.accept_order(order.id)
        direct_sale_service.record_direct_sale("p1", 2000, 1)

        lines = balance_service.list_transactions(order_id=order.id)

        assert [line.order_id for line in lines] == [order.id]

    def test_list_limit_is_clamped(self, product):
        for _ in range(3):
            direct_sale_service.record_direct_sale("p1", 2000, 1)

        assert len(balance_service.list_transactions(limit=0)) == 1
        assert len(balance_service.list_transactions(limit=2)) == 2


class TestReconcile:

    def test_consistent_after_mixed_operations(self, product, second_product):
        order = place_order(
            {"product_id": "p1", "price_cents": 2000, "quantity": 2},
            {"product_id": "p2", "price_cents": 1500, "quantity": 1},
        )
        result = order_service.accept_order(order.id)
        direct_sale_service.record_direct_sale("p1", 1800, 1)
        revert_service.revert_transaction(result.sales[0]["transaction_hash"])

        report = balance_service.reconcile()

        assert report.is_consistent
        assert report.balance_income_cents == report.ledger_income_cents == 1500 + 1800
        assert report.balance_profit_cents == report.ledger_profit_cents == 800 + 1300

    def test_detects_drifted_balance(self, product):
        direct_sale_service.record_direct_sale("p1", 2000, 1)
        balance_service.increment_balance(1, 0)
        db.session.commit()

        report = balance_service.reconcile()

        assert not report.totals_match
        assert not report.is_consistent
        assert report.to_dict()["consistent"] is False


class TestSaleReads:

    def test_list_sales_for_one_product_newest_first(self, product, second_product):
        first = direct_sale_service.record_direct_sale("p1", 2000, 1)
        direct_sale_service.record_direct_sale("p2", 1500, 1)
        second = direct_sale_service.record_direct_sale("p1", 1900, 2)

        history = balance_service.list_sales("p1")

        assert [sale.transaction_hash for sale in history] == [second.transaction_hash, first.transaction_hash]

    def test_list_sales_hides_reverted_by_default(self, product):
        kept = direct_sale_service.record_direct_sale("p1", 2000, 1)
        reverted = direct_sale_service.record_direct_sale("p1", 2000, 1)
        revert_service.revert_transaction(reverted.transaction_hash)

        assert [s.id for s in balance_service.list_sales("p1")] == [kept.sale_id]
        assert len(balance_service.list_sales("p1", include_deleted=True)) == 2

    def test_list_sales_unknown_product_is_empty(self, db_session):
        assert balance_service.list_sales("ghost") == []

    def test_get_sale_includes_ledger_line(self, product):
        receipt = direct_sale_service.record_direct_sale("p1", 2000, 3)

        detail = balance_service.get_sale(receipt.sale_id)

        assert detail["sale"]["total_income_cents"] == 6000
        assert detail["transaction"]["sale_id"] == receipt.sale_id

    def test_get_unknown_sale(self, db_session):
        with pytest.raises(SaleNotFoundError):
            balance_service.get_sale(424242)
