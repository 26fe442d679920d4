"""
Direct sale pipeline tests.

Verifies:
- Stock, sale, ledger line and balance move together
- Failures leave no partial writes
- Transaction hashes are unique and namespaced by product
"""

import pytest

from fulfillment.errors import InsufficientStockError, ProductNotFoundError, SizeNotFoundError, ValidationError
from fulfillment.services import balance_service, direct_sale_service
from fulfillment.services.sale_recorder import HASH_SEPARATOR, generate_transaction_hash

from conftest import balance_totals, ledger_lines, make_product, sales, sizes_of, stock_of


class TestRecordDirectSale:

    def test_sale_updates_stock_and_balance(self, product):
        receipt = direct_sale_service.record_direct_sale("p1", 2000, 3)

        assert stock_of("p1") == 7
        assert receipt.total_income_cents == 6000
        assert receipt.total_profit_cents == 4500
        assert balance_totals() == (6000, 4500)

        [sale] = sales()
        assert sale.total_income_cents == 6000
        assert sale.total_profit_cents == 4500
        assert sale.purchase_price_cents == 500
        assert sale.transaction_hash == receipt.transaction_hash
        assert sale.order_id.startswith(direct_sale_service.MANUAL_ORDER_PREFIX)

        [line] = ledger_lines()
        assert line.sale_id == sale.id
        assert line.transaction_hash == sale.transaction_hash
        assert line.total_income_cents == 6000
        assert line.real_profit_cents == 4500
        assert line.deleted is False

    def test_sale_below_cost_records_negative_profit(self, product):
        receipt = direct_sale_service.record_direct_sale("p1", 300, 2)

        assert receipt.total_income_cents == 600
        assert receipt.total_profit_cents == -400
        assert balance_totals() == (600, -400)

    def test_sale_copies_pricing_history(self, db_session):
        make_product(
            db_session,
            "promo",
            original_price_cents=3000,
            discount_percentage=20.0,
            discounted_price_cents=2400,
        )
        direct_sale_service.record_direct_sale("promo", 2400, 1)

        [sale] = sales()
        assert sale.original_price_cents == 3000
        assert sale.discount_percentage == 20.0
        assert sale.discounted_price_cents == 2400

    def test_insufficient_stock_writes_nothing(self, product):
        with pytest.raises(InsufficientStockError):
            direct_sale_service.record_direct_sale("p1", 2000, 11)

        assert stock_of("p1") == 10
        assert sales() == []
        assert ledger_lines() == []
        assert balance_totals() == (0, 0)

    def test_missing_product(self, db_session):
        with pytest.raises(ProductNotFoundError):
            direct_sale_service.record_direct_sale("ghost", 2000, 1)
        assert sales() == []

    @pytest.mark.parametrize(
        "price,quantity",
        [(0, 1), (-100, 1), (2000, 0), (2000, -1), ("x", 1), (2000, 2.5), ("²", 1), (2000, "²"), ("1e3", 1), ("１２", 1)],
    )
    def test_rejects_invalid_input(self, product, price, quantity):
        with pytest.raises(ValidationError):
            direct_sale_service.record_direct_sale("p1", price, quantity)
        assert stock_of("p1") == 10

    def test_sized_sale(self, sized_product):
        direct_sale_service.record_direct_sale("shoe", 8000, 1, size="43")

        assert stock_of("shoe") == 4
        assert sizes_of("shoe") == {"42": 2, "43": 3}
        [sale] = sales()
        assert sale.size == "43"

    def test_size_on_unsized_product_is_not_recorded(self, product):
        direct_sale_service.record_direct_sale("p1", 2000, 1, size="M")

        assert stock_of("p1") == 9
        [sale] = sales()
        [line] = ledger_lines()
        assert sale.size is None
        assert line.size is None

    def test_unknown_size_writes_nothing(self, sized_product):
        with pytest.raises(SizeNotFoundError):
            direct_sale_service.record_direct_sale("shoe", 8000, 1, size="40")
        assert stock_of("shoe") == 5
        assert sales() == []

    def test_ledger_consistent_after_several_sales(self, product, second_product):
        direct_sale_service.record_direct_sale("p1", 2000, 1)
        direct_sale_service.record_direct_sale("p2", 1500, 2)
        direct_sale_service.record_direct_sale("p1", 1800, 4)

        report = balance_service.reconcile()
        assert report.is_consistent
        assert report.balance_income_cents == 2000 + 3000 + 7200


class TestTransactionHash:

    def test_hash_format(self):
        tx_hash = generate_transaction_hash("p1")
        random_part, product_id = tx_hash.split(HASH_SEPARATOR)

        assert product_id == "p1"
        assert random_part.startswith("hs")
        assert len(random_part) == 22

    def test_hashes_are_unique(self, product):
        hashes = {direct_sale_service.record_direct_sale("p1", 2000, 1).transaction_hash for _ in range(5)}
        assert len(hashes) == 5
