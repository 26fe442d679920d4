from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


BALANCE_ID = "main"


class Sale(db.Model):
    """
    Immutable record of one fulfilled line item.

    WHY product_id is not a foreign key: sales outlive catalog deletions, and
    a revert must still be able to fix the ledger for a removed product.

    Only the compensation fields (deleted, delete_reason, deleted_at) change
    after creation.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("transaction_hash", name="uq_sales_transaction_hash"),
        db.Index("ix_sales_product_sold_at", "product_id", "sold_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.String(64), nullable=False)
    product_name = db.Column(db.String(255), nullable=True)
    product_price_cents = db.Column(db.Integer, nullable=True)

    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    quantity = db.Column(db.Integer, nullable=False)
    size = db.Column(db.String(64), nullable=True)

    # Cost basis captured at sale time, never recomputed
    selling_price_cents = db.Column(db.Integer, nullable=False)
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)
    total_income_cents = db.Column(db.Integer, nullable=False)
    total_profit_cents = db.Column(db.Integer, nullable=False)

    original_price_cents = db.Column(db.Integer, nullable=True)
    discount_percentage = db.Column(db.Float, nullable=True)
    discounted_price_cents = db.Column(db.Integer, nullable=True)

    transaction_hash = db.Column(db.String(160), nullable=False)
    order_id = db.Column(db.String(64), nullable=True, index=True)

    deleted = db.Column(db.Boolean, nullable=False, default=False)
    delete_reason = db.Column(db.String(255), nullable=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_price_cents": self.product_price_cents,
            "sold_at": to_utc_z(self.sold_at),
            "quantity": self.quantity,
            "size": self.size,
            "selling_price_cents": self.selling_price_cents,
            "purchase_price_cents": self.purchase_price_cents,
            "total_income_cents": self.total_income_cents,
            "total_profit_cents": self.total_profit_cents,
            "original_price_cents": self.original_price_cents,
            "discount_percentage": self.discount_percentage,
            "discounted_price_cents": self.discounted_price_cents,
            "transaction_hash": self.transaction_hash,
            "order_id": self.order_id,
            "deleted": self.deleted,
            "delete_reason": self.delete_reason,
            "deleted_at": to_utc_z(self.deleted_at),
        }


class Balance(db.Model):
    """
    Singleton running totals of all-time income and realized profit.

    Only ever changed with ``UPDATE ... SET col = col + :delta``; never
    overwritten with a value computed in Python.
    """
    __tablename__ = "balances"

    id = db.Column(db.String(16), primary_key=True, default=BALANCE_ID)
    total_income_cents = db.Column(db.BigInteger, nullable=False, default=0)
    real_profit_cents = db.Column(db.BigInteger, nullable=False, default=0)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "total_income_cents": self.total_income_cents,
            "real_profit_cents": self.real_profit_cents,
            "updated_at": to_utc_z(self.updated_at),
        }


class BalanceTransaction(db.Model):
    """
    Append-only ledger line mirroring one Sale.

    Linked to its Sale by ``transaction_hash`` (unique) and ``sale_id``.
    Reverting sets ``deleted``; rows are never removed.
    """
    __tablename__ = "balance_transactions"
    __table_args__ = (
        db.UniqueConstraint("transaction_hash", name="uq_balance_transactions_hash"),
        db.Index("ix_balance_transactions_created", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product_id = db.Column(db.String(64), nullable=True)
    product_name = db.Column(db.String(255), nullable=True)
    quantity = db.Column(db.Integer, nullable=True)
    size = db.Column(db.String(64), nullable=True)

    selling_price_cents = db.Column(db.Integer, nullable=True)
    purchase_price_cents = db.Column(db.Integer, nullable=True)
    total_income_cents = db.Column(db.Integer, nullable=True)
    real_profit_cents = db.Column(db.Integer, nullable=True)

    original_price_cents = db.Column(db.Integer, nullable=True)
    discount_percentage = db.Column(db.Float, nullable=True)
    discounted_price_cents = db.Column(db.Integer, nullable=True)

    sale_id = db.Column(db.Integer, nullable=True)
    transaction_hash = db.Column(db.String(160), nullable=False)
    order_id = db.Column(db.String(64), nullable=True, index=True)

    deleted = db.Column(db.Boolean, nullable=False, default=False)
    delete_reason = db.Column(db.String(255), nullable=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "created_at": to_utc_z(self.created_at),
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "size": self.size,
            "selling_price_cents": self.selling_price_cents,
            "purchase_price_cents": self.purchase_price_cents,
            "total_income_cents": self.total_income_cents,
            "real_profit_cents": self.real_profit_cents,
            "original_price_cents": self.original_price_cents,
            "discount_percentage": self.discount_percentage,
            "discounted_price_cents": self.discounted_price_cents,
            "sale_id": self.sale_id,
            "transaction_hash": self.transaction_hash,
            "order_id": self.order_id,
            "deleted": self.deleted,
            "delete_reason": self.delete_reason,
            "deleted_at": to_utc_z(self.deleted_at),
        }
