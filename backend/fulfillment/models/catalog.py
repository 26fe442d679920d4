from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Product stock and pricing facts read by the fulfillment engine.

    Catalog maintenance (names, images, listing) lives outside this service;
    the engine only validates and mutates ``quantity`` and ``sizes`` inside a
    pipeline transaction.

    STOCK DESIGN:
    - ``quantity`` is global stock and can never go negative (check constraint).
    - ``sizes`` is an optional list of {"size", "quantity"} buckets. The bucket
      sum is NOT required to equal ``quantity``.
    - ``quantity`` is decremented with SQL-side arithmetic; ``sizes`` is
      replaced as a whole after it was read in the same transaction. The
      version_id check rejects the write if another transaction changed the
      row in between.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.Index("ix_products_name", "name"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=True)
    purchase_price_cents = db.Column(db.Integer, nullable=True)

    # Historical pricing display only; copied verbatim into sale records
    original_price_cents = db.Column(db.Integer, nullable=True)
    discount_percentage = db.Column(db.Float, nullable=True)
    discounted_price_cents = db.Column(db.Integer, nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    sizes = db.Column(db.JSON, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id!r} name={self.name!r} quantity={self.quantity}>"

    def size_buckets(self) -> list[dict]:
        return list(self.sizes) if isinstance(self.sizes, list) else []

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price_cents": self.price_cents,
            "purchase_price_cents": self.purchase_price_cents,
            "original_price_cents": self.original_price_cents,
            "discount_percentage": self.discount_percentage,
            "discounted_price_cents": self.discounted_price_cents,
            "quantity": self.quantity,
            "sizes": self.size_buckets(),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
