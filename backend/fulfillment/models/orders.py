from __future__ import annotations

from enum import Enum

from ..extensions import db
from ..time_utils import to_utc_z


class OrderStatus(str, Enum):
    """Closed set of order states. PENDING is initial; the others are terminal."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING


class Order(db.Model):
    """
    Customer order placed by the storefront checkout.

    The fulfillment engine only ever changes ``status`` and ``decided_at``.
    Status moves at most once: pending -> accepted or pending -> declined.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("number", name="uq_orders_number"),
        db.Index("ix_orders_status_created", "status", "created_at"),
    )

    id = db.Column(db.String(64), primary_key=True)
    number = db.Column(db.Integer, nullable=False)
    user_id = db.Column(db.String(128), nullable=True, index=True)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(
        db.Enum(
            OrderStatus,
            name="order_status",
            native_enum=False,
            length=16,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=OrderStatus.PENDING,
    )

    # Client-side order date; created_at is system time
    placed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "number": self.number,
            "user_id": self.user_id,
            "total_cents": self.total_cents,
            "status": self.status.value,
            "placed_at": to_utc_z(self.placed_at),
            "created_at": to_utc_z(self.created_at),
            "decided_at": to_utc_z(self.decided_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """Line item on an order. ``selected_size`` is the structured size variant."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.UniqueConstraint("order_id", "position", name="uq_order_items_order_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(64), db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=True)
    price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    selected_size = db.Column(db.String(64), nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "price_cents": self.price_cents,
            "quantity": self.quantity,
            "selected_size": self.selected_size,
            "image_url": self.image_url,
        }


class Counter(db.Model):
    """Named monotonic sequence (e.g. order numbers)."""
    __tablename__ = "counters"

    name = db.Column(db.String(32), primary_key=True)
    last_value = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
