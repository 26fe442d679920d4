# Overview: Order intake, acceptance, and decline pipelines.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import OrderNotFoundError, ValidationError
from ..extensions import db
from ..models import Counter, Order, OrderItem, OrderStatus
from ..time_utils import parse_iso_datetime, to_utc_z, utcnow
from .. import validation
from . import balance_service, stock_service
from .concurrency import lock_for_update, run_in_transaction
from .line_items import normalize_line_item, resolve_product_and_size
from .sale_recorder import SaleFacts, record_sale
"""
Order lifecycle (authoritative)

- pending -> accepted  (stock, sales, ledger lines and balance applied once)
- pending -> declined  (no stock or ledger effect)
- accepted / declined are terminal. Accepting or declining a decided order
  returns its current state and changes nothing.
- Acceptance is one DB transaction: the order is re-read inside it, every
  product is read before the first write, and any failing line aborts the
  whole order.
"""

ORDER_COUNTER = "orders"
ORDER_ID_PREFIX = "ord_"


@dataclass
class DecisionResult:
    order_id: str
    status: OrderStatus
    decided_at: datetime | None
    applied: bool
    recovered: bool = False
    sales: list[dict] = field(default_factory=list)
    total_income_cents: int = 0
    total_profit_cents: int = 0

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "status": self.status.value,
            "decided_at": to_utc_z(self.decided_at),
            "applied": self.applied,
            "recovered": self.recovered,
            "sales": self.sales,
            "total_income_cents": self.total_income_cents,
            "total_profit_cents": self.total_profit_cents,
        }


# =============================================================================
# Guards
# =============================================================================


def _load_order(order_id: str, *, lock: bool = False) -> Order:
    query = db.session.query(Order).filter_by(id=order_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise OrderNotFoundError(f"Order {order_id} not found", details={"order_id": order_id})
    return order


def _already_decided(order: Order) -> DecisionResult | None:
    """Terminal-state guard shared by accept and decline."""
    if order.status.is_terminal:
        return DecisionResult(
            order_id=order.id,
            status=order.status,
            decided_at=order.decided_at,
            applied=False,
        )
    return None


def _mark_decided(order: Order, status: OrderStatus) -> datetime:
    now = utcnow()
    order.status = status
    order.decided_at = now
    return now


# =============================================================================
# Intake
# =============================================================================


def next_order_number() -> int:
    """
    Atomically allocate the next order number (starting from 1).

    Must run inside the caller's transaction.
    """
    stmt = (
        update(Counter)
        .where(Counter.name == ORDER_COUNTER)
        .values(last_value=Counter.last_value + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        try:
            with db.session.begin_nested():
                db.session.add(Counter(name=ORDER_COUNTER, last_value=1))
            return 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise

    return (
        db.session.query(Counter.last_value)
        .filter(Counter.name == ORDER_COUNTER)
        .scalar()
    )


def create_order(
    items: Iterable[Mapping[str, Any]] | None,
    *,
    user_id: str | None = None,
    total_cents: Any = None,
    placed_at: str | datetime | None = None,
) -> Order:
    """
    Persist a checkout as a pending order. Stock and balances are untouched
    until the order is accepted.
    """
    if not items or isinstance(items, (str, bytes, Mapping)):
        raise ValidationError("Order must contain at least one item")

    line_items = [normalize_line_item(raw, position=i) for i, raw in enumerate(items)]
    if not line_items:
        raise ValidationError("Order must contain at least one item")

    if total_cents is None:
        total = sum(item.price_cents * item.quantity for item in line_items)
    else:
        total = validation.non_negative_int(total_cents, "total_cents")

    if isinstance(placed_at, str):
        try:
            placed_dt = parse_iso_datetime(placed_at)
        except ValueError:
            raise ValidationError("placed_at must be an ISO-8601 datetime")
    else:
        placed_dt = placed_at

    def _op() -> str:
        number = next_order_number()
        order = Order(
            id=f"{ORDER_ID_PREFIX}{number}",
            number=number,
            user_id=validation.optional_str(user_id),
            total_cents=total,
            status=OrderStatus.PENDING,
            placed_at=placed_dt or utcnow(),
        )
        for position, item in enumerate(line_items):
            order.items.append(
                OrderItem(
                    position=position,
                    product_id=item.product_id,
                    name=item.name,
                    price_cents=item.price_cents,
                    quantity=item.quantity,
                    selected_size=item.selected_size,
                    image_url=item.image_url,
                )
            )
        db.session.add(order)
        db.session.flush()
        return order.id

    order_id = run_in_transaction(_op)
    current_app.logger.info("Order %s created with %d items", order_id, len(line_items))
    return get_order(order_id)


def get_order(order_id: str) -> Order:
    return _load_order(order_id)


def list_orders(*, status: str | OrderStatus | None = None, limit: int = 100) -> list[Order]:
    """Orders newest first, optionally only one status."""
    limit = max(1, min(int(limit), 500))
    query = db.session.query(Order)
    if status:
        try:
            status = OrderStatus(status)
        except ValueError:
            raise ValidationError(
                f"Unknown order status: {status}",
                details={"allowed": [member.value for member in OrderStatus]},
            )
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.number.desc()).limit(limit).all()


# =============================================================================
# Acceptance
# =============================================================================


def _item_product_and_size(item: OrderItem) -> tuple[str, str | None]:
    if item.selected_size is not None:
        return item.product_id, item.selected_size
    pid, size = resolve_product_and_size(
        raw_id=item.product_id,
        product_id=None,
        name=item.name,
    )
    return pid or item.product_id, size


def _accept_locked(order_id: str) -> DecisionResult:
    order = _load_order(order_id, lock=True)

    decided = _already_decided(order)
    if decided is not None:
        return decided

    # Recovery: a previous attempt wrote ledger lines but not the status
    if balance_service.has_ledger_lines_for_order(order.id):
        current_app.logger.warning(
            "Order %s is pending but already has ledger lines; marking accepted without re-applying",
            order.id,
        )
        decided_at = _mark_decided(order, OrderStatus.ACCEPTED)
        return DecisionResult(
            order_id=order.id,
            status=OrderStatus.ACCEPTED,
            decided_at=decided_at,
            applied=False,
            recovered=True,
        )

    items = list(order.items)
    if not items:
        raise ValidationError("Order has no items", details={"order_id": order.id})

    # Read phase: every product before any write
    resolved = []
    products = {}
    for item in items:
        product_id, size = _item_product_and_size(item)
        if product_id not in products:
            products[product_id] = stock_service.require_product(product_id)
        resolved.append((item, product_id, size))

    # Validation phase: build plans, no writes yet
    plans: dict[str, stock_service.StockPlan] = {}
    facts_list: list[SaleFacts] = []
    for item, product_id, size in resolved:
        product = products[product_id]
        quantity = validation.quantity(item.quantity)
        price = validation.price_cents(item.price_cents)
        stock_service.plan_decrement(plans, product, quantity, size)
        facts_list.append(
            SaleFacts.from_product(
                product,
                quantity=quantity,
                selling_price_cents=price,
                size=stock_service.tracked_size(product, size),
                order_id=order.id,
            )
        )

    # Write phase: stock, sales, ledger lines, balance, status
    for plan in plans.values():
        stock_service.apply_plan(plan)

    sales = [record_sale(facts) for facts in facts_list]
    for facts, sale in zip(facts_list, sales):
        balance_service.post_ledger_line(facts, sale)

    total_income = sum(facts.total_income_cents for facts in facts_list)
    total_profit = sum(facts.total_profit_cents for facts in facts_list)
    balance_service.increment_balance(total_income, total_profit)

    decided_at = _mark_decided(order, OrderStatus.ACCEPTED)
    return DecisionResult(
        order_id=order.id,
        status=OrderStatus.ACCEPTED,
        decided_at=decided_at,
        applied=True,
        sales=[
            {"sale_id": sale.id, "product_id": sale.product_id, "transaction_hash": sale.transaction_hash}
            for sale in sales
        ],
        total_income_cents=total_income,
        total_profit_cents=total_profit,
    )


def accept_order(order_id: str) -> DecisionResult:
    """
    Accept a pending order: decrement stock, record one sale and one ledger
    line per item, and add the order's income/profit to the balance.

    Idempotent: a decided order is returned as-is without any writes.
    """
    order_id = validation.required_str(order_id, "order_id")

    # Fast path; the check inside the transaction is authoritative
    decided = _already_decided(_load_order(order_id))
    if decided is not None:
        return decided

    result = run_in_transaction(lambda: _accept_locked(order_id))
    if result.applied:
        current_app.logger.info(
            "Order %s accepted: %d sales, income=%d profit=%d",
            result.order_id,
            len(result.sales),
            result.total_income_cents,
            result.total_profit_cents,
        )
    return result


# =============================================================================
# Decline
# =============================================================================


def decline_order(order_id: str) -> DecisionResult:
    """
    Decline a pending order with a single conditional update.

    A decided order (accepted or declined) is returned unchanged.
    """
    order_id = validation.required_str(order_id, "order_id")

    def _op() -> DecisionResult:
        now = utcnow()
        stmt = (
            update(Order)
            .where(Order.id == order_id, Order.status == OrderStatus.PENDING)
            .values(
                status=OrderStatus.DECLINED,
                decided_at=now,
                version_id=Order.version_id + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = db.session.execute(stmt)
        if result.rowcount:
            return DecisionResult(
                order_id=order_id,
                status=OrderStatus.DECLINED,
                decided_at=now,
                applied=True,
            )

        order = _load_order(order_id)
        return _already_decided(order) or DecisionResult(
            order_id=order.id,
            status=order.status,
            decided_at=order.decided_at,
            applied=False,
        )

    result = run_in_transaction(_op)
    if result.applied:
        current_app.logger.info("Order %s declined", order_id)
    return result
