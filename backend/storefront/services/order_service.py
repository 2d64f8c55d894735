# Overview: Service-layer operations for orders; checkout, payment and status changes.

"""
Order Service - checkout and order lifecycle

Checkout turns a cart into a pending order in ONE transaction:
lock cart lines -> lock products (id order) -> validate stock -> decrement
stock -> create order + items with snapshotted prices -> clear cart -> commit.
Any error before commit rolls back every step; there is no compensation path.

Lock order is always order/cart rows first, then product rows by id, so
checkout, cancellation and stock adjustment never wait on each other in a
cycle.
"""

from __future__ import annotations

from sqlalchemy.orm import selectinload

from ..errors import EmptyCart, InvalidInput, InvalidQuantity, NotFound
from ..extensions import db
from ..models import MAX_AMOUNT, Order, OrderItem
from ..response import Pagination
from ..time_utils import utcnow
from . import cart_service, inventory_service
from .audit_service import log_audit
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .order_state import OrderStatus, PaymentStatus, ensure_transition, parse_status
from .token_service import Identity


SORT_ORDERS = {"asc", "desc"}


def build_invoice_number(order_id: str, when) -> str:
    return f"INV-{when.strftime('%Y%m%d')}-{order_id[:8].upper()}"


def _load_order(order_id: str, identity: Identity | None = None, *, lock: bool = False) -> Order:
    """
    Fetch an order the caller may see.

    Another user's order is reported as NotFound, never Forbidden.
    Admins (or identity=None for internal callers) see every order.
    """
    query = db.session.query(Order).filter(Order.id == order_id)
    if lock:
        query = lock_for_update(query.populate_existing())
    order = query.first()
    if not order:
        raise NotFound("Order not found")
    if identity is not None and not identity.is_admin and order.user_id != identity.user_id:
        raise NotFound("Order not found")
    return order


def _mark_paid(order: Order, now) -> None:
    order.status = OrderStatus.PAID.value
    order.payment_status = PaymentStatus.PAID.value
    if not order.invoice_number:
        order.invoice_number = build_invoice_number(order.id, now)
    order.paid_at = now
    order.updated_at = now


def checkout(user_id: str) -> Order:
    """
    Convert the user's cart into a pending order.

    Raises EmptyCart, InsufficientStock (naming every short product), or
    Conflict when locks could not be obtained in time.
    """
    def _op():
        begin_write_transaction()

        lines = cart_service.get_cart_lines(user_id, lock=True)
        if not lines:
            raise EmptyCart()

        requested: dict[str, int] = {}
        for line in lines:
            if line.quantity < 1:
                raise InvalidQuantity("Cart has invalid quantity", details={"product_id": line.product_id})
            requested[line.product_id] = line.quantity

        products = inventory_service._reserve_stock(requested)

        now = utcnow()
        total_amount = sum(products[pid].price * qty for pid, qty in requested.items())
        if total_amount > MAX_AMOUNT:
            raise InvalidQuantity("Order total is too large", details={"total_amount": total_amount})

        order = Order(
            user_id=user_id,
            total_amount=total_amount,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.UNPAID.value,
            created_at=now,
            updated_at=now,
        )
        db.session.add(order)

        for product_id in sorted(requested):
            order.items.append(OrderItem(
                product_id=product_id,
                quantity=requested[product_id],
                price=products[product_id].price,
                created_at=now,
            ))

        cart_service.clear_cart(user_id)
        db.session.commit()
        return order

    order = run_with_retry(_op)
    log_audit(user_id, "checkout", "orders", {"order_id": order.id, "total_amount": order.total_amount})
    return order


def pay_order(order_id: str, identity: Identity) -> Order:
    """
    Record payment for a pending order.

    Replays are harmless: an order whose payment is already recorded is
    returned unchanged (duplicate webhook delivery). Any other non-pending
    status raises InvalidTransition.
    """
    def _op():
        begin_write_transaction()
        order = _load_order(order_id, identity, lock=True)

        if order.payment_status == PaymentStatus.PAID.value:
            db.session.commit()
            return order, False

        ensure_transition(order.status, OrderStatus.PAID)
        _mark_paid(order, utcnow())
        db.session.commit()
        return order, True

    order, changed = run_with_retry(_op)
    if changed:
        log_audit(identity.user_id, "order_paid", "orders", {"order_id": order.id, "invoice_number": order.invoice_number})
    return order


def set_status(order_id: str, new_status, actor_user_id: str | None = None) -> Order:
    """
    Admin status change validated against the state machine.

    pending -> cancelled returns the reserved stock in the same transaction.
    pending -> paid records payment metadata exactly like pay_order.
    paid -> refunded marks the payment refunded; stock is not returned.
    """
    target = parse_status(new_status)

    def _op():
        begin_write_transaction()
        order = _load_order(order_id, lock=True)
        ensure_transition(order.status, target)

        now = utcnow()
        if target is OrderStatus.CANCELLED:
            returned: dict[str, int] = {}
            for item in order.items:
                returned[item.product_id] = returned.get(item.product_id, 0) + item.quantity
            inventory_service._restore_stock(returned)
        elif target is OrderStatus.PAID:
            _mark_paid(order, now)
        elif target is OrderStatus.REFUNDED:
            order.payment_status = PaymentStatus.REFUNDED.value

        order.status = target.value
        order.updated_at = now
        db.session.commit()
        return order

    order = run_with_retry(_op)
    log_audit(actor_user_id, "order_status_update", "orders", {"order_id": order.id, "status": order.status})
    return order


def get_order(order_id: str, identity: Identity) -> Order:
    return _load_order(order_id, identity)


def _order_list_query(status, sort_order):
    query = db.session.query(Order)
    if status:
        query = query.filter(Order.status == parse_status(status).value)

    sort_order = (sort_order or "desc").lower()
    if sort_order not in SORT_ORDERS:
        raise InvalidInput("sort_order must be 'asc' or 'desc'")
    ordering = Order.created_at.asc() if sort_order == "asc" else Order.created_at.desc()
    return query, ordering


def _paginate(query, ordering, pagination: Pagination) -> tuple[list[Order], int]:
    total = query.count()
    items = (
        query.options(selectinload(Order.items))
        .order_by(ordering, Order.id)
        .limit(pagination.per_page)
        .offset(pagination.offset)
        .all()
    )
    return items, total


def list_orders(user_id: str, pagination: Pagination, status: str | None = None, sort_order: str | None = None):
    query, ordering = _order_list_query(status, sort_order)
    return _paginate(query.filter(Order.user_id == user_id), ordering, pagination)


def list_all_orders(pagination: Pagination, status: str | None = None, sort_order: str | None = None):
    query, ordering = _order_list_query(status, sort_order)
    return _paginate(query, ordering, pagination)
