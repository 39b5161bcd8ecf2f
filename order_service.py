"""
Order handlers

Checkout turns the caller's cart into an order in one transaction: the order,
its items and the emptied cart are committed together or not at all. Payment
runs after that commit and only moves the order to processing/completed or
cancelled/failed; a refused payment never removes the order.

Order items are snapshots. They keep the unit price stored on the cart line,
so later catalog price changes do not affect placed orders.
"""
import secrets
import time
from decimal import Decimal
from typing import List, Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

import models
from cart_service import find_cart
from errors import InvalidOperationError, NotFoundError
from payments import process_payment
from schemas import AuthContext, CreateOrderInput, UpdateOrderStatusInput

logger = structlog.get_logger(__name__)

# status moves are not restricted; this is the intended lifecycle only
ORDER_TRANSITIONS = {
    "pending": ("processing", "cancelled"),
    "processing": ("shipped", "cancelled"),
    "shipped": ("delivered",),
    "delivered": (),
    "cancelled": (),
}


def generate_order_number(user_id: int) -> str:
    millis = int(time.time() * 1000)
    return f"ORD-{millis}{secrets.randbelow(1000):03d}-{user_id}"


def _with_items(query):
    return query.options(
        selectinload(models.Order.items).selectinload(models.OrderItem.product),
        selectinload(models.Order.items).selectinload(models.OrderItem.variation),
    )


def create_order(db: Session, data: CreateOrderInput, ctx: AuthContext) -> models.Order:
    cart = find_cart(db, ctx.user_id)
    if not cart:
        raise NotFoundError("Cart not found")

    cart_items = db.scalars(
        select(models.CartItem)
        .where(models.CartItem.cart_id == cart.id)
        .order_by(models.CartItem.id)
    ).all()
    if not cart_items:
        raise InvalidOperationError("Cart is empty")

    total_amount = sum(
        (Decimal(item.unit_price) * item.quantity for item in cart_items), Decimal("0")
    )

    order = models.Order(
        user_id=ctx.user_id,
        order_number=generate_order_number(ctx.user_id),
        status="pending",
        total_amount=total_amount,
        shipping_address=data.shipping_address,
        billing_address=data.billing_address,
        payment_method=data.payment_method,
        payment_status="pending",
    )
    db.add(order)
    db.flush()

    for item in cart_items:
        db.add(
            models.OrderItem(
                order_id=order.id,
                product_id=item.product_id,
                variation_id=item.variation_id,
                quantity=item.quantity,
                custom_design_text=item.custom_design_text,
                custom_design_url=item.custom_design_url,
                unit_price=item.unit_price,
                total_price=Decimal(item.unit_price) * item.quantity,
            )
        )
    db.execute(delete(models.CartItem).where(models.CartItem.cart_id == cart.id))
    cart.updated_at = models.utcnow()
    db.commit()
    logger.info(
        "order_created",
        order_id=order.id,
        order_number=order.order_number,
        item_count=len(cart_items),
        total_amount=str(total_amount),
    )

    if process_payment(data.payment_method, total_amount):
        order.status = "processing"
        order.payment_status = "completed"
    else:
        order.status = "cancelled"
        order.payment_status = "failed"
    order.updated_at = models.utcnow()
    db.commit()
    logger.info(
        "order_payment_settled",
        order_id=order.id,
        status=order.status,
        payment_status=order.payment_status,
    )
    return order


def get_orders(db: Session, ctx: AuthContext) -> List[models.Order]:
    return db.scalars(
        _with_items(select(models.Order))
        .where(models.Order.user_id == ctx.user_id)
        .order_by(models.Order.created_at.desc(), models.Order.id.desc())
    ).all()


def get_order_by_id(db: Session, order_id: int, ctx: AuthContext) -> Optional[models.Order]:
    """Fetch one order with its items.

    Customers only see their own orders; someone else's order is reported as
    missing rather than forbidden.
    """
    query = _with_items(select(models.Order)).where(models.Order.id == order_id)
    if ctx.role != "admin":
        query = query.where(models.Order.user_id == ctx.user_id)
    return db.scalars(query).first()


def get_all_orders(db: Session) -> List[models.Order]:
    return db.scalars(
        _with_items(select(models.Order)).order_by(
            models.Order.created_at.desc(), models.Order.id.desc()
        )
    ).all()


def update_order_status(db: Session, data: UpdateOrderStatusInput) -> models.Order:
    order = db.get(models.Order, data.order_id)
    if not order:
        raise NotFoundError("Order not found")
    previous = order.status
    if data.status != previous and data.status not in ORDER_TRANSITIONS[previous]:
        logger.warning(
            "order_status_outside_lifecycle",
            order_id=order.id,
            previous=previous,
            status=data.status,
        )
    order.status = data.status
    order.updated_at = models.utcnow()
    db.commit()
    logger.info("order_status_updated", order_id=order.id, previous=previous, status=order.status)
    return order
