"""
Cart handlers

Every user owns at most one cart. It is created on first access and never
deleted; checkout and ``clear_cart`` only remove its items.

Cart lines merge when product, variation and both custom design fields are
equal (null equals null). ``unit_price`` is snapshotted on add and refreshed
on every merge.
"""
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

import models
from errors import InvalidOperationError, NotFoundError
from schemas import AddToCartInput, AuthContext, UpdateCartItemInput

logger = structlog.get_logger(__name__)


def find_cart(db: Session, user_id: int) -> Optional[models.Cart]:
    return db.scalars(select(models.Cart).where(models.Cart.user_id == user_id)).first()


def get_or_create_cart(db: Session, user_id: int) -> models.Cart:
    """Return the user's cart, creating it on first access.

    Two first accesses racing for the same user both try to insert; the unique
    constraint on ``cart.user_id`` rejects the loser, which then reads the
    winner's row. Call this before any other write in the request, since losing
    the race rolls the session back.
    """
    cart = find_cart(db, user_id)
    if cart:
        return cart
    cart = models.Cart(user_id=user_id)
    db.add(cart)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        cart = find_cart(db, user_id)
        if cart is None:
            raise
        logger.info("cart_creation_race_lost", user_id=user_id, cart_id=cart.id)
        return cart
    logger.info("cart_created", user_id=user_id, cart_id=cart.id)
    return cart


def get_cart(db: Session, ctx: AuthContext) -> models.Cart:
    cart = get_or_create_cart(db, ctx.user_id)
    return db.scalars(
        select(models.Cart)
        .where(models.Cart.id == cart.id)
        .options(
            selectinload(models.Cart.items).selectinload(models.CartItem.product),
            selectinload(models.Cart.items).selectinload(models.CartItem.variation),
        )
        .execution_options(populate_existing=True)
    ).one()


def _is_same_or_null(column, value):
    return column.is_(None) if value is None else column == value


def add_to_cart(db: Session, data: AddToCartInput, ctx: AuthContext) -> models.CartItem:
    cart = get_or_create_cart(db, ctx.user_id)

    product = db.scalars(
        select(models.Product).where(
            models.Product.id == data.product_id, models.Product.is_active.is_(True)
        )
    ).first()
    if not product:
        raise NotFoundError("Product not found or inactive")

    unit_price = Decimal(product.base_price)
    if data.variation_id is not None:
        variation = db.scalars(
            select(models.ProductVariation).where(
                models.ProductVariation.id == data.variation_id,
                models.ProductVariation.product_id == data.product_id,
                models.ProductVariation.is_available.is_(True),
            )
        ).first()
        if not variation:
            raise InvalidOperationError("Product variation not found or unavailable")
        unit_price += Decimal(variation.price_adjustment)

    existing = db.scalars(
        select(models.CartItem).where(
            models.CartItem.cart_id == cart.id,
            models.CartItem.product_id == data.product_id,
            _is_same_or_null(models.CartItem.variation_id, data.variation_id),
            _is_same_or_null(models.CartItem.custom_design_text, data.custom_design_text),
            _is_same_or_null(models.CartItem.custom_design_url, data.custom_design_url),
        )
    ).first()

    if existing:
        existing.quantity += data.quantity
        existing.unit_price = unit_price
        item = existing
    else:
        item = models.CartItem(
            cart_id=cart.id,
            product_id=data.product_id,
            variation_id=data.variation_id,
            quantity=data.quantity,
            custom_design_text=data.custom_design_text,
            custom_design_url=data.custom_design_url,
            unit_price=unit_price,
        )
        db.add(item)
    cart.updated_at = models.utcnow()
    db.commit()
    logger.info(
        "cart_item_added",
        cart_id=cart.id,
        cart_item_id=item.id,
        quantity=item.quantity,
        merged=existing is not None,
    )
    return item


def _find_owned_item(db: Session, cart_item_id: int, user_id: int) -> Optional[models.CartItem]:
    return db.scalars(
        select(models.CartItem)
        .join(models.Cart, models.CartItem.cart_id == models.Cart.id)
        .where(models.CartItem.id == cart_item_id, models.Cart.user_id == user_id)
    ).first()


def update_cart_item(db: Session, data: UpdateCartItemInput, ctx: AuthContext) -> models.CartItem:
    """Apply a partial update to one of the caller's cart lines.

    A quantity of exactly zero deletes the line. Existing clients expect a
    cart item back even then, so the deleted line is returned with its id and
    every other field zeroed or null.
    """
    item = _find_owned_item(db, data.cart_item_id, ctx.user_id)
    if not item:
        raise NotFoundError("Cart item not found or unauthorized")

    if data.quantity == 0:
        db.delete(item)
        db.commit()
        logger.info("cart_item_removed", cart_item_id=data.cart_item_id)
        return models.CartItem(
            id=data.cart_item_id,
            cart_id=0,
            product_id=0,
            variation_id=None,
            quantity=0,
            custom_design_text=None,
            custom_design_url=None,
            unit_price=Decimal("0"),
            created_at=models.utcnow(),
        )

    for field, value in data.changes("cart_item_id").items():
        setattr(item, field, value)
    db.commit()
    return item


def remove_from_cart(db: Session, cart_item_id: int, ctx: AuthContext) -> bool:
    item = _find_owned_item(db, cart_item_id, ctx.user_id)
    if not item:
        return False
    db.delete(item)
    db.commit()
    logger.info("cart_item_removed", cart_item_id=cart_item_id)
    return True


def clear_cart(db: Session, ctx: AuthContext) -> bool:
    cart = find_cart(db, ctx.user_id)
    if not cart:
        return True
    db.execute(delete(models.CartItem).where(models.CartItem.cart_id == cart.id))
    db.commit()
    logger.info("cart_cleared", cart_id=cart.id)
    return True
