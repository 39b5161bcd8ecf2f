"""
Catalog handlers

Public listing only ever shows active products; lookups by id also return
inactive ones so admins can preview them. Deleting a product is a soft delete.
"""
import math
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

import models
from errors import NotFoundError
from schemas import (
    CreateProductInput,
    CreateProductVariationInput,
    ProductFilters,
    UpdateProductInput,
    UpdateProductVariationInput,
)

logger = structlog.get_logger(__name__)

MONEY_FIELDS = ("base_price", "price_adjustment")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def _money_changes(changes: dict) -> dict:
    return {k: to_money(v) if k in MONEY_FIELDS else v for k, v in changes.items()}


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def get_products(db: Session, filters: ProductFilters) -> dict:
    conditions = [models.Product.is_active.is_(True)]
    if filters.type:
        conditions.append(models.Product.type == filters.type)
    if filters.gender:
        conditions.append(models.Product.gender == filters.gender)
    if filters.search:
        conditions.append(models.Product.name.ilike(f"%{_escape_like(filters.search)}%", escape="\\"))
    if filters.min_price is not None:
        conditions.append(models.Product.base_price >= to_money(filters.min_price))
    if filters.max_price is not None:
        conditions.append(models.Product.base_price <= to_money(filters.max_price))

    total = db.scalar(select(func.count()).select_from(models.Product).where(*conditions))
    products = db.scalars(
        select(models.Product)
        .where(*conditions)
        .options(selectinload(models.Product.variations))
        .order_by(models.Product.created_at.desc(), models.Product.id.desc())
        .limit(filters.limit)
        .offset((filters.page - 1) * filters.limit)
    ).all()

    return {
        "products": products,
        "total": total,
        "page": filters.page,
        "limit": filters.limit,
        "total_pages": math.ceil(total / filters.limit),
    }


def get_product_by_id(db: Session, product_id: int) -> Optional[models.Product]:
    return db.scalars(
        select(models.Product)
        .where(models.Product.id == product_id)
        .options(selectinload(models.Product.variations))
    ).first()


def create_product(db: Session, data: CreateProductInput) -> models.Product:
    product = models.Product(
        name=data.name,
        description=data.description,
        type=data.type,
        gender=data.gender,
        base_price=to_money(data.base_price),
        image_url=data.image_url,
        is_active=True,
    )
    db.add(product)
    db.commit()
    logger.info("product_created", product_id=product.id, type=product.type)
    return product


def _get_product_or_404(db: Session, product_id: int) -> models.Product:
    product = db.get(models.Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def update_product(db: Session, data: UpdateProductInput) -> models.Product:
    product = _get_product_or_404(db, data.id)
    for field, value in _money_changes(data.changes("id")).items():
        setattr(product, field, value)
    product.updated_at = models.utcnow()
    db.commit()
    logger.info("product_updated", product_id=product.id)
    return product


def delete_product(db: Session, product_id: int) -> bool:
    product = _get_product_or_404(db, product_id)
    product.is_active = False
    product.updated_at = models.utcnow()
    db.commit()
    logger.info("product_deactivated", product_id=product_id)
    return True


def create_product_variation(db: Session, data: CreateProductVariationInput) -> models.ProductVariation:
    _get_product_or_404(db, data.product_id)
    variation = models.ProductVariation(
        product_id=data.product_id,
        variation_type=data.variation_type,
        variation_value=data.variation_value,
        price_adjustment=to_money(data.price_adjustment),
        stock_quantity=data.stock_quantity,
        is_available=True,
    )
    db.add(variation)
    db.commit()
    logger.info("variation_created", variation_id=variation.id, product_id=data.product_id)
    return variation


def update_product_variation(db: Session, data: UpdateProductVariationInput) -> models.ProductVariation:
    variation = db.get(models.ProductVariation, data.id)
    if not variation:
        raise NotFoundError("Product variation not found")
    changes = _money_changes(data.changes("id"))
    if not changes:
        return variation
    for field, value in changes.items():
        setattr(variation, field, value)
    db.commit()
    logger.info("variation_updated", variation_id=variation.id)
    return variation
