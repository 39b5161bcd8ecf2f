"""
Address book handlers

A user has at most one default address per type; shipping and billing
defaults are independent. Clearing the old default and writing the new one
happen in the same transaction.
"""
from typing import List, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.orm import Session

import models
from errors import NotFoundError
from schemas import AuthContext, CreateAddressInput, UpdateAddressInput

logger = structlog.get_logger(__name__)


def _unset_defaults(db: Session, user_id: int, address_type: str, keep_id: Optional[int] = None) -> None:
    conditions = [
        models.UserAddress.user_id == user_id,
        models.UserAddress.type == address_type,
        models.UserAddress.is_default.is_(True),
    ]
    if keep_id is not None:
        conditions.append(models.UserAddress.id != keep_id)
    db.execute(update(models.UserAddress).where(*conditions).values(is_default=False))


def get_user_addresses(db: Session, ctx: AuthContext) -> List[models.UserAddress]:
    return db.scalars(
        select(models.UserAddress)
        .where(models.UserAddress.user_id == ctx.user_id)
        .order_by(models.UserAddress.is_default.desc(), models.UserAddress.id)
    ).all()


def create_address(db: Session, data: CreateAddressInput, ctx: AuthContext) -> models.UserAddress:
    if not db.get(models.User, ctx.user_id):
        raise NotFoundError("User not found")
    if data.is_default:
        _unset_defaults(db, ctx.user_id, data.type)
    address = models.UserAddress(user_id=ctx.user_id, **data.model_dump())
    db.add(address)
    db.commit()
    logger.info("address_created", address_id=address.id, type=address.type, is_default=address.is_default)
    return address


def update_address(db: Session, data: UpdateAddressInput, ctx: AuthContext) -> models.UserAddress:
    address = db.scalars(
        select(models.UserAddress).where(
            models.UserAddress.id == data.id, models.UserAddress.user_id == ctx.user_id
        )
    ).first()
    if not address:
        raise NotFoundError("Address not found or access denied")

    changes = data.changes("id")
    if not changes:
        return address
    # a default that changes type must also displace the target type's default
    if changes.get("is_default", address.is_default):
        _unset_defaults(db, ctx.user_id, changes.get("type", address.type), keep_id=address.id)
    for field, value in changes.items():
        setattr(address, field, value)
    db.commit()
    logger.info("address_updated", address_id=address.id, fields=sorted(changes))
    return address


def delete_address(db: Session, address_id: int, ctx: AuthContext) -> bool:
    address = db.scalars(
        select(models.UserAddress).where(
            models.UserAddress.id == address_id, models.UserAddress.user_id == ctx.user_id
        )
    ).first()
    if not address:
        return False
    db.delete(address)
    db.commit()
    logger.info("address_deleted", address_id=address_id)
    return True
