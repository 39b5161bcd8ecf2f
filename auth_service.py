import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import models
from errors import ConflictError, NotFoundError, UnauthorizedError
from schemas import AuthContext, LoginInput, RegisterInput, UpdateProfileInput
from security import hash_password, verify_password

logger = structlog.get_logger(__name__)


def _find_by_email(db: Session, email: str):
    # exact match, so emails differing only in case are different accounts
    return db.scalars(select(models.User).where(models.User.email == email)).first()


def register(db: Session, data: RegisterInput) -> models.User:
    if _find_by_email(db, data.email):
        raise ConflictError("Email already registered")
    user = models.User(
        email=data.email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        role="customer",
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Email already registered", internal_details=str(exc.orig)) from exc
    logger.info("user_registered", user_id=user.id)
    return user


def login(db: Session, creds: LoginInput) -> models.User:
    user = _find_by_email(db, creds.email)
    if not user or not verify_password(creds.password, user.password_hash):
        raise UnauthorizedError("Invalid email or password")
    return user


def get_profile(db: Session, ctx: AuthContext) -> models.User:
    user = db.get(models.User, ctx.user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def update_profile(db: Session, data: UpdateProfileInput, ctx: AuthContext) -> models.User:
    user = get_profile(db, ctx)
    changes = data.changes()
    email = changes.get("email")
    if email is not None:
        owner = _find_by_email(db, email)
        if owner and owner.id != user.id:
            raise ConflictError("Email already exists")
    for field, value in changes.items():
        setattr(user, field, value)
    user.updated_at = models.utcnow()
    db.commit()
    logger.info("profile_updated", user_id=user.id, fields=sorted(changes))
    return user
