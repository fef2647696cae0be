import logging
import uuid
from typing import Optional

from jose import JWTError, jwt
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .. import auth, models, schemas
from ..config import settings
from ..errors import bad_request, conflict, not_found, unauthenticated
from ..utils import LIKE_ESCAPE, clamp_page, like_pattern, pagination_meta
from ..validation import is_valid_email, is_valid_password, missing_fields

logger = logging.getLogger(__name__)


def _user_payload(user: models.User) -> dict:
    return schemas.UserOut.model_validate(user).model_dump()


def issue_tokens(user: models.User, registry: auth.RefreshTokenRegistry) -> dict:
    jti = uuid.uuid4().hex
    refresh_token = auth.create_refresh_token(user.id, jti)
    registry.add(jti, user.id)
    return {
        "access_token": auth.create_access_token(user.id, user.role),
        "refresh_token": refresh_token,
        "token_type": "bearer",
    }


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[models.User]:
    result = await db.execute(select(models.User).where(models.User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def register(db: AsyncSession, registry: auth.RefreshTokenRegistry, body: schemas.RegisterRequest) -> dict:
    missing = missing_fields(body.model_dump(), ["email", "password", "name"])
    if missing:
        raise bad_request(f"Missing required fields: {', '.join(missing)}", "MISSING_FIELDS")
    if not is_valid_email(body.email):
        raise bad_request("Invalid email format", "INVALID_EMAIL")
    if not is_valid_password(body.password):
        raise bad_request("Password must be at least 6 characters", "WEAK_PASSWORD")

    if await get_user_by_email(db, body.email):
        raise conflict("Email already registered", "EMAIL_EXISTS")

    user = models.User(
        email=body.email.strip().lower(),
        hashed_password=auth.get_password_hash(body.password),
        name=body.name.strip(),
        role=models.Role.CUSTOMER.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Registered user %s", user.id)
    return {"user": _user_payload(user), **issue_tokens(user, registry)}


async def login(db: AsyncSession, registry: auth.RefreshTokenRegistry, body: schemas.LoginRequest) -> dict:
    missing = missing_fields(body.model_dump(), ["email", "password"])
    if missing:
        raise bad_request(f"Missing required fields: {', '.join(missing)}", "MISSING_FIELDS")

    user = await get_user_by_email(db, body.email)
    if not user or not auth.verify_password(body.password, user.hashed_password):
        raise unauthenticated("Invalid credentials", "INVALID_CREDENTIALS")
    return {"user": _user_payload(user), **issue_tokens(user, registry)}


async def refresh(db: AsyncSession, registry: auth.RefreshTokenRegistry, token: Optional[str]) -> dict:
    if not token:
        raise bad_request("Refresh token is required", "MISSING_TOKEN")
    payload = auth.decode_token(token, auth.REFRESH)
    if not registry.contains(payload.get("jti", "")):
        raise unauthenticated("Invalid refresh token", "INVALID_TOKEN")

    user = await db.get(models.User, int(payload["sub"]))
    if user is None:
        raise not_found("User not found", "USER_NOT_FOUND")
    return {"access_token": auth.create_access_token(user.id, user.role), "token_type": "bearer"}


def logout(registry: auth.RefreshTokenRegistry, token: Optional[str]):
    """Revoke a refresh token; unknown or malformed tokens are ignored."""
    if not token:
        return
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        logger.info("Logout with malformed refresh token ignored")
        return
    if claims.get("jti"):
        registry.revoke(claims["jti"])


async def ensure_admin(db: AsyncSession):
    """Create the bootstrap admin account from settings if it does not exist yet."""
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        return
    if await get_user_by_email(db, settings.ADMIN_EMAIL):
        return
    db.add(models.User(
        email=settings.ADMIN_EMAIL.strip().lower(),
        hashed_password=auth.get_password_hash(settings.ADMIN_PASSWORD),
        name=settings.ADMIN_NAME,
        role=models.Role.ADMIN.value,
    ))
    await db.commit()
    logger.info("Bootstrap admin %s created", settings.ADMIN_EMAIL)


# --- Admin user management ---
async def list_users(db: AsyncSession, role: Optional[str], search: Optional[str], page: int, limit: int) -> dict:
    page, limit, offset = clamp_page(page, limit)
    query = select(models.User)
    if role:
        query = query.where(models.User.role == role)
    if search:
        pattern = like_pattern(search)
        query = query.where(
            or_(models.User.name.ilike(pattern, escape=LIKE_ESCAPE), models.User.email.ilike(pattern, escape=LIKE_ESCAPE))
        )

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(
        query.order_by(models.User.created_at.desc(), models.User.id.desc()).offset(offset).limit(limit)
    )
    users = result.scalars().all()

    order_counts = await _count_by_user(db, models.Order, [u.id for u in users])
    review_counts = await _count_by_user(db, models.Review, [u.id for u in users])
    rows = []
    for user in users:
        row = _user_payload(user)
        row["order_count"] = order_counts.get(user.id, 0)
        row["review_count"] = review_counts.get(user.id, 0)
        rows.append(row)
    return {"users": rows, "pagination": pagination_meta(page, limit, total)}


async def _count_by_user(db: AsyncSession, model, user_ids) -> dict:
    if not user_ids:
        return {}
    result = await db.execute(
        select(model.user_id, func.count(model.id)).where(model.user_id.in_(user_ids)).group_by(model.user_id)
    )
    return dict(result.all())


async def update_user(db: AsyncSession, user_id: int, body: schemas.AdminUserUpdate) -> dict:
    user = await db.get(models.User, user_id)
    if user is None:
        raise not_found("User not found", "USER_NOT_FOUND")
    if body.password is not None:
        if not is_valid_password(body.password):
            raise bad_request("Password must be at least 6 characters", "WEAK_PASSWORD")
        user.hashed_password = auth.get_password_hash(body.password)
    if body.role is not None:
        user.role = body.role.value
    await db.commit()
    logger.info("User %s updated by admin", user_id)
    return _user_payload(user)
