"""
User service: registration, login and the current-user account.

Uniqueness of username and email is enforced by the database.  The
service pre-checks both so the common case yields a precise error, and
on an ``IntegrityError`` (a concurrent registration won the race) it
rolls back and re-queries to find out which column conflicted.  Driver
error text is never inspected.
"""
import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from conduit.errors import ErrorKind, ServiceError
from conduit.models import User, utcnow
from conduit.projections import user_to_dict
from conduit.schemas import RegisterUser, UpdateUser
from conduit.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)


async def _conflict_kind(
    db: AsyncSession, username: str | None, email: str | None, exclude_id: int | None = None
) -> ErrorKind | None:
    """Return USERNAME_TAKEN / EMAIL_TAKEN if another user holds either value."""
    clauses = []
    if username is not None:
        clauses.append(User.username == username)
    if email is not None:
        clauses.append(User.email == email)
    if not clauses:
        return None

    q = select(User.username, User.email).where(or_(*clauses))
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    rows = (await db.execute(q)).all()
    if any(row.username == username for row in rows):
        return ErrorKind.USERNAME_TAKEN
    if any(row.email == email for row in rows):
        return ErrorKind.EMAIL_TAKEN
    return None


async def _get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise ServiceError(ErrorKind.USER_NOT_FOUND)
    return user


async def register(db: AsyncSession, data: RegisterUser) -> dict:
    """Create an account and return it with a fresh session token."""
    kind = await _conflict_kind(db, data.username, data.email)
    if kind is not None:
        raise ServiceError(kind)

    now = utcnow()
    user = User(
        username=data.username,
        email=data.email,
        password_hash=await run_in_threadpool(hash_password, data.password),
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        kind = await _conflict_kind(db, data.username, data.email)
        logger.info("Registration lost a uniqueness race for username=%r", data.username)
        raise ServiceError(kind or ErrorKind.INTERNAL) from None

    logger.info("Registered user id=%d username=%r", user.id, user.username)
    return user_to_dict(user, create_access_token(user.id))


async def login(db: AsyncSession, email: str, password: str) -> dict:
    """
    Authenticate by email and password.

    An unknown email and a wrong password are indistinguishable to the
    caller; both raise INVALID_CREDENTIALS.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None or not await run_in_threadpool(verify_password, password, user.password_hash):
        logger.debug("Failed login attempt for email=%r", email)
        raise ServiceError(ErrorKind.INVALID_CREDENTIALS)
    return user_to_dict(user, create_access_token(user.id))


async def get_current_user(db: AsyncSession, viewer_id: int) -> dict:
    user = await _get_user(db, viewer_id)
    return user_to_dict(user, create_access_token(user.id))


async def update_user(db: AsyncSession, viewer_id: int, data: UpdateUser) -> dict:
    """
    Apply the fields explicitly present in *data* to the viewer's account.
    """
    user = await _get_user(db, viewer_id)
    changes = data.model_dump(exclude_unset=True)

    username = changes.get("username")
    email = changes.get("email")
    kind = await _conflict_kind(db, username, email, exclude_id=user.id)
    if kind is not None:
        raise ServiceError(kind)

    password = changes.pop("password", None)
    if password is not None:
        user.password_hash = await run_in_threadpool(hash_password, password)
    for field, value in changes.items():
        if field in ("username", "email") and value is None:
            continue
        setattr(user, field, value)
    user.updated_at = utcnow()

    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        kind = await _conflict_kind(db, username, email, exclude_id=viewer_id)
        raise ServiceError(kind or ErrorKind.INTERNAL) from None

    return user_to_dict(user, create_access_token(user.id))
