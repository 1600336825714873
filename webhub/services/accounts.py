"""
Accounts Service

Signup, login and profile reads. Reading a profile is also when newly
earned badges get awarded.
"""

from typing import Any, Dict, Optional

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.database.models import CatalogItem, Review, ReviewVote, User, VoteType, generate_id, utcnow
from webhub.errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from webhub.quality.badges import UserStats, evaluate_badges
from webhub.quality.validators import sanitize_string, validate_email
from webhub.security import create_access_token, hash_password, verify_password

logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 6
# bcrypt only accepts this many bytes of input
MAX_PASSWORD_BYTES = 72


def public_user(user: User, include_email: bool = False) -> Dict[str, Any]:
    data = {
        "id": user.id,
        "name": user.name,
        "username": user.username,
        "role": user.role,
        "badges": list(user.badges or []),
        "created_at": user.created_at,
    }
    if include_email:
        data["email"] = user.email
    return data


def _normalize_email(email: Any) -> str:
    return email.strip().lower() if isinstance(email, str) else ""


async def signup(session: AsyncSession, email: Any, password: Any, name: Any) -> Dict[str, Any]:
    """
    Register an account and issue a session token.

    Raises:
        ValidationError: Bad email shape, password too short or too long, missing name
        ConflictError: Email already registered
    """
    email = _normalize_email(email)
    clean_name = sanitize_string(name)[:100]

    errors = []
    if not validate_email(email):
        errors.append("Invalid email address")
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    elif len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        errors.append(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    if not clean_name:
        errors.append("Name is required")
    if errors:
        raise ValidationError(errors)

    if await session.scalar(select(User.id).where(User.email == email)) is not None:
        raise ConflictError("Email already registered")

    user = User(
        id=generate_id("user"),
        email=email,
        password_hash=hash_password(password),
        name=clean_name,
        role="user",
        badges=[],
        created_at=utcnow(),
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError as e:
        raise ConflictError("Email already registered") from e

    logger.info("User signed up", user_id=user.id)
    return {
        "token": create_access_token(user.id, user.email),
        "user": public_user(user, include_email=True),
    }


async def login(session: AsyncSession, email: Any, password: Any) -> Dict[str, Any]:
    """
    Check credentials and issue a session token.

    Raises:
        AuthenticationError: Unknown email or wrong password
        AuthorizationError: Account is banned
    """
    user = await session.scalar(select(User).where(User.email == _normalize_email(email)))
    if user is None or not verify_password(password if isinstance(password, str) else "", user.password_hash):
        logger.info("Login rejected", email=_normalize_email(email))
        raise AuthenticationError("Invalid credentials")

    if user.is_banned:
        raise AuthorizationError("Account banned: " + (user.ban_reason or "No reason provided"))

    user.last_login_at = utcnow()
    await session.flush()

    logger.info("User logged in", user_id=user.id)
    return {
        "token": create_access_token(user.id, user.email),
        "user": public_user(user, include_email=True),
    }


async def gather_stats(session: AsyncSession, user_id: str) -> UserStats:
    """
    Rolling statistics for badge evaluation.

    The helpful ratio is helpful votes over all votes received on the user's
    reviews, 0 when nobody has voted.
    """
    items_count = await session.scalar(
        select(func.count()).select_from(CatalogItem).where(CatalogItem.creator_id == user_id)
    )
    reviews_count = await session.scalar(
        select(func.count()).select_from(Review).where(Review.user_id == user_id)
    )
    votes = (await session.execute(
        select(
            func.count(ReviewVote.id).label("total"),
            func.coalesce(
                func.sum(case((ReviewVote.vote_type == VoteType.HELPFUL, 1), else_=0)), 0
            ).label("helpful"),
        )
        .join(Review, Review.id == ReviewVote.review_id)
        .where(Review.user_id == user_id)
    )).one()

    total = int(votes.total or 0)
    return UserStats(
        items_count=int(items_count or 0),
        reviews_count=int(reviews_count or 0),
        helpful_ratio=(int(votes.helpful or 0) / total) if total else 0.0,
    )


async def get_profile(
    session: AsyncSession,
    user_id: str,
    include_email: bool = False,
) -> Dict[str, Any]:
    """
    Public profile plus statistics.

    Newly earned badges are appended and persisted; none are ever removed.
    """
    user: Optional[User] = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    stats = await gather_stats(session, user_id)
    new_badges = evaluate_badges(user.badges or [], stats, user.created_at)
    if new_badges:
        user.badges = list(user.badges or []) + new_badges
        await session.flush()
        logger.info("Badges awarded", user_id=user_id, badges=new_badges)

    profile = public_user(user, include_email=include_email)
    profile["stats"] = {
        "webapps_count": stats.items_count,
        "reviews_count": stats.reviews_count,
        "helpful_ratio": round(stats.helpful_ratio, 4),
    }
    return profile
