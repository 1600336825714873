"""
Database Models - Catalog, Event Log and Social Tables

Catalog:
- User: accounts, badge set and ban flag
- CatalogItem: submitted webapps with denormalized reputation aggregates

Event log (owned by an item, cascade-deleted with it):
- ItemView: one row per (item, user)
- ItemClick / ItemShare: unlimited per actor
- Review / ReviewVote: one review per (item, author), one vote per (review, voter)
- ItemVersion: owner-supplied changelog entries

Social and moderation:
- Report, Collection, CollectionItem, Notification

The aggregate columns on CatalogItem (``avg_rating``, ``*_count``) are caches
of the event tables and are only ever written by ``webhub.services.counters``.
"""

import json
import secrets
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def generate_id(prefix: str = "") -> str:
    """Opaque id: ``<prefix>_<base36 millis>_<16 hex chars>``"""
    millis = int(time.time() * 1000)
    stamp = ""
    while millis:
        millis, rem = divmod(millis, 36)
        stamp = _BASE36[rem] + stamp
    token = f"{stamp or '0'}_{secrets.token_hex(8)}"
    return f"{prefix}_{token}" if prefix else token


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def unique_strings(values: Optional[Iterable[str]]) -> List[str]:
    """De-duplicate keeping first-seen order"""
    seen: List[str] = []
    for value in values or ():
        if value not in seen:
            seen.append(value)
    return seen


class StringSet(TypeDecorator):
    """
    Set of strings stored as a JSON array in a text column.

    The domain layer only ever sees de-duplicated Python lists; serialization
    stays at this boundary.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Optional[Iterable[str]], dialect) -> str:
        return json.dumps(unique_strings(value))

    def process_result_value(self, value: Optional[str], dialect) -> List[str]:
        if not value:
            return []
        return unique_strings(json.loads(value))


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class ItemCategory(str, Enum):
    """Catalog category enumeration"""
    PRODUCTIVITY = "productivity"
    DESIGN = "design"
    GAMES = "games"
    API = "api"
    NOCODE = "nocode"
    OTHER = "other"


class ItemStatus(str, Enum):
    """Listing status, decided by the trust score at creation"""
    APPROVED = "approved"
    PENDING_REVIEW = "pending_review"


class VoteType(str, Enum):
    """Review vote enumeration"""
    HELPFUL = "helpful"
    NOT_HELPFUL = "not_helpful"


class ReportStatus(str, Enum):
    """Report state machine: pending -> resolved (terminal)"""
    PENDING = "pending"
    RESOLVED = "resolved"


class ReportTargetType(str, Enum):
    """Discriminator for what a report points at"""
    ITEM = "item"
    REVIEW = "review"
    USER = "user"
    COLLECTION = "collection"


# =============================================================================
# ACCOUNTS
# =============================================================================

class User(Base):
    """
    User Account

    Badges are append-only; nothing in the service layer removes one.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: generate_id("user"))
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    username: Mapped[Optional[str]] = mapped_column(String(100))
    role: Mapped[str] = mapped_column(String(20), default="user")
    badges: Mapped[List[str]] = mapped_column(StringSet, default=list)

    is_banned: Mapped[bool] = mapped_column(Boolean, default=False)
    ban_reason: Mapped[Optional[str]] = mapped_column(Text)

    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


# =============================================================================
# CATALOG
# =============================================================================

class CatalogItem(Base):
    """
    Catalog Item (a submitted webapp)

    ``trust_score`` is written once at creation. The aggregate columns mirror
    COUNT/AVG over the event tables below.
    """
    __tablename__ = "webapps"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: generate_id("webapp"))
    creator_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    # Descriptive fields
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    developer: Mapped[str] = mapped_column(String(100), nullable=False)
    description_short: Mapped[str] = mapped_column(String(200), nullable=False)
    description_long: Mapped[Optional[str]] = mapped_column(Text)
    url: Mapped[str] = mapped_column(String(2048), unique=True, nullable=False)
    github_url: Mapped[Optional[str]] = mapped_column(String(2048))
    video_url: Mapped[Optional[str]] = mapped_column(String(2048))
    image_url: Mapped[Optional[str]] = mapped_column(String(2048))
    category: Mapped[ItemCategory] = mapped_column(SQLEnum(ItemCategory), nullable=False)
    tags: Mapped[List[str]] = mapped_column(StringSet, default=list)

    # Denormalized aggregates
    avg_rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    reviews_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    views_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    clicks_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    shares_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Flags
    is_trending: Mapped[bool] = mapped_column(Boolean, default=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    is_new: Mapped[bool] = mapped_column(Boolean, default=True)

    # Moderation
    status: Mapped[ItemStatus] = mapped_column(SQLEnum(ItemStatus), default=ItemStatus.APPROVED)
    trust_score: Mapped[int] = mapped_column(Integer, default=50, nullable=False)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text)

    # Audit
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # Owned rows; ORM cascade works even where the store does not enforce FKs
    views: Mapped[List["ItemView"]] = relationship(cascade="all, delete-orphan")
    clicks: Mapped[List["ItemClick"]] = relationship(cascade="all, delete-orphan")
    shares: Mapped[List["ItemShare"]] = relationship(cascade="all, delete-orphan")
    reviews: Mapped[List["Review"]] = relationship(cascade="all, delete-orphan")
    versions: Mapped[List["ItemVersion"]] = relationship(cascade="all, delete-orphan")
    memberships: Mapped[List["CollectionItem"]] = relationship(cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_webapps_category", "category"),
        Index("ix_webapps_rating", "avg_rating"),
        Index("ix_webapps_created", "created_at"),
        Index("ix_webapps_creator", "creator_id"),
        Index("ix_webapps_trending", "is_trending", "views_count"),
    )


class ItemView(Base):
    """View event, unique per (item, user)"""
    __tablename__ = "webapp_views"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: generate_id("view"))
    item_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("webapps.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    viewed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("item_id", "user_id", name="uq_webapp_views_item_user"),
        Index("ix_webapp_views_webapp", "item_id"),
    )


class ItemClick(Base):
    """Outbound click event"""
    __tablename__ = "webapp_clicks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: generate_id("click"))
    item_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("webapps.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[Optional[str]] = mapped_column(String(64))
    source: Mapped[str] = mapped_column(String(50), default="direct", nullable=False)
    clicked_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_webapp_clicks_webapp", "item_id", "clicked_at"),
    )


class ItemShare(Base):
    """Share event"""
    __tablename__ = "webapp_shares"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: generate_id("share"))
    item_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("webapps.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[Optional[str]] = mapped_column(String(64))
    method: Mapped[str] = mapped_column(String(50), default="copy_link", nullable=False)
    shared_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Review(Base):
    """One review per (item, author); vote tallies mirror review_votes"""
    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: generate_id("review"))
    item_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("webapps.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str] = mapped_column(Text, default="")
    helpful_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    not_helpful_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    votes: Mapped[List["ReviewVote"]] = relationship(cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("item_id", "user_id", name="uq_reviews_item_user"),
        Index("ix_reviews_webapp", "item_id", "created_at"),
    )


class ReviewVote(Base):
    """Helpfulness vote; a voter may change their vote type"""
    __tablename__ = "review_votes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: generate_id("vote"))
    review_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    vote_type: Mapped[VoteType] = mapped_column(SQLEnum(VoteType), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("review_id", "user_id", name="uq_review_votes_review_user"),
    )


class ItemVersion(Base):
    """Changelog entry appended by an owner edit"""
    __tablename__ = "webapp_versions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: generate_id("version"))
    item_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("webapps.id", ondelete="CASCADE"), nullable=False
    )
    version: Mapped[str] = mapped_column(String(50), nullable=False)
    changelog: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_webapp_versions_webapp", "item_id", "created_at"),
    )


# =============================================================================
# MODERATION
# =============================================================================

class Report(Base):
    """User-filed report against an item, review, user or collection"""
    __tablename__ = "reports"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: generate_id("report"))
    reporter_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    target_type: Mapped[ReportTargetType] = mapped_column(SQLEnum(ReportTargetType), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ReportStatus] = mapped_column(SQLEnum(ReportStatus), default=ReportStatus.PENDING)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        Index("ix_reports_status", "status", "created_at"),
    )


# =============================================================================
# COLLECTIONS & NOTIFICATIONS
# =============================================================================

class Collection(Base):
    """User-curated set of catalog items"""
    __tablename__ = "collections"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: generate_id("collection"))
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    members: Mapped[List["CollectionItem"]] = relationship(cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_collections_public_updated", "is_public", "updated_at"),
    )


class CollectionItem(Base):
    """Membership row; (collection, item) is unique"""
    __tablename__ = "collection_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: generate_id("item"))
    collection_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("collections.id", ondelete="CASCADE"), nullable=False
    )
    item_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("webapps.id", ondelete="CASCADE"), nullable=False
    )
    added_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("collection_id", "item_id", name="uq_collection_items_collection_item"),
        Index("ix_collection_items_collection", "collection_id"),
    )


class Notification(Base):
    """Pull-model notification; ``read`` only ever goes false -> true"""
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: generate_id("notif"))
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[Optional[Any]] = mapped_column(JSON)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_notifications_user", "user_id", "read", "created_at"),
    )
