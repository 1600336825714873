"""
Shared API Schemas

Response models reused by several routers. Route-specific request bodies
live next to their routes.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from webhub.database.models import ItemCategory, ItemStatus


class WebappOut(BaseModel):
    """Catalog item as returned to clients"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    creator_id: str
    name: str
    developer: str
    description_short: str
    description_long: Optional[str] = None
    url: str
    github_url: Optional[str] = None
    video_url: Optional[str] = None
    image_url: Optional[str] = None
    category: ItemCategory
    tags: List[str] = []
    avg_rating: float
    reviews_count: int
    views_count: int
    clicks_count: int
    shares_count: int
    is_trending: bool
    is_featured: bool
    is_new: bool
    status: ItemStatus
    trust_score: int
    created_at: datetime
    updated_at: datetime


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    webapp_id: str
    user_id: str
    user_name: Optional[str] = None
    rating: int
    comment: str = ""
    helpful_count: int = 0
    not_helpful_count: int = 0
    created_at: datetime


def webapp_out(item) -> dict:
    return WebappOut.model_validate(item).model_dump(mode="json")


def webapps_out(items) -> List[dict]:
    return [webapp_out(item) for item in items]
