"""
Webapp Catalog Endpoints

Listing, detail, submission and owner edits, plus click/share tracking,
version history and reviews.
"""

from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.database.connection import get_db_dependency
from webhub.security import get_current_user_id, get_optional_user_id
from webhub.serving.api.schemas import ReviewOut, webapp_out, webapps_out
from webhub.serving.cache import invalidate_after_commit, stats_cache, tags_cache
from webhub.services import catalog, counters, reviews

router = APIRouter()


class WebappSubmission(BaseModel):
    """Submission / edit body; field rules are enforced by the validator"""
    name: Optional[str] = None
    developer: Optional[str] = None
    description_short: Optional[str] = None
    description_long: Optional[str] = None
    url: Optional[str] = None
    github_url: Optional[str] = None
    video_url: Optional[str] = None
    image_url: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[Union[str, List[str]]] = None
    version: Optional[str] = None
    changelog: Optional[str] = None


class DeleteWebappRequest(BaseModel):
    password: Optional[str] = None


class ClickRequest(BaseModel):
    source: Optional[str] = None


class ShareRequest(BaseModel):
    method: Optional[str] = None


class ReviewRequest(BaseModel):
    rating: Any = None
    comment: Optional[str] = None


@router.get("/webapps")
async def list_webapps(
    category: Optional[str] = None,
    trending: bool = False,
    new: bool = False,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    limit: Optional[int] = None,
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    """List approved webapps with filtering, search and sorting."""
    items = await catalog.list_items(
        db,
        category=category,
        trending=trending,
        new=new,
        search=search,
        sort=sort,
        limit=limit,
    )
    return {"success": True, "webapps": webapps_out(items)}


@router.post("/webapps", status_code=201)
async def create_webapp(
    body: WebappSubmission,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    """Submit a webapp. Low trust scores land in the review queue."""
    item = await catalog.create_item(db, body.model_dump(), user_id)
    await invalidate_after_commit(db, stats_cache, tags_cache)
    return {
        "success": True,
        "webapp": webapp_out(item),
        "status": item.status.value,
        "trust_score": item.trust_score,
    }


@router.get("/webapps/user/{user_id}")
async def list_user_webapps(
    user_id: str,
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    items = await catalog.list_user_items(db, user_id)
    return {"success": True, "webapps": webapps_out(items)}


@router.get("/webapps/{webapp_id}")
async def get_webapp(
    webapp_id: str,
    viewer_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    """Webapp detail with reviews; identified callers count as a view."""
    detail = await catalog.get_item(db, webapp_id, viewer_id)
    return {
        "success": True,
        "webapp": webapp_out(detail["webapp"]),
        "reviews": [ReviewOut.model_validate(r).model_dump(mode="json") for r in detail["reviews"]],
    }


@router.put("/webapps/{webapp_id}")
async def update_webapp(
    webapp_id: str,
    body: WebappSubmission,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    item = await catalog.update_item(db, webapp_id, body.model_dump(exclude_unset=True), user_id)
    await invalidate_after_commit(db, tags_cache)
    return {"success": True, "webapp": webapp_out(item)}


@router.delete("/webapps/{webapp_id}")
async def delete_webapp(
    webapp_id: str,
    body: Optional[DeleteWebappRequest] = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    """Owner delete; the owner's password confirms it."""
    await catalog.delete_item(db, webapp_id, user_id, body.password if body else None)
    await invalidate_after_commit(db, stats_cache, tags_cache)
    return {"success": True}


@router.post("/webapps/{webapp_id}/click")
async def track_click(
    webapp_id: str,
    body: Optional[ClickRequest] = None,
    user_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    clicks = await counters.record_click(db, webapp_id, user_id, body.source if body else None)
    return {"success": True, "clicks_count": clicks}


@router.post("/webapps/{webapp_id}/share")
async def track_share(
    webapp_id: str,
    body: Optional[ShareRequest] = None,
    user_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    shares = await counters.record_share(db, webapp_id, user_id, body.method if body else None)
    return {"success": True, "shares_count": shares}


@router.get("/webapps/{webapp_id}/versions")
async def list_versions(
    webapp_id: str,
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    versions = await catalog.list_versions(db, webapp_id)
    return {
        "success": True,
        "versions": [
            {
                "id": v.id,
                "webapp_id": v.item_id,
                "version": v.version,
                "changelog": v.changelog,
                "created_at": v.created_at.isoformat(),
            }
            for v in versions
        ],
    }


@router.post("/webapps/{webapp_id}/reviews", status_code=201)
async def create_review(
    webapp_id: str,
    body: ReviewRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    """Post a review; the owner is notified unless they reviewed their own webapp."""
    result = await reviews.create_review(db, webapp_id, user_id, body.rating, body.comment)
    review = result["review"]
    await invalidate_after_commit(db, stats_cache)
    return {
        "success": True,
        "review": ReviewOut(
            id=review.id,
            webapp_id=review.item_id,
            user_id=review.user_id,
            rating=review.rating,
            comment=review.comment,
            helpful_count=review.helpful_count,
            not_helpful_count=review.not_helpful_count,
            created_at=review.created_at,
        ).model_dump(mode="json"),
        "avg_rating": result["avg_rating"],
        "reviews_count": result["reviews_count"],
    }
