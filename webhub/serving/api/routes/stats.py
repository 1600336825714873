"""
Site Aggregate Endpoints

Read-mostly totals served through the Redis cache when it is available.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.database.connection import get_db_dependency
from webhub.serving.cache import stats_cache, tags_cache
from webhub.services import catalog

router = APIRouter()


@router.get("/stats")
async def get_stats(db: AsyncSession = Depends(get_db_dependency)) -> Dict[str, Any]:
    """Approved webapps, users and reviews."""
    stats = await stats_cache.get_or_set("site", lambda: catalog.stats(db))
    return {"success": True, "stats": stats}


@router.get("/tags/popular")
async def get_popular_tags(db: AsyncSession = Depends(get_db_dependency)) -> Dict[str, Any]:
    tags = await tags_cache.get_or_set("popular", lambda: catalog.popular_tags(db))
    return {"success": True, "tags": tags}
