"""
Collection Endpoints

Owner-managed collections; private ones are readable by the owner only.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.database.connection import get_db_dependency
from webhub.security import get_current_user_id, get_optional_user_id
from webhub.serving.api.schemas import webapps_out
from webhub.services import collections
from webhub.services.collections import collection_to_dict

router = APIRouter()


class CollectionRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_public: bool = False


class CollectionUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None


class AddItemRequest(BaseModel):
    webapp_id: str


@router.get("/collections")
async def list_my_collections(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    items = await collections.list_user_collections(db, user_id)
    return {"success": True, "collections": items}


@router.post("/collections", status_code=201)
async def create_collection(
    body: CollectionRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    collection = await collections.create_collection(db, user_id, body.name, body.description, body.is_public)
    return {"success": True, "collection": collection_to_dict(collection)}


@router.get("/collections/public/list")
async def list_public_collections(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    items = await collections.list_public_collections(db, limit)
    return {"success": True, "collections": items}


@router.get("/collections/{collection_id}")
async def get_collection(
    collection_id: str,
    viewer_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    collection = await collections.get_collection(db, collection_id, viewer_id)
    return {"success": True, "collection": collection}


@router.put("/collections/{collection_id}")
async def update_collection(
    collection_id: str,
    body: CollectionUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    collection = await collections.update_collection(
        db, collection_id, body.model_dump(exclude_unset=True), user_id
    )
    return {"success": True, "collection": collection_to_dict(collection)}


@router.delete("/collections/{collection_id}")
async def delete_collection(
    collection_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    await collections.delete_collection(db, collection_id, user_id)
    return {"success": True}


@router.post("/collections/{collection_id}/add")
async def add_to_collection(
    collection_id: str,
    body: AddItemRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    await collections.add_item(db, collection_id, body.webapp_id, user_id)
    return {"success": True}


@router.delete("/collections/{collection_id}/remove/{webapp_id}")
async def remove_from_collection(
    collection_id: str,
    webapp_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    await collections.remove_item(db, collection_id, webapp_id, user_id)
    return {"success": True}


@router.get("/collections/{collection_id}/webapps")
async def list_collection_webapps(
    collection_id: str,
    viewer_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    items = await collections.list_collection_items(db, collection_id, viewer_id)
    return {"success": True, "webapps": webapps_out(items)}
