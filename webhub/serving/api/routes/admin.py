"""
Admin Endpoints

Everything except login requires the ``X-Admin-Key`` header.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.database.connection import get_db_dependency
from webhub.security import require_admin_key
from webhub.serving.api.schemas import webapps_out
from webhub.serving.cache import invalidate_after_commit, stats_cache, tags_cache
from webhub.services import counters, moderation

router = APIRouter()
protected = APIRouter(dependencies=[Depends(require_admin_key)])


class AdminLoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ResolveReportRequest(BaseModel):
    admin_notes: Optional[str] = None


@router.post("/admin/login")
async def admin_login(body: AdminLoginRequest) -> Dict[str, Any]:
    """Confirm the static admin credentials. No session is issued."""
    return {"success": True, "admin": moderation.admin_login(body.email, body.password)}


@protected.get("/admin/reports")
async def list_reports(
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    reports = await moderation.list_reports(db, status)
    return {"success": True, "reports": reports}


@protected.put("/admin/reports/{report_id}")
async def resolve_report(
    report_id: str,
    body: Optional[ResolveReportRequest] = None,
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    report = await moderation.resolve_report(db, report_id, body.admin_notes if body else None)
    return {"success": True, "status": report.status.value}


@protected.get("/admin/webapps")
async def list_all_webapps(db: AsyncSession = Depends(get_db_dependency)) -> Dict[str, Any]:
    items = await moderation.list_all_items(db)
    return {"success": True, "webapps": webapps_out(items)}


@protected.delete("/admin/webapps/{webapp_id}")
async def delete_webapp(
    webapp_id: str,
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    await moderation.admin_delete_item(db, webapp_id)
    await invalidate_after_commit(db, stats_cache, tags_cache)
    return {"success": True}


@protected.post("/admin/webapps/{webapp_id}/recount")
async def recount_webapp(
    webapp_id: str,
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    """Recompute every aggregate of one webapp from its event tables."""
    return {"success": True, "counters": await counters.recount_item(db, webapp_id)}


router.include_router(protected)
