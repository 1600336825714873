"""
Review Vote and Report Endpoints
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.database.connection import get_db_dependency
from webhub.security import get_current_user_id
from webhub.services import moderation, reviews

router = APIRouter()


class VoteRequest(BaseModel):
    vote_type: Optional[str] = None


class ReportRequest(BaseModel):
    target_type: Optional[str] = None
    target_id: Optional[str] = None
    reason: Optional[str] = None


@router.post("/reviews/{review_id}/vote")
async def vote_review(
    review_id: str,
    body: VoteRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    """Cast or change a helpfulness vote; returns the recounted tallies."""
    tallies = await reviews.vote_review(db, review_id, user_id, body.vote_type)
    return {"success": True, **tallies}


@router.post("/reports", status_code=201)
async def create_report(
    body: ReportRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    report = await moderation.file_report(db, user_id, body.target_type, body.target_id, body.reason)
    return {"success": True, "report_id": report.id, "status": report.status.value}
