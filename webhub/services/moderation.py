"""
Moderation Workflow

User reports go into an admin queue; an admin resolves them (one-way) and can
hard-delete catalog items. Admin identity is a shared secret checked at the
HTTP boundary, not a user account.
"""

import hmac
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from webhub.config import get_settings
from webhub.database.models import (
    CatalogItem,
    Report,
    ReportStatus,
    ReportTargetType,
    User,
    generate_id,
    utcnow,
)
from webhub.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from webhub.quality.validators import sanitize_string

logger = structlog.get_logger(__name__)
settings = get_settings()

TARGET_TYPES = [t.value for t in ReportTargetType]
# Width of the reports.target_id column
MAX_TARGET_ID_LENGTH = 64


def _parse_target_type(value: Any) -> ReportTargetType:
    try:
        return ReportTargetType(value)
    except ValueError:
        raise ValidationError([f"target_type must be one of: {', '.join(TARGET_TYPES)}"])


async def file_report(
    session: AsyncSession,
    reporter_id: str,
    target_type: Any,
    target_id: str,
    reason: Any,
) -> Report:
    """
    File a report against an item, review, user or collection.

    Raises:
        ValidationError: Unknown target type, missing or malformed target id, empty reason
    """
    kind = _parse_target_type(target_type)
    errors = []
    if not target_id:
        errors.append("target_id is required")
    elif not isinstance(target_id, str) or len(target_id) > MAX_TARGET_ID_LENGTH:
        errors.append("Invalid target_id")
    clean_reason = sanitize_string(reason)
    if not clean_reason:
        errors.append("Reason is required")
    if errors:
        raise ValidationError(errors)

    report = Report(
        id=generate_id("report"),
        reporter_id=reporter_id,
        target_type=kind,
        target_id=target_id,
        reason=clean_reason,
        status=ReportStatus.PENDING,
        created_at=utcnow(),
    )
    session.add(report)
    await session.flush()

    logger.info(
        "Report filed",
        report_id=report.id,
        reporter_id=reporter_id,
        target_type=kind.value,
        target_id=target_id,
    )
    return report


async def list_reports(
    session: AsyncSession,
    status: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Newest-first report queue annotated with the reporter's name."""
    query = (
        select(Report, User.name.label("reporter_name"))
        .outerjoin(User, User.id == Report.reporter_id)
        .order_by(Report.created_at.desc(), Report.id.desc())
        .limit(limit or settings.reputation.reports_limit)
    )
    if status:
        try:
            query = query.where(Report.status == ReportStatus(status))
        except ValueError:
            raise ValidationError([f"Unknown report status: {status}"])

    rows = (await session.execute(query)).all()
    return [_report_to_dict(report, reporter_name) for report, reporter_name in rows]


def _report_to_dict(report: Report, reporter_name: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": report.id,
        "reporter_id": report.reporter_id,
        "reporter_name": reporter_name,
        "target_type": report.target_type.value,
        "target_id": report.target_id,
        "reason": report.reason,
        "status": report.status.value,
        "admin_notes": report.admin_notes,
        "created_at": report.created_at,
        "resolved_at": report.resolved_at,
    }


async def resolve_report(
    session: AsyncSession,
    report_id: str,
    admin_notes: Optional[str] = None,
) -> Report:
    """
    Move a report from pending to resolved.

    Raises:
        NotFoundError: Unknown report
        ConflictError: Report already resolved
    """
    report = await session.get(Report, report_id)
    if report is None:
        raise NotFoundError("Report not found")
    if report.status == ReportStatus.RESOLVED:
        raise ConflictError("Report already resolved")

    report.status = ReportStatus.RESOLVED
    report.admin_notes = sanitize_string(admin_notes) or None
    report.resolved_at = utcnow()
    await session.flush()

    logger.info("Report resolved", report_id=report_id)
    return report


async def admin_delete_item(session: AsyncSession, item_id: str) -> None:
    """Hard-delete an item with all of its events, reviews and memberships."""
    item = await session.get(CatalogItem, item_id)
    if item is None:
        raise NotFoundError("Webapp not found")

    name = item.name
    await session.delete(item)
    await session.flush()
    logger.warning("Item deleted by admin", item_id=item_id, name=name)


async def list_all_items(session: AsyncSession) -> List[CatalogItem]:
    """Every item regardless of status, newest first."""
    result = await session.execute(
        select(CatalogItem).order_by(CatalogItem.created_at.desc(), CatalogItem.id.desc())
    )
    return list(result.scalars().all())


def admin_login(email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
    """
    Check the static admin credentials.

    Only confirms the credentials; admin routes still require ``X-Admin-Key``.

    Raises:
        AuthorizationError: Wrong email or password
    """
    expected_email = settings.security.admin_email
    expected_password = settings.security.admin_password.get_secret_value()

    email_ok = hmac.compare_digest((email or "").encode("utf-8"), expected_email.encode("utf-8"))
    password_ok = hmac.compare_digest((password or "").encode("utf-8"), expected_password.encode("utf-8"))
    if not (email_ok and password_ok):
        logger.warning("Admin login rejected", email=email)
        raise AuthorizationError("Invalid admin credentials")

    logger.info("Admin login", email=email)
    return {"email": expected_email, "role": "admin"}
