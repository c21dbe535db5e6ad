"""
Audit Log Router

FastAPI router exposing the audit trail to admin surfaces:
paged listing, statistics and CSV export.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timezone
from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel

from ..config.schema import AuditConfig
from ..core.ability import PERMISSION_MANAGE
from ..core.auth.policy import PermissionChecker
from ..core.auth.principal import Actor
from ..data.models.audit import ActorType, AuditFilters, AuditRecord, AuditStatistics, AuditStatus
from ..data.repos.audit import AuditRepository
from ..data.repos.base import StoreError
from .auth import require_permission

logger = logging.getLogger(__name__)


class AuditPage(BaseModel):
    records: list[AuditRecord]
    total: int
    page: int
    per_page: int
    total_pages: int


def parse_time_bound(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a ``YYYY-MM-DD`` date or ISO datetime query value.

    A bare date used as an upper bound covers the whole day.
    """
    if not value:
        return None
    try:
        if len(value) == 10:
            day = date.fromisoformat(value)
            return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=timezone.utc)
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}")
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def create_audit_router(
    repository: AuditRepository,
    checker: PermissionChecker,
    get_actor: Callable[..., Actor],
    config: Optional[AuditConfig] = None,
) -> APIRouter:
    """
    Create audit log router with dependencies.

    Args:
        repository: Audit store to read from
        checker: Permission checker; every route requires manage_store
        get_actor: FastAPI dependency resolving the calling actor
        config: Page-size and export limits
    """
    config = config or AuditConfig()
    router = APIRouter(prefix="/audit-logs", tags=["audit"])

    def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
        require_permission(actor, checker, PERMISSION_MANAGE)
        return actor

    def build_filters(
        category: Optional[str] = None,
        status: Optional[AuditStatus] = None,
        search: Optional[str] = None,
        action_type: Optional[str] = None,
        actor_id: Optional[int] = None,
        actor_type: Optional[ActorType] = None,
        object_type: Optional[str] = None,
        object_id: Optional[int] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> AuditFilters:
        return AuditFilters(
            action_category=category,
            status=status,
            search=search,
            action_type=action_type,
            actor_id=actor_id,
            actor_type=actor_type,
            object_type=object_type,
            object_id=object_id,
            date_from=parse_time_bound(date_from),
            date_to=parse_time_bound(date_to, end_of_day=True),
        )

    @router.get("", response_model=AuditPage)
    def list_audit_logs(
        page: int = Query(1, ge=1),
        per_page: Optional[int] = Query(None, ge=1),
        order_by: str = "created_at",
        order: str = "DESC",
        filters: AuditFilters = Depends(build_filters),
        actor: Actor = Depends(require_admin),
    ) -> Any:
        """Paged, filtered audit records (newest first by default)."""
        per_page = min(per_page or config.default_per_page, config.max_per_page)
        try:
            records = repository.query(
                filters,
                order_by=order_by,
                order_dir=order,
                limit=per_page,
                offset=(page - 1) * per_page,
            )
            total = repository.count(filters)
        except StoreError as e:
            logger.error(f"Audit query failed: {e}")
            raise HTTPException(status_code=503, detail="Audit log unavailable")

        return AuditPage(
            records=records,
            total=total,
            page=page,
            per_page=per_page,
            total_pages=math.ceil(total / per_page) if per_page else 0,
        )

    @router.get("/stats", response_model=AuditStatistics)
    def audit_stats(
        days: int = Query(30, ge=1, le=365),
        actor: Actor = Depends(require_admin),
    ) -> Any:
        """Totals by status, category, actor type and day."""
        try:
            return repository.statistics(days)
        except StoreError as e:
            logger.error(f"Audit statistics failed: {e}")
            raise HTTPException(status_code=503, detail="Audit log unavailable")

    @router.get("/export")
    def export_audit_logs(
        filters: AuditFilters = Depends(build_filters),
        actor: Actor = Depends(require_admin),
    ) -> Response:
        """CSV download of the filtered records."""
        try:
            content = repository.export_csv(filters, limit=config.export_limit)
        except StoreError as e:
            logger.error(f"Audit export failed: {e}")
            raise HTTPException(status_code=503, detail="Audit log unavailable")

        filename = f"assistify-audit-log-{datetime.now(timezone.utc):%Y-%m-%d}.csv"
        logger.info(f"Audit export by actor {actor.actor_id}")
        return Response(
            content=content,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    return router
