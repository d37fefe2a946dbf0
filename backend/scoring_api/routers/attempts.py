from __future__ import annotations
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..attempts import AttemptStatus, CEFRLevel, ScoringProvider, TaskType, parse_datetime
from ..db import get_db
from ..errors import InvalidParameter
from ..policy import AuthorizationPolicy, Caller, get_policy
from ..settings import settings
from ..store import SORTABLE_COLUMNS, AttemptFilters, AttemptStore
from .auth import get_current_user

router = APIRouter(prefix="/api/v1/score", tags=["scoring_attempts"])
logger = logging.getLogger(__name__)


def _enum_or_none(enum_cls, raw: Optional[str]) -> Optional[str]:
	# Unknown values are dropped rather than rejected
	if not raw:
		return None
	try:
		return enum_cls(raw).value
	except ValueError:
		return None


def _date_or_none(raw: Optional[str], field: str):
	if not raw:
		return None
	try:
		return parse_datetime(raw, field)
	except InvalidParameter:
		return None


@router.get("/attempts")
def list_attempts(
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=20, ge=1),
	sort_by: str = "created_at",
	sort_order: Literal["asc", "desc"] = "desc",
	provider: Optional[str] = None,
	level: Optional[str] = None,
	task: Optional[str] = None,
	status: Optional[str] = None,
	user_id: Optional[str] = None,
	exam_session_id: Optional[str] = None,
	created_after: Optional[str] = None,
	created_before: Optional[str] = None,
	user: Caller = Depends(get_current_user),
	policy: AuthorizationPolicy = Depends(get_policy),
	db: Session = Depends(get_db),
):
	"""List scoring attempts with filtering and pagination.

	Non-admin callers only ever see their own attempts, whatever
	``user_id`` they pass.
	"""
	limit = min(limit, settings.attempts_page_limit_max)
	if sort_by not in SORTABLE_COLUMNS:
		sort_by = "created_at"

	filters = AttemptFilters(
		date_from=_date_or_none(created_after, "created_after"),
		date_to=_date_or_none(created_before, "created_before"),
		provider=_enum_or_none(ScoringProvider, provider),
		level=_enum_or_none(CEFRLevel, level),
		task=_enum_or_none(TaskType, task),
		status=_enum_or_none(AttemptStatus, status),
		user_id=user_id or None,
		exam_session_id=exam_session_id or None,
	)
	if not policy.is_privileged(user):
		filters.user_id = user.id

	attempts, total = AttemptStore(db).page(
		filters,
		page=page,
		limit=limit,
		sort_by=sort_by,
		sort_order=sort_order,
	)
	logger.debug(f"Listed {len(attempts)}/{total} attempts for {user.id}")
	return {
		"success": True,
		"attempts": [a.model_dump(mode="json", by_alias=True) for a in attempts],
		"pagination": {
			"page": page,
			"limit": limit,
			"total": total,
			"has_more": page * limit < total,
		},
	}
