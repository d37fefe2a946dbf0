from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..analytics import GroupBy, Metric, build_analytics
from ..attempts import isoformat, parse_choice, resolve_date_range
from ..db import get_db
from ..policy import AuthorizationPolicy, Caller, get_policy
from ..store import AttemptFilters, AttemptStore
from .auth import get_current_user

router = APIRouter(prefix="/api/v1/score", tags=["scoring_analytics"])
logger = logging.getLogger(__name__)


@router.get("/analytics")
def get_analytics(
	date_from: Optional[str] = None,
	date_to: Optional[str] = None,
	provider: Optional[str] = None,
	level: Optional[str] = None,
	task: Optional[str] = None,
	user_id: Optional[str] = None,
	group_by: Optional[str] = None,
	metric: Optional[str] = None,
	user: Caller = Depends(get_current_user),
	policy: AuthorizationPolicy = Depends(get_policy),
	db: Session = Depends(get_db),
):
	grouping = parse_choice(GroupBy, group_by, GroupBy.DAY, "group_by")
	measure = parse_choice(Metric, metric, Metric.COUNT, "metric")
	start, end = resolve_date_range(date_from, date_to)
	effective_user = policy.resolve_user_filter(user, user_id)
	is_admin = policy.is_privileged(user)

	attempts = AttemptStore(db).fetch(
		AttemptFilters(
			date_from=start,
			date_to=end,
			provider=provider or None,
			level=level or None,
			task=task or None,
			user_id=effective_user,
		),
		descending=False,
	)
	analytics = build_analytics(attempts, grouping, measure)
	logger.info(f"Built analytics over {len(attempts)} attempts for {user.id} ({grouping.value}/{measure.value})")

	return {
		"success": True,
		"analytics": analytics,
		"query": {
			"date_from": isoformat(start),
			"date_to": isoformat(end),
			"provider": provider,
			"level": level,
			"task": task,
			"user_id": effective_user,
			"group_by": grouping.value,
			"metric": measure.value,
		},
		"meta": {
			"is_admin": is_admin,
			"total_records": analytics["summary"]["total_attempts"],
		},
	}
