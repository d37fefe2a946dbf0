from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..attempts import ReportFormat, ReportQuery
from ..db import get_db
from ..policy import AuthorizationPolicy, Caller, get_policy
from ..reports import build_report
from ..serializers import csv_response, json_response, pdf_response
from ..store import AttemptFilters, AttemptStore
from .auth import get_current_user

router = APIRouter(prefix="/api/v1/score", tags=["scoring_reports"])
logger = logging.getLogger(__name__)


@router.get("/reports")
def get_report(
	format: Optional[str] = None,
	type: Optional[str] = None,
	date_from: Optional[str] = None,
	date_to: Optional[str] = None,
	provider: Optional[str] = None,
	level: Optional[str] = None,
	task: Optional[str] = None,
	user_id: Optional[str] = None,
	include_failed: Optional[str] = None,
	include_metadata: Optional[str] = None,
	user: Caller = Depends(get_current_user),
	policy: AuthorizationPolicy = Depends(get_policy),
	db: Session = Depends(get_db),
):
	"""Generate a scoring report as JSON, CSV or a text placeholder PDF.

	Runs authenticate -> validate -> resolve access -> fetch -> build ->
	serialize; any failure aborts the whole request.
	"""
	query = ReportQuery.from_params(
		format=format,
		type=type,
		date_from=date_from,
		date_to=date_to,
		provider=provider,
		level=level,
		task=task,
		user_id=user_id,
		include_failed=include_failed,
		include_metadata=include_metadata,
	)
	effective_user = policy.resolve_user_filter(user, query.user_id)
	privileged = policy.is_privileged(user)

	attempts = AttemptStore(db).fetch(AttemptFilters(
		date_from=query.date_from,
		date_to=query.date_to,
		provider=query.provider,
		level=query.level,
		task=query.task,
		user_id=effective_user,
		include_failed=query.include_failed,
	))
	report = build_report(
		query.type,
		attempts,
		include_metadata=query.include_metadata,
		privileged=privileged,
	)
	logger.info(f"Built {query.type.value} report over {len(attempts)} attempts for {user.id} ({query.format.value})")

	if query.format == ReportFormat.CSV:
		return csv_response(report, query.type)
	if query.format == ReportFormat.PDF:
		return pdf_response(report, query.type)
	return json_response(report, query)
