from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .attempts import AttemptStatus, ScoringAttempt, to_utc
from .errors import StoreError
from .models import ScoringAttemptRow

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
	"created_at": ScoringAttemptRow.created_at,
	"updated_at": ScoringAttemptRow.updated_at,
	"processing_time_ms": ScoringAttemptRow.processing_time_ms,
}


@dataclass
class AttemptFilters:
	date_from: Optional[datetime] = None
	date_to: Optional[datetime] = None
	provider: Optional[str] = None
	level: Optional[str] = None
	task: Optional[str] = None
	user_id: Optional[str] = None
	exam_session_id: Optional[str] = None
	status: Optional[str] = None
	include_failed: bool = True


def _naive_utc(value: datetime) -> datetime:
	# Rows keep naive UTC timestamps
	return to_utc(value).replace(tzinfo=None)


def row_to_attempt(row: ScoringAttemptRow) -> ScoringAttempt:
	return ScoringAttempt(
		id=row.id,
		user_id=row.user_id,
		exam_session_id=row.exam_session_id,
		provider=row.provider,
		level=row.level,
		task=row.task,
		status=row.status,
		score=row.score_json or None,
		quality_metrics=row.quality_metrics or None,
		error_details=row.error_details,
		processing_time_ms=row.processing_time_ms,
		created_at=to_utc(row.created_at),
		updated_at=to_utc(row.updated_at),
	)


class AttemptStore:
	"""Read-only access to the ``scoring_attempts`` table."""

	def __init__(self, db: Session) -> None:
		self.db = db

	def _filtered(self, stmt, filters: AttemptFilters):
		if filters.date_from is not None:
			stmt = stmt.where(ScoringAttemptRow.created_at >= _naive_utc(filters.date_from))
		if filters.date_to is not None:
			stmt = stmt.where(ScoringAttemptRow.created_at <= _naive_utc(filters.date_to))
		if filters.provider:
			stmt = stmt.where(ScoringAttemptRow.provider == filters.provider)
		if filters.level:
			stmt = stmt.where(ScoringAttemptRow.level == filters.level)
		if filters.task:
			stmt = stmt.where(ScoringAttemptRow.task == filters.task)
		if filters.user_id:
			stmt = stmt.where(ScoringAttemptRow.user_id == filters.user_id)
		if filters.exam_session_id:
			stmt = stmt.where(ScoringAttemptRow.exam_session_id == filters.exam_session_id)
		if filters.status:
			stmt = stmt.where(ScoringAttemptRow.status == filters.status)
		if not filters.include_failed:
			stmt = stmt.where(ScoringAttemptRow.status != AttemptStatus.FAILED.value)
		return stmt

	def fetch(self, filters: AttemptFilters, *, descending: bool = True) -> List[ScoringAttempt]:
		order = ScoringAttemptRow.created_at.desc() if descending else ScoringAttemptRow.created_at.asc()
		stmt = self._filtered(select(ScoringAttemptRow), filters).order_by(order)
		try:
			rows = self.db.execute(stmt).scalars().all()
		except SQLAlchemyError as e:
			logger.error(f"Attempt query failed: {e}")
			raise StoreError()
		return [row_to_attempt(r) for r in rows]

	def page(
		self,
		filters: AttemptFilters,
		*,
		page: int = 1,
		limit: int = 20,
		sort_by: str = "created_at",
		sort_order: str = "desc",
	) -> Tuple[List[ScoringAttempt], int]:
		column = SORTABLE_COLUMNS.get(sort_by, ScoringAttemptRow.created_at)
		order = column.asc() if sort_order == "asc" else column.desc()
		stmt = (
			self._filtered(select(ScoringAttemptRow), filters)
			.order_by(order, ScoringAttemptRow.id)
			.offset((page - 1) * limit)
			.limit(limit)
		)
		count_stmt = self._filtered(select(func.count()).select_from(ScoringAttemptRow), filters)
		try:
			rows = self.db.execute(stmt).scalars().all()
			total = self.db.execute(count_stmt).scalar_one()
		except SQLAlchemyError as e:
			logger.error(f"Attempt page query failed: {e}")
			raise StoreError()
		return [row_to_attempt(r) for r in rows], total
