from __future__ import annotations
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidParameter
from .settings import settings


class ScoringProvider(str, Enum):
	EOI = "EOI"
	JQCV = "JQCV"
	CAMBRIDGE = "Cambridge"
	CERVANTES = "Cervantes"


class CEFRLevel(str, Enum):
	A1 = "A1"
	A2 = "A2"
	B1 = "B1"
	B2 = "B2"
	C1 = "C1"
	C2 = "C2"


class TaskType(str, Enum):
	READING = "reading"
	LISTENING = "listening"
	USE_OF_ENGLISH = "use_of_english"
	WRITING = "writing"
	SPEAKING = "speaking"
	MEDIATION = "mediation"


class AttemptStatus(str, Enum):
	QUEUED = "queued"
	PROCESSING = "processing"
	SCORED = "scored"
	FAILED = "failed"


class ReportFormat(str, Enum):
	JSON = "json"
	CSV = "csv"
	PDF = "pdf"


class ReportType(str, Enum):
	SUMMARY = "summary"
	DETAILED = "detailed"
	PERFORMANCE = "performance"
	QUALITY = "quality"
	USER_PROGRESS = "user_progress"


class AttemptScore(BaseModel):
	model_config = ConfigDict(populate_by_name=True, extra="allow")

	total_score: Optional[float] = None
	max_score: Optional[float] = None
	percentage: Optional[float] = None
	passed: bool = Field(default=False, alias="pass")
	detailed_scores: Optional[Any] = None
	feedback: Optional[Any] = None

	@field_validator("passed", mode="before")
	@classmethod
	def _missing_pass_is_false(cls, value):
		# stored payloads may carry "pass": null
		return False if value is None else value

	def summary(self) -> Dict[str, Any]:
		return {
			"total_score": self.total_score,
			"max_score": self.max_score,
			"percentage": self.percentage,
			"pass": self.passed,
		}


class QualityMetrics(BaseModel):
	model_config = ConfigDict(extra="allow")

	confidence: Optional[float] = Field(default=None, ge=0, le=1)
	model_agreement: Optional[float] = Field(default=None, ge=0, le=1)
	flags: List[str] = Field(default_factory=list)


class ScoringAttempt(BaseModel):
	"""One scoring request/result pair as read from the attempt store.

	Provider, level and task stay plain strings: stored rows are not
	guaranteed to match the enums, and reports group on whatever is there.
	"""

	id: str
	user_id: Optional[str] = None
	exam_session_id: Optional[str] = None
	provider: str
	level: str
	task: str
	status: AttemptStatus
	score: Optional[AttemptScore] = None
	quality_metrics: Optional[QualityMetrics] = None
	error_details: Optional[Any] = None
	processing_time_ms: Optional[int] = Field(default=None, ge=0)
	created_at: datetime
	updated_at: datetime

	@field_validator("created_at", "updated_at")
	@classmethod
	def _as_utc(cls, value: datetime) -> datetime:
		return to_utc(value)

	@property
	def is_scored(self) -> bool:
		return self.status == AttemptStatus.SCORED and self.score is not None

	@property
	def percentage(self) -> float:
		if self.score is None or self.score.percentage is None:
			return 0
		return self.score.percentage


def to_utc(value: datetime) -> datetime:
	if value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value.astimezone(timezone.utc)


def isoformat(value: Optional[datetime]) -> Optional[str]:
	if value is None:
		return None
	return to_utc(value).isoformat().replace("+00:00", "Z")


def parse_datetime(raw: str, field: str) -> datetime:
	"""Parse an ISO-8601 date or datetime; naive values are read as UTC."""
	text = raw.strip()
	if text.endswith("Z"):
		text = text[:-1] + "+00:00"
	try:
		value = datetime.fromisoformat(text)
	except ValueError:
		raise InvalidParameter(f"Invalid {field}: {raw!r}")
	return to_utc(value)


def parse_choice(enum_cls, raw: Optional[str], default, field: str):
	if raw is None or raw == "":
		return default
	try:
		return enum_cls(raw)
	except ValueError:
		allowed = ", ".join(e.value for e in enum_cls)
		raise InvalidParameter(f"Invalid {field}. Use {allowed}")


def resolve_date_range(
	date_from: Optional[str],
	date_to: Optional[str],
	*,
	now: Optional[datetime] = None,
) -> tuple[datetime, datetime]:
	now = to_utc(now) if now else datetime.now(timezone.utc)
	start = parse_datetime(date_from, "date_from") if date_from else now - timedelta(days=settings.report_default_window_days)
	end = parse_datetime(date_to, "date_to") if date_to else now
	if start > end:
		raise InvalidParameter("Invalid date range")
	return start, end


class ReportQuery(BaseModel):
	format: ReportFormat = ReportFormat.JSON
	type: ReportType = ReportType.SUMMARY
	date_from: datetime
	date_to: datetime
	provider: Optional[str] = None
	level: Optional[str] = None
	task: Optional[str] = None
	user_id: Optional[str] = None
	include_failed: bool = False
	include_metadata: bool = False

	@classmethod
	def from_params(
		cls,
		*,
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
		now: Optional[datetime] = None,
	) -> "ReportQuery":
		report_format = parse_choice(ReportFormat, format, ReportFormat.JSON, "format")
		report_type = parse_choice(ReportType, type, ReportType.SUMMARY, "report type")
		start, end = resolve_date_range(date_from, date_to, now=now)
		return cls(
			format=report_format,
			type=report_type,
			date_from=start,
			date_to=end,
			provider=provider or None,
			level=level or None,
			task=task or None,
			user_id=user_id or None,
			include_failed=include_failed == "true",
			include_metadata=include_metadata == "true",
		)
