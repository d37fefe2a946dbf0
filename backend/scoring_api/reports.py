"""Report builders over a list of scoring attempts.

Every builder is a pure function of the attempts it is given. Attempts
arrive newest first, as ``AttemptStore.fetch`` returns them. Rates are
percentages in the 0-100 range.
"""
from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, List

from .attempts import AttemptStatus, ReportType, ScoringAttempt, isoformat


def mean_of(values: List[float]) -> float:
	return sum(values) / len(values) if values else 0


def rate_of(part: int, whole: int) -> float:
	return (part / whole) * 100 if whole > 0 else 0


def group_attempts(attempts: Iterable[ScoringAttempt], key: Callable[[ScoringAttempt], Any]) -> Dict[Any, List[ScoringAttempt]]:
	# dicts keep first-seen order
	groups: Dict[Any, List[ScoringAttempt]] = {}
	for attempt in attempts:
		groups.setdefault(key(attempt), []).append(attempt)
	return groups


def _distinct(values: Iterable[Any]) -> List[Any]:
	return list(dict.fromkeys(values))


def percentile(sorted_values: List[float], q: float) -> float:
	if not sorted_values:
		return 0
	return sorted_values[int(len(sorted_values) * q)]


def scored_attempts(attempts: Iterable[ScoringAttempt]) -> List[ScoringAttempt]:
	return [a for a in attempts if a.is_scored]


def build_summary_report(attempts: List[ScoringAttempt]) -> Dict[str, Any]:
	scored = scored_attempts(attempts)
	failed = [a for a in attempts if a.status == AttemptStatus.FAILED]
	timed = [a.processing_time_ms for a in attempts if a.processing_time_ms is not None]

	def breakdown(key: str) -> List[Dict[str, Any]]:
		return [
			{
				key: value,
				"count": len(group),
				"success_rate": rate_of(sum(1 for a in group if a.status == AttemptStatus.SCORED), len(group)),
			}
			for value, group in group_attempts(attempts, lambda a: getattr(a, key)).items()
		]

	return {
		"overview": {
			"total_attempts": len(attempts),
			"scored_attempts": len(scored),
			"failed_attempts": len(failed),
			"success_rate": rate_of(len(scored), len(attempts)),
			"date_range": {
				"first_attempt": isoformat(attempts[-1].created_at) if attempts else None,
				"last_attempt": isoformat(attempts[0].created_at) if attempts else None,
			},
		},
		"performance": {
			"avg_score": mean_of([a.percentage for a in scored]),
			"pass_rate": rate_of(sum(1 for a in scored if a.score.passed), len(scored)),
			"avg_processing_time": mean_of(timed),
		},
		"breakdowns": {
			"by_provider": breakdown("provider"),
			"by_level": breakdown("level"),
		},
	}


def _detailed_item(attempt: ScoringAttempt, include_metadata: bool) -> Dict[str, Any]:
	item = {
		"id": attempt.id,
		"created_at": isoformat(attempt.created_at),
		"updated_at": isoformat(attempt.updated_at),
		"user_id": attempt.user_id,
		"provider": attempt.provider,
		"level": attempt.level,
		"task": attempt.task,
		"status": attempt.status.value,
		"processing_time_ms": attempt.processing_time_ms,
		"score": attempt.score.summary() if attempt.score else None,
	}
	if include_metadata:
		item.update({
			"exam_session_id": attempt.exam_session_id,
			"quality_metrics": attempt.quality_metrics.model_dump() if attempt.quality_metrics else None,
			"detailed_scores": attempt.score.detailed_scores if attempt.score else None,
			"feedback": attempt.score.feedback if attempt.score else None,
			"error_details": attempt.error_details,
		})
	return item


def build_detailed_report(attempts: List[ScoringAttempt], include_metadata: bool = False) -> Dict[str, Any]:
	return {
		"attempts": [_detailed_item(a, include_metadata) for a in attempts],
		"total_count": len(attempts),
	}


def build_performance_report(attempts: List[ScoringAttempt]) -> Dict[str, Any]:
	times = sorted(a.processing_time_ms for a in attempts if a.processing_time_ms and a.processing_time_ms > 0)

	hourly = []
	for hour, group in sorted(group_attempts(attempts, lambda a: a.created_at.hour).items()):
		hour_times = [a.processing_time_ms for a in group if a.processing_time_ms is not None]
		hourly.append({
			"hour": hour,
			"attempt_count": len(group),
			"avg_processing_time": mean_of(hour_times),
		})

	return {
		"processing_times": {
			"count": len(times),
			"avg": mean_of(times),
			"median": percentile(times, 0.5),
			"p95": percentile(times, 0.95),
			"p99": percentile(times, 0.99),
			"min": times[0] if times else 0,
			"max": times[-1] if times else 0,
		},
		"hourly_distribution": hourly,
		"status_distribution": {
			status.value: sum(1 for a in attempts if a.status == status)
			for status in AttemptStatus
		},
	}


def build_quality_report(attempts: List[ScoringAttempt]) -> Dict[str, Any]:
	scored = scored_attempts(attempts)
	with_metrics = [a for a in scored if a.quality_metrics is not None]
	# Only missing readings are skipped; a reported 0.0 counts
	confidences = [a.quality_metrics.confidence for a in with_metrics if a.quality_metrics.confidence is not None]
	agreements = [a.quality_metrics.model_agreement for a in with_metrics if a.quality_metrics.model_agreement is not None]

	flags: Dict[str, int] = {}
	for attempt in with_metrics:
		for flag in attempt.quality_metrics.flags:
			flags[flag] = flags.get(flag, 0) + 1

	percentages = [a.percentage for a in scored]
	passing = sum(1 for a in scored if a.score.passed)
	return {
		"quality_overview": {
			"total_scored": len(scored),
			"with_quality_metrics": len(with_metrics),
			"avg_confidence": mean_of(confidences),
			"avg_model_agreement": mean_of(agreements),
		},
		"flags_summary": flags,
		"score_distribution": {
			"high_scores": sum(1 for p in percentages if p >= 80),
			"medium_scores": sum(1 for p in percentages if 60 <= p < 80),
			"low_scores": sum(1 for p in percentages if p < 60),
			"passing": passing,
			"failing": len(scored) - passing,
		},
	}


def build_user_progress_summary(attempts: List[ScoringAttempt]) -> Dict[str, Any]:
	scored = scored_attempts(attempts)
	scores = [a.percentage for a in scored]
	return {
		"total_attempts": len(attempts),
		"scored_attempts": len(scored),
		"avg_score": mean_of(scores),
		"best_score": max(scores) if scores else 0,
		"recent_score": scores[0] if scores else 0,
		# newest minus oldest
		"improvement_trend": scores[0] - scores[-1] if len(scores) >= 2 else 0,
		"providers_used": _distinct(a.provider for a in attempts),
		"levels_attempted": _distinct(a.level for a in attempts),
		"tasks_completed": _distinct(a.task for a in attempts),
	}


def build_user_progress_report(attempts: List[ScoringAttempt], privileged: bool = False) -> Dict[str, Any]:
	if not privileged:
		return build_user_progress_summary(attempts)
	by_user = group_attempts(attempts, lambda a: a.user_id)
	return {
		"user_summaries": [
			{"user_id": user_id, **build_user_progress_summary(group)}
			for user_id, group in by_user.items()
		],
		"total_users": len(by_user),
	}


def build_report(
	report_type: ReportType,
	attempts: List[ScoringAttempt],
	*,
	include_metadata: bool = False,
	privileged: bool = False,
) -> Dict[str, Any]:
	if report_type == ReportType.SUMMARY:
		return build_summary_report(attempts)
	if report_type == ReportType.DETAILED:
		return build_detailed_report(attempts, include_metadata)
	if report_type == ReportType.PERFORMANCE:
		return build_performance_report(attempts)
	if report_type == ReportType.QUALITY:
		return build_quality_report(attempts)
	if report_type == ReportType.USER_PROGRESS:
		return build_user_progress_report(attempts, privileged)
	raise ValueError(f"Unknown report type: {report_type}")
