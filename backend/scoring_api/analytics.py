"""Dashboard analytics over scoring attempts.

Unlike the report builders these expect attempts oldest first, so time
series come out in chronological order.
"""
from __future__ import annotations
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, List

from .attempts import AttemptStatus, ScoringAttempt
from .reports import group_attempts, mean_of, percentile, rate_of, build_summary_report, scored_attempts


class GroupBy(str, Enum):
	DAY = "day"
	WEEK = "week"
	MONTH = "month"
	PROVIDER = "provider"
	LEVEL = "level"
	TASK = "task"


class Metric(str, Enum):
	COUNT = "count"
	AVG_SCORE = "avg_score"
	SUCCESS_RATE = "success_rate"
	PROCESSING_TIME = "processing_time"


TREND_WINDOW = 7
TREND_THRESHOLD_PERCENT = 5


def _period_key(attempt: ScoringAttempt, group_by: GroupBy) -> str:
	created = attempt.created_at
	if group_by == GroupBy.DAY:
		return created.date().isoformat()
	if group_by == GroupBy.WEEK:
		# weeks start on Sunday
		start = created.date() - timedelta(days=(created.weekday() + 1) % 7)
		return start.isoformat()
	if group_by == GroupBy.MONTH:
		return f"{created.year}-{created.month:02d}"
	return getattr(attempt, group_by.value) or "unknown"


def _metric_value(attempts: List[ScoringAttempt], metric: Metric) -> float:
	if metric == Metric.AVG_SCORE:
		return mean_of([a.score.percentage for a in attempts if a.score and a.score.percentage])
	if metric == Metric.SUCCESS_RATE:
		return rate_of(sum(1 for a in attempts if a.status == AttemptStatus.SCORED), len(attempts))
	if metric == Metric.PROCESSING_TIME:
		return mean_of([a.processing_time_ms for a in attempts if a.processing_time_ms])
	return len(attempts)


def summary_metrics(attempts: List[ScoringAttempt]) -> Dict[str, Any]:
	summary = build_summary_report(attempts)
	return {
		"total_attempts": summary["overview"]["total_attempts"],
		"scored_attempts": summary["overview"]["scored_attempts"],
		"failed_attempts": summary["overview"]["failed_attempts"],
		"success_rate": summary["overview"]["success_rate"],
		"avg_score": summary["performance"]["avg_score"],
		"avg_processing_time": mean_of([a.processing_time_ms for a in attempts if a.processing_time_ms]),
		"pass_rate": summary["performance"]["pass_rate"],
	}


def time_series(attempts: List[ScoringAttempt], group_by: GroupBy, metric: Metric) -> List[Dict[str, Any]]:
	grouped = group_attempts(attempts, lambda a: _period_key(a, group_by))
	series = [
		{"period": period, "value": _metric_value(group, metric), "count": len(group)}
		for period, group in grouped.items()
	]
	return sorted(series, key=lambda item: item["period"])


def breakdown(attempts: List[ScoringAttempt], dimension: str) -> List[Dict[str, Any]]:
	def key(attempt: ScoringAttempt) -> str:
		value = getattr(attempt, dimension)
		if isinstance(value, Enum):
			value = value.value
		return value or "unknown"

	rows = []
	for category, group in group_attempts(attempts, key).items():
		scored = scored_attempts(group)
		rows.append({
			"category": category,
			"count": len(group),
			"scored_count": len(scored),
			"success_rate": rate_of(len(scored), len(group)),
			"avg_score": mean_of([a.percentage for a in scored]),
			"pass_rate": rate_of(sum(1 for a in scored if a.score.passed), len(scored)),
		})
	return sorted(rows, key=lambda row: row["count"], reverse=True)


def performance_metrics(attempts: List[ScoringAttempt]) -> Dict[str, Any]:
	times = sorted(a.processing_time_ms for a in attempts if a.processing_time_ms and a.processing_time_ms > 0)
	if not times:
		return {
			"avg_processing_time": 0,
			"median_processing_time": 0,
			"p95_processing_time": 0,
			"p99_processing_time": 0,
		}
	return {
		"avg_processing_time": round(mean_of(times)),
		"median_processing_time": percentile(times, 0.5),
		"p95_processing_time": percentile(times, 0.95),
		"p99_processing_time": percentile(times, 0.99),
	}


def quality_metrics(attempts: List[ScoringAttempt]) -> Dict[str, Any]:
	metrics = [a.quality_metrics for a in scored_attempts(attempts) if a.quality_metrics is not None]
	confidences = [m.confidence for m in metrics if m.confidence is not None]
	agreements = [m.model_agreement for m in metrics if m.model_agreement is not None]
	return {
		"avg_confidence": round(mean_of(confidences), 2),
		"quality_flags": sum(len(m.flags) for m in metrics),
		"model_agreement_rate": round(mean_of(agreements), 2),
	}


def trends(series: List[Dict[str, Any]]) -> Dict[str, Any]:
	"""Compare the last window of periods with the one before it."""
	if len(series) < 2:
		return {"trend": "insufficient_data", "change_percent": 0}
	recent = series[-TREND_WINDOW:]
	previous = series[-2 * TREND_WINDOW:-TREND_WINDOW]
	if not previous:
		return {"trend": "insufficient_data", "change_percent": 0}

	recent_avg = mean_of([item["value"] for item in recent])
	previous_avg = mean_of([item["value"] for item in previous])
	change = ((recent_avg - previous_avg) / previous_avg) * 100 if previous_avg != 0 else 0

	trend = "stable"
	if abs(change) > TREND_THRESHOLD_PERCENT:
		trend = "increasing" if change > 0 else "decreasing"
	return {
		"trend": trend,
		"change_percent": round(change, 2),
		"recent_avg": round(recent_avg, 2),
		"previous_avg": round(previous_avg, 2),
	}


def build_analytics(attempts: List[ScoringAttempt], group_by: GroupBy = GroupBy.DAY, metric: Metric = Metric.COUNT) -> Dict[str, Any]:
	series = time_series(attempts, group_by, metric)
	return {
		"summary": summary_metrics(attempts),
		"time_series": series,
		"breakdowns": {
			"by_provider": breakdown(attempts, "provider"),
			"by_level": breakdown(attempts, "level"),
			"by_task": breakdown(attempts, "task"),
			"by_status": breakdown(attempts, "status"),
		},
		"performance": performance_metrics(attempts),
		"quality": quality_metrics(attempts),
		"trends": trends(series),
	}
