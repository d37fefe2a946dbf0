"""Tests for the report builders."""

from datetime import datetime, timedelta, timezone

import pytest

from scoring_api.attempts import ReportType
from scoring_api.reports import (
    build_detailed_report,
    build_performance_report,
    build_quality_report,
    build_report,
    build_summary_report,
    build_user_progress_report,
)

from conftest import make_attempt, newest_first


def test_summary_scenario(scenario_attempts):
    """Seven scored out of ten gives a 70% success rate."""
    report = build_summary_report(scenario_attempts)
    overview = report["overview"]
    assert overview["total_attempts"] == 10
    assert overview["scored_attempts"] == 7
    assert overview["failed_attempts"] == 3
    assert overview["success_rate"] == pytest.approx(70)
    assert report["performance"]["avg_score"] == pytest.approx(502 / 7)
    assert report["performance"]["pass_rate"] == pytest.approx(400 / 7)


def test_summary_empty():
    report = build_summary_report([])
    assert report["overview"]["success_rate"] == 0
    assert report["overview"]["date_range"] == {"first_attempt": None, "last_attempt": None}
    assert report["performance"] == {"avg_score": 0, "pass_rate": 0, "avg_processing_time": 0}
    assert report["breakdowns"] == {"by_provider": [], "by_level": []}


def test_summary_date_range_follows_descending_input():
    older = make_attempt(created_at=datetime(2024, 3, 1, 8, 0))
    newer = make_attempt(created_at=datetime(2024, 3, 9, 8, 0))
    report = build_summary_report([newer, older])
    assert report["overview"]["date_range"]["first_attempt"] == "2024-03-01T08:00:00Z"
    assert report["overview"]["date_range"]["last_attempt"] == "2024-03-09T08:00:00Z"


def test_summary_processing_time_ignores_missing_values():
    attempts = [
        make_attempt(processing_time_ms=None),
        make_attempt(processing_time_ms=200),
        make_attempt(processing_time_ms=400),
    ]
    assert build_summary_report(attempts)["performance"]["avg_processing_time"] == 300


def test_summary_without_any_timing_is_zero():
    attempts = [make_attempt(processing_time_ms=None), make_attempt(processing_time_ms=None)]
    assert build_summary_report(attempts)["performance"]["avg_processing_time"] == 0


def test_summary_breakdowns():
    attempts = [
        make_attempt(provider="EOI", level="B1"),
        make_attempt(provider="EOI", level="B2", status="failed"),
        make_attempt(provider="Cambridge", level="B1", status="processing"),
    ]
    breakdowns = build_summary_report(attempts)["breakdowns"]
    assert breakdowns["by_provider"] == [
        {"provider": "EOI", "count": 2, "success_rate": 50},
        {"provider": "Cambridge", "count": 1, "success_rate": 0},
    ]
    assert breakdowns["by_level"] == [
        {"level": "B1", "count": 2, "success_rate": 50},
        {"level": "B2", "count": 1, "success_rate": 0},
    ]


def test_detailed_without_metadata_hides_metadata_keys(scenario_attempts):
    report = build_detailed_report(scenario_attempts, include_metadata=False)
    assert report["total_count"] == len(scenario_attempts)
    for item in report["attempts"]:
        for key in ("quality_metrics", "detailed_scores", "feedback", "error_details", "exam_session_id"):
            assert key not in item


def test_detailed_with_metadata():
    scored = make_attempt(
        exam_session_id="sess-1",
        percentage=88,
        quality_metrics={"confidence": 0.9, "model_agreement": 0.8, "flags": ["short_answer"]},
    )
    failed = make_attempt(status="failed")
    report = build_detailed_report([scored, failed], include_metadata=True)

    first, second = report["attempts"]
    assert first["score"] == {"total_score": 22.0, "max_score": 25, "percentage": 88, "pass": True}
    assert first["exam_session_id"] == "sess-1"
    assert first["quality_metrics"]["flags"] == ["short_answer"]
    assert first["detailed_scores"] == {"task_achievement": 4}
    assert first["feedback"] == "Good organisation."
    assert second["score"] is None
    assert second["error_details"] == {"message": "model timeout"}


def test_performance_percentiles():
    times = [100, 900, 300, 700, 500, 0, None]
    report = build_performance_report([make_attempt(processing_time_ms=t) for t in times])
    stats = report["processing_times"]
    assert stats["count"] == 5
    assert stats["avg"] == 500
    assert stats["median"] == 500
    assert stats["p95"] == 900
    assert stats["p99"] == 900
    assert stats["min"] == 100
    assert stats["max"] == 900
    assert stats["p95"] <= stats["p99"]


def test_performance_empty_samples_are_zero():
    report = build_performance_report([make_attempt(processing_time_ms=None)])
    assert report["processing_times"] == {
        "count": 0, "avg": 0, "median": 0, "p95": 0, "p99": 0, "min": 0, "max": 0,
    }


def test_performance_hourly_distribution():
    attempts = newest_first([
        make_attempt(created_at=datetime(2024, 3, 9, 14, 5), processing_time_ms=300),
        make_attempt(created_at=datetime(2024, 3, 9, 14, 50), processing_time_ms=None),
        make_attempt(created_at=datetime(2024, 3, 9, 3, 0), processing_time_ms=100),
    ])
    hourly = build_performance_report(attempts)["hourly_distribution"]
    assert hourly == [
        {"hour": 3, "attempt_count": 1, "avg_processing_time": 100},
        {"hour": 14, "attempt_count": 2, "avg_processing_time": 300},
    ]


def test_performance_hour_is_utc():
    madrid_summer = timezone(timedelta(hours=2))
    attempt = make_attempt(created_at=datetime(2024, 6, 10, 0, 30, tzinfo=madrid_summer))
    hourly = build_performance_report([attempt])["hourly_distribution"]
    assert hourly == [{"hour": 22, "attempt_count": 1, "avg_processing_time": 1000}]


def test_performance_status_distribution(scenario_attempts):
    extra = [make_attempt(status="queued"), make_attempt(status="processing")]
    report = build_performance_report(scenario_attempts + extra)
    assert report["status_distribution"] == {"queued": 1, "processing": 1, "scored": 7, "failed": 3}


def test_quality_score_distribution(scenario_attempts):
    report = build_quality_report(scenario_attempts)
    assert report["quality_overview"]["total_scored"] == 7
    assert report["score_distribution"] == {
        "high_scores": 3,
        "medium_scores": 2,
        "low_scores": 2,
        "passing": 4,
        "failing": 3,
    }


def test_quality_boundaries():
    attempts = [make_attempt(percentage=p) for p in (80, 79.9, 60, 59.9)]
    dist = build_quality_report(attempts)["score_distribution"]
    assert (dist["high_scores"], dist["medium_scores"], dist["low_scores"]) == (1, 2, 1)


def test_quality_metrics_and_flags():
    attempts = [
        make_attempt(quality_metrics={"confidence": 0.8, "model_agreement": 0.6, "flags": ["off_topic", "short"]}),
        make_attempt(quality_metrics={"confidence": 0.0, "flags": ["short"]}),
        make_attempt(quality_metrics=None),
        make_attempt(status="failed", quality_metrics={"confidence": 0.1, "flags": ["ignored"]}),
    ]
    report = build_quality_report(attempts)
    overview = report["quality_overview"]
    assert overview["with_quality_metrics"] == 2
    # a reported zero confidence is averaged in, a missing agreement is not
    assert overview["avg_confidence"] == pytest.approx(0.4)
    assert overview["avg_model_agreement"] == pytest.approx(0.6)
    assert report["flags_summary"] == {"off_topic": 1, "short": 2}


def test_quality_without_metrics():
    overview = build_quality_report([make_attempt()])["quality_overview"]
    assert overview["avg_confidence"] == 0
    assert overview["avg_model_agreement"] == 0


def test_user_progress_summary():
    attempts = newest_first([
        make_attempt(created_at=datetime(2024, 3, 1), percentage=50, provider="EOI", level="B1", task="reading"),
        make_attempt(created_at=datetime(2024, 3, 2), status="failed", provider="JQCV", level="B1", task="writing"),
        make_attempt(created_at=datetime(2024, 3, 3), percentage=80, provider="EOI", level="B2", task="reading"),
    ])
    report = build_user_progress_report(attempts, privileged=False)
    assert report["total_attempts"] == 3
    assert report["scored_attempts"] == 2
    assert report["avg_score"] == 65
    assert report["best_score"] == 80
    assert report["recent_score"] == 80
    assert report["improvement_trend"] == 30
    assert report["providers_used"] == ["EOI", "JQCV"]
    assert report["levels_attempted"] == ["B2", "B1"]
    assert report["tasks_completed"] == ["reading", "writing"]


def test_user_progress_single_score_has_no_trend():
    report = build_user_progress_report([make_attempt(percentage=70)])
    assert report["improvement_trend"] == 0
    assert report["recent_score"] == 70


def test_user_progress_privileged_groups_by_user():
    attempts = [
        make_attempt(user_id="u1", percentage=90),
        make_attempt(user_id="u2", percentage=40),
        make_attempt(user_id="u1", percentage=70),
    ]
    report = build_user_progress_report(attempts, privileged=True)
    assert report["total_users"] == 2
    by_user = {s["user_id"]: s for s in report["user_summaries"]}
    assert by_user["u1"]["total_attempts"] == 2
    assert by_user["u1"]["improvement_trend"] == 20
    assert by_user["u2"]["best_score"] == 40


@pytest.mark.parametrize("report_type,key", [
    (ReportType.SUMMARY, "overview"),
    (ReportType.DETAILED, "attempts"),
    (ReportType.PERFORMANCE, "processing_times"),
    (ReportType.QUALITY, "quality_overview"),
    (ReportType.USER_PROGRESS, "total_attempts"),
])
def test_build_report_dispatch(report_type, key, scenario_attempts):
    assert key in build_report(report_type, scenario_attempts)
