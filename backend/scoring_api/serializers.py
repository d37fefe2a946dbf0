from __future__ import annotations
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse, Response

from .attempts import ReportQuery, ReportType, isoformat
from .errors import UnsupportedFormat


DETAILED_CSV_HEADERS = [
	"ID", "Created At", "User ID", "Provider", "Level", "Task", "Status",
	"Score %", "Pass", "Processing Time (ms)",
]
SUMMARY_CSV_HEADERS = ["Provider", "Attempts", "Success Rate %"]


def _cell(value: Any) -> str:
	# Missing, zero and false values all render as an empty cell
	if value is None or value is False or value == 0 or value == "":
		return ""
	if value is True:
		return "true"
	return str(value)


def _attachment_name(report_type: ReportType, ext: str, now: datetime) -> str:
	return f'attachment; filename="scoring-report-{report_type.value}-{now.date().isoformat()}.{ext}"'


def report_meta(query: ReportQuery, *, now: Optional[datetime] = None) -> Dict[str, Any]:
	now = now or datetime.now(timezone.utc)
	return {
		"generated_at": isoformat(now),
		"report_type": query.type.value,
		"date_range": {
			"from": isoformat(query.date_from),
			"to": isoformat(query.date_to),
		},
		"filters": {
			"provider": query.provider,
			"level": query.level,
			"task": query.task,
			"user_id": query.user_id,
		},
	}


def csv_rows(report: Dict[str, Any], report_type: ReportType) -> tuple[List[str], List[List[str]]]:
	if report_type == ReportType.DETAILED:
		rows = []
		for attempt in report["attempts"]:
			score = attempt.get("score") or {}
			rows.append([
				_cell(attempt["id"]),
				_cell(attempt["created_at"]),
				_cell(attempt["user_id"]),
				_cell(attempt["provider"]),
				_cell(attempt["level"]),
				_cell(attempt["task"]),
				_cell(attempt["status"]),
				_cell(score.get("percentage")),
				_cell(score.get("pass")),
				_cell(attempt["processing_time_ms"]),
			])
		return DETAILED_CSV_HEADERS, rows
	if report_type == ReportType.SUMMARY:
		rows = [
			[_cell(item["provider"]), str(item["count"]), f"{item['success_rate']:.1f}"]
			for item in report["breakdowns"]["by_provider"]
		]
		return SUMMARY_CSV_HEADERS, rows
	raise UnsupportedFormat()


def render_csv(report: Dict[str, Any], report_type: ReportType) -> str:
	"""Render a summary or detailed report as CSV.

	Cells are wrapped in double quotes as-is; embedded quotes and commas
	are not escaped.
	"""
	headers, rows = csv_rows(report, report_type)
	lines = [",".join(headers)]
	lines.extend(",".join(f'"{cell}"' for cell in row) for row in rows)
	return "\n".join(lines)


def render_pdf_text(report: Dict[str, Any], report_type: ReportType) -> str:
	# Placeholder until a real PDF renderer exists
	return f"Scoring Report - {report_type.value.upper()}\n\n{json.dumps(report, indent=2)}"


def json_response(report: Dict[str, Any], query: ReportQuery) -> JSONResponse:
	return JSONResponse({"success": True, "report": report, "meta": report_meta(query)})


def csv_response(report: Dict[str, Any], report_type: ReportType) -> Response:
	content = render_csv(report, report_type)
	return Response(
		content=content,
		media_type="text/csv",
		headers={"Content-Disposition": _attachment_name(report_type, "csv", datetime.now(timezone.utc))},
	)


def pdf_response(report: Dict[str, Any], report_type: ReportType) -> Response:
	return Response(
		content=render_pdf_text(report, report_type),
		media_type="application/pdf",
		headers={"Content-Disposition": _attachment_name(report_type, "pdf", datetime.now(timezone.utc))},
	)
