"""Errors raised by the scoring report pipeline.

Each error carries the HTTP status it is rendered with; ``main.py`` turns
them into ``{"success": false, "error": ...}`` bodies.
"""


class ScoringAPIError(Exception):
	status_code = 500
	default_message = "Internal server error"

	def __init__(self, message: str | None = None) -> None:
		self.message = message or self.default_message
		super().__init__(self.message)


class AuthenticationRequired(ScoringAPIError):
	status_code = 401
	default_message = "Authentication required"


class Forbidden(ScoringAPIError):
	status_code = 403
	default_message = "Insufficient permissions"


class InvalidParameter(ScoringAPIError):
	status_code = 400
	default_message = "Invalid parameter"


class UnsupportedFormat(ScoringAPIError):
	status_code = 400
	default_message = "CSV format not supported for this report type"


class StoreError(ScoringAPIError):
	status_code = 500
	default_message = "Internal server error"
