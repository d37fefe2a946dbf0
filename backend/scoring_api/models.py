from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, JSON
from .db import Base


class ScoringAttemptRow(Base):
	__tablename__ = "scoring_attempts"
	id = Column(String(64), primary_key=True)
	user_id = Column(String(64), nullable=True, index=True)
	exam_session_id = Column(String(64), nullable=True, index=True)
	provider = Column(String(32), nullable=False, index=True)
	level = Column(String(8), nullable=False, index=True)
	task = Column(String(32), nullable=False, index=True)
	# queued -> processing -> scored | failed
	status = Column(String(16), nullable=False, default="queued", index=True)
	score_json = Column(JSON, nullable=True)  # present only once scored
	quality_metrics = Column(JSON, nullable=True)
	error_details = Column(JSON, nullable=True)  # present only on failure
	processing_time_ms = Column(Integer, nullable=True)
	# Stored as naive UTC
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AdminUser(Base):
	__tablename__ = "admin_users"
	id = Column(String(64), primary_key=True)
	role = Column(String(32), nullable=False, default="admin")
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
