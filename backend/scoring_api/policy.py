from __future__ import annotations
import logging
from typing import Dict, Iterable, Optional

from fastapi import Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .db import get_db
from .errors import Forbidden, StoreError
from .models import AdminUser
from .settings import settings

logger = logging.getLogger(__name__)


class Caller(BaseModel):
	id: str


class AuthorizationPolicy:
	"""Answers who may read whose scoring attempts.

	Privilege comes from the ``admin_users`` table: a caller is privileged
	when its row carries one of the configured admin roles. Lookups are
	memoised for the lifetime of the policy, which is one request.
	"""

	def __init__(self, db: Session, admin_roles: Optional[Iterable[str]] = None) -> None:
		self.db = db
		self.admin_roles = set(admin_roles) if admin_roles is not None else settings.admin_role_set
		self._privileged: Dict[str, bool] = {}

	def is_privileged(self, caller: Caller) -> bool:
		if caller.id not in self._privileged:
			try:
				row = self.db.get(AdminUser, caller.id)
			except SQLAlchemyError as e:
				logger.error(f"Admin lookup failed for {caller.id}: {e}")
				raise StoreError()
			self._privileged[caller.id] = bool(row and row.role in self.admin_roles)
		return self._privileged[caller.id]

	def can_access_user(self, caller: Caller, target_user_id: Optional[str]) -> bool:
		if target_user_id is not None and target_user_id == caller.id:
			return True
		return self.is_privileged(caller)

	def resolve_user_filter(self, caller: Caller, requested_user_id: Optional[str]) -> Optional[str]:
		"""Return the user id to filter on, or None for every user.

		Non-privileged callers that omit ``user_id`` are narrowed to
		themselves; asking for someone else is refused outright.
		"""
		if requested_user_id:
			if not self.can_access_user(caller, requested_user_id):
				logger.warning(f"Caller {caller.id} denied access to attempts of {requested_user_id}")
				raise Forbidden()
			return requested_user_id
		if self.is_privileged(caller):
			return None
		return caller.id


def get_policy(db: Session = Depends(get_db)) -> AuthorizationPolicy:
	return AuthorizationPolicy(db)
