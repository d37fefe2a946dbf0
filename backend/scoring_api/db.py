from __future__ import annotations
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./scoring.db"

_engine_kwargs: dict = {}
if DATABASE_URL.startswith("sqlite"):
	_engine_kwargs["connect_args"] = {"check_same_thread": False}
	# A bare in-memory URL must share one connection or every session sees an empty database
	if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
		_engine_kwargs["poolclass"] = StaticPool
else:
	_engine_kwargs["pool_pre_ping"] = True

engine = create_engine(DATABASE_URL, future=True, **_engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()
