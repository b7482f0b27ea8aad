"""Engine, session factory and request-scoped session helpers for Mirage records."""

from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from config import get_settings


settings = get_settings()

Base = declarative_base()

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def build_engine(database_url: str) -> Engine:
	"""PostgreSQL gets a sized pool; SQLite is accepted for local runs and tests."""
	if database_url.startswith("sqlite"):
		options: dict[str, object] = {"connect_args": {"check_same_thread": False}}
		if database_url in _MEMORY_URLS:
			# one shared connection, or each thread sees its own empty database
			options["poolclass"] = StaticPool
		return create_engine(database_url, **options)

	return create_engine(
		database_url,
		pool_pre_ping=True,
		pool_recycle=1800,
		pool_size=10,
		max_overflow=20,
		pool_timeout=30,
		pool_use_lifo=True,
	)


engine = build_engine(settings.DATABASE_URL)

# Loaded rows outlive their session: the session guard hands accounts to handlers and templates.
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@contextmanager
def session_scope() -> Iterator[Session]:
	"""Short-lived session outside the request dependency graph."""
	session = SessionLocal()
	try:
		yield session
	finally:
		session.close()


def get_db() -> Generator[Session, None, None]:
	"""FastAPI dependency: one session per request."""
	with session_scope() as session:
		yield session


def init_db() -> None:
	"""Create any missing tables for the registered models."""
	from models import content_model, image_model, invite_model, report_model, user_model  # noqa: F401

	Base.metadata.create_all(bind=engine)


def check_database_connection() -> bool:
	try:
		with engine.connect() as connection:
			connection.execute(text("SELECT 1"))
	except SQLAlchemyError:
		return False
	return True
