"""Landing page counters backed by the shared cache."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cache import Cache
from models.content_model import ShortenedUrl
from models.image_model import Image
from models.user_model import User


def _count(db: Session, model) -> int:
	return int(db.execute(select(func.count()).select_from(model)).scalar_one())


def index_counts(db: Session, cache: Cache) -> dict[str, int]:
	return {
		"users": cache.get_or_set("index.users", lambda: _count(db, User)),
		"images": cache.get_or_set("index.images", lambda: _count(db, Image)),
		"urls": cache.get_or_set("index.urls", lambda: _count(db, ShortenedUrl)),
	}
