"""Persistence models for pastes and shortened URLs."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base

if TYPE_CHECKING:
	from models.user_model import User


class Paste(Base):
	"""Text paste owned by an account."""

	__tablename__ = "pastes"

	id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
	short_id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
	content: Mapped[str] = mapped_column(Text, nullable=False)
	owner_id: Mapped[uuid.UUID] = mapped_column(
		UUID(as_uuid=True),
		ForeignKey("users.id", ondelete="CASCADE"),
		nullable=False,
		index=True,
	)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

	owner: Mapped["User"] = relationship("User", back_populates="pastes")


class ShortenedUrl(Base):
	"""Short link owned by an account."""

	__tablename__ = "shortened_urls"

	id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
	short_id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
	target: Mapped[str] = mapped_column(String(2048), nullable=False)
	owner_id: Mapped[uuid.UUID] = mapped_column(
		UUID(as_uuid=True),
		ForeignKey("users.id", ondelete="CASCADE"),
		nullable=False,
		index=True,
	)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

	owner: Mapped["User"] = relationship("User", back_populates="urls")
