"""Persistence model definition for Mirage accounts and access metadata."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base

if TYPE_CHECKING:
	from models.content_model import Paste, ShortenedUrl
	from models.image_model import Image
	from models.invite_model import Invite


class AccountRelation(str, enum.Enum):
	"""Owned collections a handler can ask to have loaded with the account."""

	IMAGES = "images"
	PASTES = "pastes"
	URLS = "urls"
	INVITES = "invites"


class User(Base):
	"""User account entity: aggregate root for suspension and Discord linking state."""

	__tablename__ = "users"

	id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
	username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
	email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
	password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
	discord: Mapped[str | None] = mapped_column(String(32), nullable=True, default=None)
	suspended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
	suspension_reason: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
	admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
	moderator: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

	images: Mapped[list["Image"]] = relationship("Image", back_populates="uploader", cascade="all, delete-orphan")
	pastes: Mapped[list["Paste"]] = relationship("Paste", back_populates="owner", cascade="all, delete-orphan")
	urls: Mapped[list["ShortenedUrl"]] = relationship("ShortenedUrl", back_populates="owner", cascade="all, delete-orphan")
	invites: Mapped[list["Invite"]] = relationship("Invite", back_populates="creator", cascade="all, delete-orphan")

	def serialize(self) -> dict[str, Any]:
		"""Public view of the account for templates and the analytics dashboard."""
		return {
			"id": str(self.id),
			"username": self.username,
			"email": self.email,
			"discord": self.discord,
			"admin": self.admin,
			"moderator": self.moderator,
			"suspended": self.suspended,
			"suspension_reason": self.suspension_reason,
			"created_at": self.created_at.isoformat() if self.created_at else None,
		}

	def __repr__(self) -> str:
		return f"<User {self.username}>"
