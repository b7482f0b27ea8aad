"""Persistence model for uploaded images and their moderation metadata."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base

if TYPE_CHECKING:
	from models.report_model import Report
	from models.user_model import User


class Image(Base):
	"""Uploaded image owned by an account."""

	__tablename__ = "images"

	id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
	short_id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
	path: Mapped[str] = mapped_column(String(255), nullable=False)
	uploader_id: Mapped[uuid.UUID] = mapped_column(
		UUID(as_uuid=True),
		ForeignKey("users.id", ondelete="CASCADE"),
		nullable=False,
		index=True,
	)
	deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
	deletion_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

	uploader: Mapped["User"] = relationship("User", back_populates="images")
	reports: Mapped[list["Report"]] = relationship("Report", back_populates="image", cascade="all, delete-orphan")

	def serialize(self) -> dict[str, Any]:
		return {
			"id": str(self.id),
			"short_id": self.short_id,
			"path": self.path,
			"uploader": self.uploader.username if self.uploader else None,
			"deleted": self.deleted,
			"deletion_reason": self.deletion_reason,
			"created_at": self.created_at.isoformat() if self.created_at else None,
		}
