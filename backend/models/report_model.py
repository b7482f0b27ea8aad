"""Persistence model for abuse reports filed against images."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base

if TYPE_CHECKING:
	from models.image_model import Image


class Report(Base):
	"""Abuse report entity mapped to the reported image."""

	__tablename__ = "reports"

	id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
	image_id: Mapped[uuid.UUID] = mapped_column(
		UUID(as_uuid=True),
		ForeignKey("images.id", ondelete="CASCADE"),
		nullable=False,
		index=True,
	)
	reporter_ip: Mapped[str] = mapped_column(String(64), nullable=False)
	reason: Mapped[str] = mapped_column(Text, nullable=False)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

	image: Mapped["Image"] = relationship("Image", back_populates="reports")
