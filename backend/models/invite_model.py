"""Persistence model for invite codes and who redeemed them."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base

if TYPE_CHECKING:
	from models.user_model import User


class Invite(Base):
	"""Invite created by an account; `redeemed_by` holds the redeeming username."""

	__tablename__ = "invites"

	id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
	code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
	creator_id: Mapped[uuid.UUID] = mapped_column(
		UUID(as_uuid=True),
		ForeignKey("users.id", ondelete="CASCADE"),
		nullable=False,
		index=True,
	)
	redeemed_by: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

	creator: Mapped["User"] = relationship("User", back_populates="invites")
