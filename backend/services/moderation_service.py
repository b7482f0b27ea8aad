"""Moderation workflows: moderator deletions and public abuse reports."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from models.image_model import Image
from models.report_model import Report


logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 2000


class ModerationServiceError(ValueError):
	"""Raised when a moderation action targets missing content or carries invalid input."""


def find_image(db: Session, short_id: str) -> Image | None:
	return db.execute(
		select(Image).options(joinedload(Image.uploader)).where(Image.short_id == short_id)
	).scalars().first()


def delete_image_as_moderator(db: Session, short_id: str, reason: str) -> Image:
	"""Mark an image deleted with the moderator's reason."""
	image = find_image(db, short_id)
	if image is None:
		raise ModerationServiceError(f"No image found with id '{short_id}'.")
	if image.deleted:
		raise ModerationServiceError(f"Image '{short_id}' is already deleted.")

	image.deleted = True
	image.deletion_reason = reason.strip() or "Unspecified"
	db.add(image)
	db.commit()
	logger.info("image_deleted_by_moderator | image=%s | reason=%s", short_id, image.deletion_reason)
	return image


def submit_report(db: Session, short_id: str, reason: str, reporter_ip: str) -> Report:
	reason = reason.strip()
	if not reason:
		raise ModerationServiceError("A report reason is required.")
	if len(reason) > MAX_REASON_LENGTH:
		raise ModerationServiceError(f"Report reason must be at most {MAX_REASON_LENGTH} characters.")

	image = find_image(db, short_id)
	if image is None or image.deleted:
		raise ModerationServiceError(f"No image found with id '{short_id}'.")

	report = Report(image=image, reporter_ip=reporter_ip, reason=reason)
	db.add(report)
	db.commit()
	logger.info("report_submitted | report=%s | image=%s", report.id, short_id)
	return report
