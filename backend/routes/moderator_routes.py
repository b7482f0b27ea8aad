"""Moderator route declarations."""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from dependencies import get_client_ip, get_db, get_notifier, require_moderator
from models.user_model import User
from services.discord_service import DiscordNotifier
from services.moderation_service import ModerationServiceError, delete_image_as_moderator

router = APIRouter(prefix="/moderator", tags=["moderator"])


class DeleteImageRequest(BaseModel):
	reason: str = Field(..., min_length=1, max_length=200)


@router.post("/images/{short_id}/delete", summary="Delete an image as a moderator")
async def delete_image(
	short_id: str,
	payload: DeleteImageRequest,
	moderator: User = Depends(require_moderator),
	db: Session = Depends(get_db),
	notifier: DiscordNotifier = Depends(get_notifier),
	ip: str = Depends(get_client_ip),
) -> dict:
	"""Delete the image and post the moderation audit entry before responding."""
	try:
		image = await run_in_threadpool(delete_image_as_moderator, db, short_id, payload.reason)
	except ModerationServiceError as exc:
		message = str(exc)
		status_code = status.HTTP_404_NOT_FOUND if message.startswith("No image") else status.HTTP_409_CONFLICT
		raise HTTPException(status_code=status_code, detail=message) from exc

	audit_logged = await notifier.notify_moderator_deleted_content(image, moderator, ip)
	return {"message": "Image deleted", "image": image.serialize(), "audit_logged": audit_logged}
