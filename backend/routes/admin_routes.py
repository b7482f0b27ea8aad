"""Admin route declarations for account moderation."""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from dependencies import get_db, require_admin
from models.user_model import User
from services.account_service import find_account_by_username, set_suspension

router = APIRouter(prefix="/admin", tags=["admin"])


class SuspensionRequest(BaseModel):
	suspended: bool
	reason: str | None = Field(default=None, max_length=500)


@router.post("/users/{username}/suspension", summary="Suspend or reinstate an account")
def update_suspension(
	username: str,
	payload: SuspensionRequest,
	admin: User = Depends(require_admin),
	db: Session = Depends(get_db),
) -> dict:
	account = find_account_by_username(db, username)
	if account is None:
		raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No user named '{username}'")
	if payload.suspended and not payload.reason:
		raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="A suspension reason is required")

	set_suspension(db, account, payload.suspended, payload.reason)
	return {"message": "Suspension updated", "user": account.serialize(), "by": admin.username}
