"""Admin analytics dashboard route declarations."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from dependencies import get_db, require_admin
from models.image_model import Image
from models.user_model import User
from templating import render

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/", response_class=HTMLResponse, summary="Analytics dashboard")
def analytics_dashboard(
	request: Request,
	admin: User = Depends(require_admin),
	db: Session = Depends(get_db),
):
	"""Render every account and image, as rows and as JSON for the dashboard charts."""
	_ = admin
	users = list(db.execute(select(User).order_by(User.created_at.asc())).scalars().all())
	images = list(
		db.execute(select(Image).options(joinedload(Image.uploader)).order_by(Image.created_at.asc())).scalars().all()
	)
	return render(
		request,
		"pages/analytics/index.html",
		{
			"users": users,
			"images": images,
			"users_serialized": [user.serialize() for user in users],
			"images_serialized": [image.serialize() for image in images],
		},
	)
