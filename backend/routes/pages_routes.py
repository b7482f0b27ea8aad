"""Public page route declarations: landing page, contact and the Discord invite."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

from cache import Cache
from config import get_settings
from dependencies import get_cache, get_db
from services.stats_service import index_counts
from templating import render

router = APIRouter(tags=["pages"])


@router.get("/", response_class=HTMLResponse, summary="Landing page")
def index(request: Request, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
	"""Render the landing page with cached user, image and URL counts."""
	return render(request, "pages/index.html", index_counts(db, cache))


@router.get("/discord", summary="Discord server invite")
def discord_invite() -> RedirectResponse:
	return RedirectResponse(get_settings().DISCORD_INVITE_URL, status_code=302)


@router.get("/contact", response_class=HTMLResponse, summary="Contact page")
def contact(request: Request):
	return render(request, "pages/contact.html")


@router.get("/error", summary="Deliberate failure for error monitoring")
def error() -> None:
	raise RuntimeError("Test exception")
