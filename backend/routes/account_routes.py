"""Account route declarations: owned content pages, Discord linking and bulk deletion."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from cache import Cache
from dependencies import current_account, get_cache, get_db, get_notifier
from models.user_model import AccountRelation, User
from services.account_service import bulk_delete_content
from services.discord_service import DiscordNotifier
from services.notification_service import BulkDeletionKind
from templating import render

router = APIRouter(prefix="/account", tags=["account"])

_BULK_KINDS = {
	"images": BulkDeletionKind.IMAGES,
	"pastes": BulkDeletionKind.PASTES,
	"urls": BulkDeletionKind.URLS,
}

# landing page counters affected by each bulk deletion
_BULK_CACHE_KEYS = {
	BulkDeletionKind.IMAGES: "index.images",
	BulkDeletionKind.URLS: "index.urls",
}


class LinkDiscordRequest(BaseModel):
	discord_id: str = Field(..., pattern=r"^\d{15,21}$")


@router.get("/", response_class=HTMLResponse, summary="Account overview")
def account_overview(request: Request, account: User = Depends(current_account())):
	return render(request, "pages/account.html", {"section": "overview", "account": account, "items": []})


@router.get("/images", response_class=HTMLResponse, summary="Uploaded images")
def account_images(request: Request, account: User = Depends(current_account(AccountRelation.IMAGES))):
	items = [image.short_id for image in account.images if not image.deleted]
	return render(request, "pages/account.html", {"section": "images", "account": account, "items": items})


@router.get("/pastes", response_class=HTMLResponse, summary="Pastes")
def account_pastes(request: Request, account: User = Depends(current_account(AccountRelation.PASTES))):
	items = [paste.short_id for paste in account.pastes]
	return render(request, "pages/account.html", {"section": "pastes", "account": account, "items": items})


@router.get("/urls", response_class=HTMLResponse, summary="Shortened URLs")
def account_urls(request: Request, account: User = Depends(current_account(AccountRelation.URLS))):
	items = [f"{url.short_id} -> {url.target}" for url in account.urls]
	return render(request, "pages/account.html", {"section": "urls", "account": account, "items": items})


@router.get("/invites", response_class=HTMLResponse, summary="Created invites")
def account_invites(request: Request, account: User = Depends(current_account(AccountRelation.INVITES))):
	items = [f"{invite.code} ({invite.redeemed_by or 'unused'})" for invite in account.invites]
	return render(request, "pages/account.html", {"section": "invites", "account": account, "items": items})


@router.post("/discord", summary="Link a Discord account")
async def link_discord(
	payload: LinkDiscordRequest,
	account: User = Depends(current_account()),
	db: Session = Depends(get_db),
	notifier: DiscordNotifier = Depends(get_notifier),
) -> dict[str, str]:
	"""Record the verified Discord id; role and nickname sync finish in the background."""
	await notifier.link_account(db, account, payload.discord_id)
	return {"message": "Discord linked", "discord": payload.discord_id}


@router.post("/{kind}/nuke", summary="Delete all owned content of one kind")
async def nuke_content(
	kind: str,
	account: User = Depends(current_account()),
	db: Session = Depends(get_db),
	cache: Cache = Depends(get_cache),
	notifier: DiscordNotifier = Depends(get_notifier),
) -> dict:
	deletion_kind = _BULK_KINDS.get(kind)
	if deletion_kind is None:
		raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown content kind '{kind}'")

	count = await run_in_threadpool(bulk_delete_content, db, account, deletion_kind)
	cache_key = _BULK_CACHE_KEYS.get(deletion_kind)
	if cache_key is not None:
		await run_in_threadpool(cache.delete, cache_key)
	notified = await notifier.notify_bulk_deletion_complete(account, deletion_kind, count)
	return {"deleted": count, "notified": notified}
