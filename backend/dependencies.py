"""Shared dependency providers and injectable backend application dependencies."""

from __future__ import annotations

from collections.abc import Callable, Generator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from cache import Cache
from config import get_settings
from database import get_db as database_get_db
from models.user_model import AccountRelation, User
from services.account_service import find_account
from services.discord_service import DiscordNotifier
from services.session_guard import RequestIdentity
from utils.network import client_ip


def get_db() -> Generator[Session, None, None]:
	"""Expose database session dependency for FastAPI route handlers."""
	yield from database_get_db()


def get_identity(request: Request) -> RequestIdentity:
	return getattr(request.state, "identity", None) or RequestIdentity()


def get_notifier(request: Request) -> DiscordNotifier:
	return request.app.state.notifier


def get_cache(request: Request) -> Cache:
	return request.app.state.cache


def get_client_ip(request: Request) -> str:
	return client_ip(request, get_settings().TRUST_PROXY)


def current_account(*relations: AccountRelation) -> Callable[..., User]:
	"""Dependency factory: the signed-in account, attached to the request's db session.

	Only the collections named in `relations` are loaded.
	"""

	def dependency(
		identity: RequestIdentity = Depends(get_identity),
		db: Session = Depends(get_db),
	) -> User:
		if not identity.authenticated or identity.account is None:
			raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
		account = find_account(db, identity.account.id, relations)
		if account is None:
			raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
		return account

	return dependency


def require_admin(account: User = Depends(current_account())) -> User:
	if not account.admin:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not an admin")
	return account


def require_moderator(account: User = Depends(current_account())) -> User:
	if not (account.moderator or account.admin):
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not a moderator")
	return account
