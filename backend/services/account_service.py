"""Account lifecycle: signup with invites, authentication, lookups and bulk content deletion."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session, selectinload
from werkzeug.security import check_password_hash, generate_password_hash

from models.content_model import Paste, ShortenedUrl
from models.image_model import Image
from models.invite_model import Invite
from models.user_model import AccountRelation, User
from services.notification_service import BulkDeletionKind


logger = logging.getLogger(__name__)

_RELATION_ATTRIBUTES = {
	AccountRelation.IMAGES: User.images,
	AccountRelation.PASTES: User.pastes,
	AccountRelation.URLS: User.urls,
	AccountRelation.INVITES: User.invites,
}

_BULK_MODELS = {
	BulkDeletionKind.IMAGES: (Image, Image.uploader_id),
	BulkDeletionKind.PASTES: (Paste, Paste.owner_id),
	BulkDeletionKind.URLS: (ShortenedUrl, ShortenedUrl.owner_id),
}


class AccountServiceError(ValueError):
	"""Raised when an account operation is rejected."""


def _as_uuid(value: Any) -> uuid.UUID | None:
	if isinstance(value, uuid.UUID):
		return value
	try:
		return uuid.UUID(str(value))
	except (TypeError, ValueError):
		return None


def find_account(db: Session, account_id: Any, relations: Iterable[AccountRelation] = ()) -> User | None:
	"""Fetch an account by id, eagerly loading only the requested collections."""
	parsed_id = _as_uuid(account_id)
	if parsed_id is None:
		return None
	query = select(User).where(User.id == parsed_id)
	for relation in relations:
		query = query.options(selectinload(_RELATION_ATTRIBUTES[relation]))
	return db.execute(query).scalars().first()


def find_account_by_username(db: Session, username: str) -> User | None:
	return db.execute(select(User).where(User.username == username)).scalars().first()


def create_account(
	db: Session,
	username: str,
	email: str,
	password: str,
	invite_code: str | None = None,
) -> User:
	"""Create an account, redeeming `invite_code` when given."""
	username = username.strip()
	email = email.strip().lower()
	if not username or not email or not password:
		raise AccountServiceError("Username, email and password are required.")

	existing = db.execute(
		select(User).where(or_(User.username == username, User.email == email))
	).scalars().first()
	if existing is not None:
		raise AccountServiceError("An account with that username or email already exists.")

	invite = None
	if invite_code:
		invite = db.execute(select(Invite).where(Invite.code == invite_code)).scalars().first()
		if invite is None or invite.redeemed_by is not None:
			raise AccountServiceError("Invite code is invalid or already redeemed.")

	account = User(
		username=username,
		email=email,
		password_hash=generate_password_hash(password),
	)
	db.add(account)
	if invite is not None:
		invite.redeemed_by = username
	db.commit()
	db.refresh(account)
	logger.info("account_created | user=%s | invite=%s", username, invite_code or "-")
	return account


def authenticate(db: Session, username: str, password: str) -> User | None:
	account = find_account_by_username(db, username.strip())
	if account is None or not check_password_hash(account.password_hash, password):
		return None
	return account


def set_suspension(db: Session, account: User, suspended: bool, reason: str | None = None) -> User:
	account.suspended = suspended
	account.suspension_reason = reason if suspended else None
	db.add(account)
	db.commit()
	logger.info("account_suspension_changed | user=%s | suspended=%s", account.username, suspended)
	return account


def bulk_delete_content(db: Session, account: User, kind: BulkDeletionKind) -> int:
	"""Delete every record of `kind` owned by `account`; returns how many were removed."""
	model, owner_column = _BULK_MODELS[kind]
	count = db.execute(select(func.count()).select_from(model).where(owner_column == account.id)).scalar_one()
	db.execute(delete(model).where(owner_column == account.id))
	db.commit()
	logger.info("bulk_deletion | user=%s | kind=%s | count=%s", account.username, kind.name.lower(), count)
	return int(count)
