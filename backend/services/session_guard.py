"""Per-request identity resolution: suspension policy and session IP binding."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, MutableMapping, Protocol

from starlette.concurrency import run_in_threadpool

from database import session_scope
from models.user_model import User
from services.account_service import find_account
from sessions import ACCOUNT_KEY, BOUND_IP_KEY, LOGGED_IN_KEY, ServerSession


logger = logging.getLogger(__name__)

IP_CHANGED_MESSAGE = "Your IP has changed, please login again."


class MismatchNotifier(Protocol):
	def dispatch(self, coro: Any, label: str) -> Any:
		...

	async def notify_session_ip_mismatch(self, account: User, original_ip: str, new_ip: str, user_agent: str) -> bool:
		...


@dataclass(frozen=True)
class Banner:
	"""Site-wide message shown above the page content."""

	message: str
	css_class: str


@dataclass
class RequestIdentity:
	"""Who the request is authenticated as, as seen by route handlers and templates."""

	authenticated: bool = False
	account: User | None = None
	profile: dict[str, Any] | None = None
	banner: Banner | None = None

	def detach(self) -> None:
		self.authenticated = False
		self.account = None
		self.profile = None


def load_session_account(account_id: Any) -> User | None:
	"""Load the bare account row for a session; owned collections are left unloaded."""
	with session_scope() as db:
		return find_account(db, account_id)


async def resolve_request_identity(
	session: MutableMapping[str, Any] | None,
	load_account: Callable[[Any], User | None],
	client_ip: str,
	user_agent: str,
	notifier: MismatchNotifier,
) -> RequestIdentity:
	"""Resolve the request identity from session state.

	Suspension is checked before the IP binding. A suspended admin keeps the
	session with a warning; anyone else suspended is logged out and the
	session destroyed. An IP differing from the one bound at login clears the
	login for this request and sends one mismatch notification in the
	background. The IP banner, coming last, replaces a suspension banner.
	"""
	identity = RequestIdentity()
	if not session or not session.get(LOGGED_IN_KEY):
		return identity

	account = await run_in_threadpool(load_account, session.get(ACCOUNT_KEY))
	if account is None:
		logger.info("session_account_missing | account_id=%s", session.get(ACCOUNT_KEY))
		return identity

	identity.authenticated = True
	identity.account = account
	identity.profile = account.serialize()

	if account.suspended:
		if account.admin:
			identity.banner = Banner(
				message=(
					f"Your account was suspended for the following reason:\n{account.suspension_reason}, "
					"but you are an admin, which prevented you from being logged out."
				),
				css_class="is-warning",
			)
		else:
			identity.banner = Banner(
				message=(
					f"Your account was suspended for the following reason:\n{account.suspension_reason}. "
					"You have been logged out."
				),
				css_class="is-danger",
			)
			identity.detach()
			session[LOGGED_IN_KEY] = False
			if isinstance(session, ServerSession):
				session.invalidate()
			logger.info("suspended_session_closed | user=%s", account.username)

	if identity.authenticated and session.get(LOGGED_IN_KEY):
		bound_ip = session.get(BOUND_IP_KEY)
		if bound_ip != client_ip:
			identity.detach()
			session[LOGGED_IN_KEY] = False
			identity.banner = Banner(message=IP_CHANGED_MESSAGE, css_class="is-danger")
			logger.warning(
				"session_ip_mismatch | user=%s | bound_ip=%s | ip=%s",
				account.username,
				bound_ip,
				client_ip,
			)
			pending = notifier.notify_session_ip_mismatch(account, bound_ip or "unknown", client_ip, user_agent)
			try:
				notifier.dispatch(pending, "session_ip_mismatch")
			except RuntimeError:
				pending.close()
				logger.exception("session_ip_mismatch_notification_failed | user=%s", account.username)

	return identity
