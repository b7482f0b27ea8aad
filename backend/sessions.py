"""Server-side sessions: Redis-backed store and the ASGI middleware that binds it to requests."""

from __future__ import annotations

import json
import logging
import secrets
from typing import Any

import itsdangerous
from itsdangerous.exc import BadSignature
from redis import Redis
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send


logger = logging.getLogger(__name__)

LOGGED_IN_KEY = "logged_in"
ACCOUNT_KEY = "user"
BOUND_IP_KEY = "ip"


class ServerSession(dict):
	"""Session data for one request, plus the opaque id it is stored under."""

	def __init__(self, data: dict[str, Any] | None = None, session_id: str | None = None) -> None:
		super().__init__(data or {})
		self.session_id = session_id
		self.invalidated = False
		self.cycled = False

	def invalidate(self) -> None:
		"""Drop all data and destroy the stored session once the response starts."""
		self.clear()
		self.invalidated = True

	def cycle(self) -> None:
		"""Keep the data but move it to a fresh id; the old record is deleted."""
		self.cycled = True


class RedisSessionStore:
	"""Session records keyed by opaque id, expiring a fixed time after creation."""

	def __init__(self, client: Redis, max_age_seconds: int, prefix: str = "mirage:session") -> None:
		self._client = client
		self.max_age_seconds = max_age_seconds
		self._prefix = prefix

	def _key(self, session_id: str) -> str:
		return f"{self._prefix}:{session_id}"

	def load(self, session_id: str) -> dict[str, Any] | None:
		raw = self._client.get(self._key(session_id))
		if raw is None:
			return None
		return json.loads(raw)

	def create(self, data: dict[str, Any]) -> str:
		session_id = secrets.token_urlsafe(32)
		self._client.set(self._key(session_id), json.dumps(data), ex=self.max_age_seconds)
		return session_id

	def save(self, session_id: str, data: dict[str, Any]) -> bool:
		"""Overwrite an existing record without extending its expiry.

		Returns False when the record has already expired.
		"""
		stored = self._client.set(self._key(session_id), json.dumps(data), keepttl=True, xx=True)
		return bool(stored)

	def delete(self, session_id: str) -> None:
		self._client.delete(self._key(session_id))


class ServerSessionMiddleware:
	"""Load `scope["session"]` from the store and persist it when the response starts.

	The cookie only carries the signed session id. It is issued once, with a
	max age matching the stored record, and expired when the session is
	invalidated.
	"""

	def __init__(
		self,
		app: ASGIApp,
		store: RedisSessionStore,
		secret_key: str,
		session_cookie: str = "mirage.sid",
		path: str = "/",
		same_site: str = "lax",
		https_only: bool = False,
	) -> None:
		self.app = app
		self.store = store
		self.signer = itsdangerous.TimestampSigner(secret_key)
		self.session_cookie = session_cookie
		self.max_age = store.max_age_seconds
		self.path = path
		self.security_flags = "httponly; samesite=" + same_site
		if https_only:
			self.security_flags += "; secure"

	async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
		if scope["type"] != "http":
			await self.app(scope, receive, send)
			return

		connection = HTTPConnection(scope)
		session = await self._load(connection.cookies.get(self.session_cookie))
		had_cookie = session.session_id is not None
		initial_data = dict(session)
		scope["session"] = session

		async def send_wrapper(message: Message) -> None:
			if message["type"] == "http.response.start":
				await self._persist(message, session, had_cookie, initial_data)
			await send(message)

		await self.app(scope, receive, send_wrapper)

	async def _load(self, cookie_value: str | None) -> ServerSession:
		if not cookie_value:
			return ServerSession()
		try:
			session_id = self.signer.unsign(cookie_value.encode("utf-8"), max_age=self.max_age).decode("utf-8")
		except BadSignature:
			logger.info("session_cookie_rejected")
			return ServerSession()
		data = await run_in_threadpool(self.store.load, session_id)
		if data is None:
			return ServerSession()
		return ServerSession(data, session_id=session_id)

	async def _persist(
		self,
		message: Message,
		session: ServerSession,
		had_cookie: bool,
		initial_data: dict[str, Any],
	) -> None:
		headers = MutableHeaders(scope=message)
		if session.invalidated:
			if session.session_id is not None:
				await run_in_threadpool(self.store.delete, session.session_id)
			if had_cookie:
				headers.append("Set-Cookie", self._expired_cookie())
			return

		if session.cycled and session.session_id is not None:
			await run_in_threadpool(self.store.delete, session.session_id)
			session.session_id = None

		if session.session_id is not None:
			if dict(session) == initial_data:
				return
			saved = await run_in_threadpool(self.store.save, session.session_id, dict(session))
			if saved:
				return

		if not session:
			return
		session.session_id = await run_in_threadpool(self.store.create, dict(session))
		headers.append("Set-Cookie", self._issue_cookie(session.session_id))

	def _issue_cookie(self, session_id: str) -> str:
		signed = self.signer.sign(session_id.encode("utf-8")).decode("utf-8")
		return f"{self.session_cookie}={signed}; path={self.path}; Max-Age={self.max_age}; {self.security_flags}"

	def _expired_cookie(self) -> str:
		return (
			f"{self.session_cookie}=null; path={self.path}; "
			f"expires=Thu, 01 Jan 1970 00:00:00 GMT; {self.security_flags}"
		)


def invalidate_session(connection: HTTPConnection) -> None:
	"""Mark the session attached to this request for destruction."""
	session = connection.scope.get("session")
	if isinstance(session, ServerSession):
		session.invalidate()


def cycle_session(connection: HTTPConnection) -> None:
	"""Issue a new session id for this request's data, retiring the old one."""
	session = connection.scope.get("session")
	if isinstance(session, ServerSession):
		session.cycle()
