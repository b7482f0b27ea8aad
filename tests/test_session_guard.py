from __future__ import annotations

import asyncio
import inspect
import uuid

from conftest import MEMBER_A, make_account
from services.discord_service import DiscordNotifier
from services.session_guard import IP_CHANGED_MESSAGE, load_session_account, resolve_request_identity
from sessions import ServerSession

USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64; rv:125.0) Gecko/20100101 Firefox/125.0"


def _session(account, ip="10.0.0.1") -> ServerSession:
	return ServerSession({"logged_in": True, "user": str(account.id), "ip": ip}, session_id="sid")


def _resolve(session, notifier, ip="10.0.0.1"):
	return asyncio.run(
		resolve_request_identity(
			session=session,
			load_account=load_session_account,
			client_ip=ip,
			user_agent=USER_AGENT,
			notifier=notifier,
		)
	)


def test_anonymous_request(recording_notifier):
	identity = _resolve(ServerSession(), recording_notifier)

	assert not identity.authenticated
	assert identity.banner is None


def test_active_account_same_ip(db_session, recording_notifier):
	account = make_account(db_session, "alice")
	session = _session(account)

	identity = _resolve(session, recording_notifier)

	assert identity.authenticated
	assert identity.profile["username"] == "alice"
	assert identity.banner is None
	assert session["logged_in"] is True
	assert recording_notifier.dispatched == []


def test_missing_account_is_anonymous(recording_notifier):
	session = ServerSession({"logged_in": True, "user": str(uuid.uuid4()), "ip": "10.0.0.1"})

	identity = _resolve(session, recording_notifier)

	assert not identity.authenticated


def test_suspended_user_is_logged_out(db_session, recording_notifier):
	account = make_account(db_session, "alice", suspended=True, suspension_reason="spam")
	session = _session(account)

	identity = _resolve(session, recording_notifier)

	assert not identity.authenticated
	assert identity.account is None
	assert identity.banner.css_class == "is-danger"
	assert "spam" in identity.banner.message
	assert "logged out" in identity.banner.message
	assert session.invalidated
	assert recording_notifier.dispatched == []


def test_suspended_admin_keeps_session(db_session, recording_notifier):
	account = make_account(db_session, "root", admin=True, suspended=True, suspension_reason="audit")
	session = _session(account)

	identity = _resolve(session, recording_notifier)

	assert identity.authenticated
	assert identity.banner.css_class == "is-warning"
	assert "admin" in identity.banner.message
	assert not session.invalidated


def test_ip_change_logs_out_and_notifies_once(db_session, recording_notifier):
	account = make_account(db_session, "alice", discord=MEMBER_A)
	session = _session(account, ip="10.0.0.1")

	identity = _resolve(session, recording_notifier, ip="10.9.9.9")

	assert not identity.authenticated
	assert identity.banner.message == IP_CHANGED_MESSAGE
	assert identity.banner.css_class == "is-danger"
	assert session["logged_in"] is False
	assert recording_notifier.dispatched == ["session_ip_mismatch"]

	second = _resolve(session, recording_notifier, ip="10.9.9.9")

	assert not second.authenticated
	assert recording_notifier.dispatched == ["session_ip_mismatch"]


def test_ip_banner_replaces_admin_suspension_banner(db_session, recording_notifier):
	account = make_account(db_session, "root", admin=True, suspended=True, suspension_reason="audit")
	session = _session(account, ip="10.0.0.1")

	identity = _resolve(session, recording_notifier, ip="10.0.0.2")

	assert identity.banner.message == IP_CHANGED_MESSAGE
	assert not identity.authenticated


def test_failed_mismatch_delivery_does_not_break_request(db_session, settings, guild, ops_channel, report_channel):
	member = guild.add_member(MEMBER_A, fail=True)
	notifier = DiscordNotifier(settings)
	notifier.bind_channels(ops_channel, report_channel)
	account = make_account(db_session, "alice", discord=MEMBER_A)
	session = _session(account, ip="10.0.0.1")

	async def run():
		identity = await resolve_request_identity(
			session=session,
			load_account=load_session_account,
			client_ip="10.0.0.2",
			user_agent=USER_AGENT,
			notifier=notifier,
		)
		await notifier.drain()
		return identity

	identity = asyncio.run(run())

	assert identity.banner.message == IP_CHANGED_MESSAGE
	assert member.send_attempts == 1
	assert member.embeds == []


def test_unscheduled_mismatch_notification_is_closed(db_session):
	class ClosedLoopNotifier:
		def __init__(self):
			self.pending = []

		def dispatch(self, coro, label):
			raise RuntimeError("event loop is closed")

		def notify_session_ip_mismatch(self, account, original_ip, new_ip, user_agent):
			coro = asyncio.sleep(0)
			self.pending.append(coro)
			return coro

	notifier = ClosedLoopNotifier()
	account = make_account(db_session, "alice", discord=MEMBER_A)
	session = _session(account, ip="10.0.0.1")

	identity = _resolve(session, notifier, ip="10.0.0.2")

	assert identity.banner.message == IP_CHANGED_MESSAGE
	assert len(notifier.pending) == 1
	assert inspect.getcoroutinestate(notifier.pending[0]) == inspect.CORO_CLOSED
