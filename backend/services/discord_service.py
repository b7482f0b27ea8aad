"""Discord integration: operations log notifications, direct messages and linked-role sync."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Coroutine, Iterable

import discord
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload
from starlette.concurrency import run_in_threadpool

from config import Settings
from models.image_model import Image
from models.invite_model import Invite
from models.report_model import Report
from models.user_model import User
from services import notification_service as notifications
from services.notification_service import BulkDeletionKind, Notification


logger = logging.getLogger(__name__)


class ChatClientNotReady(RuntimeError):
	"""Raised when a channel is needed before the Discord client reported ready."""


# Failures of a single Discord call that are logged and dropped.
BEST_EFFORT_ERRORS = (ChatClientNotReady, discord.DiscordException, asyncio.TimeoutError, OSError)


@dataclass(frozen=True)
class NotificationChannels:
	"""Channel handles resolved once the gateway connection is ready."""

	ops_log: Any
	report_log: Any


def _inviter_name(db: Session, username: str) -> str:
	invite = db.execute(
		select(Invite).options(joinedload(Invite.creator)).where(Invite.redeemed_by == username)
	).scalars().first()
	if invite is None or invite.creator is None:
		return "N/A"
	return invite.creator.username


def _store_link(db: Session, account: User, new_external_id: str) -> str | None:
	"""Commit the new Discord id; returns the id it replaced."""
	previous = account.discord
	account.discord = new_external_id
	db.add(account)
	db.commit()
	logger.info("account_linked | user=%s | discord=%s", account.username, new_external_id)
	return previous


def to_embed(notification: Notification) -> discord.Embed:
	"""Render a notification as a Discord embed, keeping field order."""
	embed = discord.Embed(
		title=notification.title,
		colour=discord.Colour(notification.color),
		description=notification.description,
		timestamp=notification.timestamp,
	)
	for item in notification.fields:
		embed.add_field(name=item.name, value=item.value, inline=item.inline)
	return embed


class DiscordNotifier:
	"""Sends Mirage notifications through a `discord.Client`.

	All sends go through the two channel handles bound by `bind_channels`
	(done from the client's `on_ready`). Members are looked up in the guild
	of the operations log channel; a member who left the guild resolves to
	None and the dependent notification is skipped.
	"""

	def __init__(self, settings: Settings, client: discord.Client | None = None) -> None:
		self.settings = settings
		self.client = client
		self._channels: NotificationChannels | None = None
		self._background: set[asyncio.Task] = set()
		self._runner: asyncio.Task | None = None

	@property
	def ready(self) -> bool:
		return self._channels is not None

	def bind_channels(self, ops_log: Any, report_log: Any) -> None:
		self._channels = NotificationChannels(ops_log=ops_log, report_log=report_log)
		logger.info("discord_channels_bound | ops_log=%s | report_log=%s", getattr(ops_log, "id", None), getattr(report_log, "id", None))

	def channels(self) -> NotificationChannels:
		if self._channels is None:
			raise ChatClientNotReady("Discord client is not ready; notification channels are unbound.")
		return self._channels

	# lifecycle

	async def start(self, token: str) -> None:
		"""Connect the client in the background; returns immediately."""
		if self.client is None:
			raise RuntimeError("No Discord client configured.")
		self._runner = asyncio.create_task(self.client.start(token), name="discord:gateway")
		self._runner.add_done_callback(self._finish_background)
		logger.info("discord_client_starting")

	async def close(self) -> None:
		await self.drain()
		if self.client is not None and not self.client.is_closed():
			await self.client.close()
		if self._runner is not None and not self._runner.done():
			self._runner.cancel()
		self._channels = None

	# background work

	def dispatch(self, coro: Coroutine[Any, Any, Any], label: str) -> asyncio.Task:
		"""Run `coro` as a detached task; failures are logged, never raised to the caller."""
		task = asyncio.get_running_loop().create_task(coro, name=f"discord:{label}")
		self._background.add(task)
		task.add_done_callback(self._finish_background)
		return task

	def _finish_background(self, task: asyncio.Task) -> None:
		self._background.discard(task)
		if task.cancelled():
			return
		exc = task.exception()
		if exc is not None:
			logger.error("discord_task_failed | task=%s", task.get_name(), exc_info=exc)

	async def drain(self) -> None:
		"""Wait for in-flight detached notifications."""
		pending = list(self._background)
		if pending:
			await asyncio.gather(*pending, return_exceptions=True)

	# helpers

	async def _call(self, label: str, awaitable: Awaitable[Any]) -> bool:
		"""Await one Discord call under the configured timeout. Returns success."""
		try:
			await asyncio.wait_for(awaitable, timeout=self.settings.CHAT_TIMEOUT_SECONDS)
		except BEST_EFFORT_ERRORS:
			logger.warning("discord_call_failed | call=%s", label, exc_info=True)
			return False
		return True

	async def _send_to_channel(self, label: str, channel_name: str, notification: Notification) -> bool:
		try:
			channel = getattr(self.channels(), channel_name)
		except ChatClientNotReady:
			logger.warning("notification_dropped | notification=%s | reason=not_ready", label)
			return False
		return await self._call(label, channel.send(embed=to_embed(notification)))

	def resolve_member(self, external_id: str | None) -> Any | None:
		"""Return the guild member for a stored Discord id, or None when absent."""
		if not external_id:
			return None
		try:
			guild = self.channels().ops_log.guild
		except ChatClientNotReady:
			logger.warning("member_lookup_skipped | reason=not_ready")
			return None
		try:
			member_id = int(external_id)
		except ValueError:
			logger.warning("member_lookup_skipped | reason=invalid_id | discord=%s", external_id)
			return None
		return guild.get_member(member_id)

	def _roles(self, member: Any, role_ids: Iterable[int]) -> list[Any]:
		roles = [member.guild.get_role(role_id) for role_id in role_ids]
		return [role for role in roles if role is not None]

	# operations

	async def notify_account_created(self, db: Session, account: User) -> bool:
		"""Post the signup audit entry, naming the inviter when one is on record."""
		invited_by = await run_in_threadpool(_inviter_name, db, account.username)
		return await self._send_to_channel("user_created", "ops_log", notifications.user_created(account, invited_by))

	async def link_account(
		self,
		db: Session,
		account: User,
		new_external_id: str,
		role_ids: Iterable[int] | None = None,
	) -> None:
		"""Record the link, then sync Discord membership in the background.

		Only the commit is awaited. Revoking the previous member, granting the
		new one and the operations log entry run as one detached task working
		from plain values, so the request session may close before it runs.
		"""
		role_ids = list(self.settings.linked_role_ids if role_ids is None else role_ids)
		previous = await run_in_threadpool(_store_link, db, account, new_external_id)
		self.dispatch(
			self.sync_linked_member(account.username, previous, new_external_id, role_ids),
			"account_link",
		)

	async def sync_linked_member(
		self,
		username: str,
		previous_id: str | None,
		new_external_id: str,
		role_ids: list[int],
	) -> None:
		"""Move linked roles from the previous member to the new one and log the link."""
		if previous_id is not None and previous_id != new_external_id:
			old_member = self.resolve_member(previous_id)
			if old_member is not None:
				roles = self._roles(old_member, role_ids)
				if roles:
					await self._call("revoke_roles", old_member.remove_roles(*roles, reason="Mirage account relinked"))
				await self._call("relink_advisory", old_member.send(notifications.relink_advisory()))
			else:
				logger.info("previous_member_absent | user=%s | discord=%s", username, previous_id)

		new_member = self.resolve_member(new_external_id)
		if new_member is not None:
			roles = self._roles(new_member, role_ids)
			if roles:
				await self._call("grant_roles", new_member.add_roles(*roles, reason="Mirage account linked"))
			await self._call("set_nickname", new_member.edit(nick=username))

		await self._send_to_channel("user_linked", "ops_log", notifications.user_linked(username, new_external_id))

	async def notify_moderator_deleted_content(self, image: Image, moderator: User, ip: str) -> bool:
		notification = notifications.moderator_deleted_image(image, moderator, ip, self.settings.public_base_url)
		return await self._send_to_channel("moderator_deletion", "ops_log", notification)

	async def notify_login(self, account: User, ip: str, user_agent: str) -> bool:
		member = self.resolve_member(account.discord)
		if member is None:
			return False
		notification = notifications.user_login(ip, notifications.parse_user_agent(user_agent))
		return await self._call("login_dm", member.send(embed=to_embed(notification)))

	async def notify_session_ip_mismatch(self, account: User, original_ip: str, new_ip: str, user_agent: str) -> bool:
		member = self.resolve_member(account.discord)
		if member is None:
			return False
		notification = notifications.session_ip_mismatch(original_ip, new_ip, notifications.parse_user_agent(user_agent))
		return await self._call("session_mismatch_dm", member.send(embed=to_embed(notification)))

	async def notify_report_submitted(self, report: Report) -> bool:
		notification = notifications.report_submitted(report, self.settings.public_base_url)
		return await self._send_to_channel("report_submitted", "report_log", notification)

	async def notify_bulk_deletion_complete(self, account: User, kind: BulkDeletionKind, count: int) -> bool:
		"""Direct-message a bulk deletion summary.

		Returns whether a message was dispatched, not whether Discord accepted it.
		"""
		member = self.resolve_member(account.discord)
		if member is None:
			return False
		notification = notifications.bulk_deletion_completed(kind, count)
		self.dispatch(self._call(f"{kind.name.lower()}_nuke_dm", member.send(embed=to_embed(notification))), "bulk_deletion")
		return True


def create_discord_client(notifier: DiscordNotifier) -> discord.Client:
	"""Build the gateway client and bind the notifier's channels once it is ready."""
	settings = notifier.settings
	intents = discord.Intents.default()
	intents.guilds = True
	intents.members = True

	client = discord.Client(intents=intents)

	@client.event
	async def on_ready():
		logger.info("discord_ready | user=%s", client.user)
		ops_log = client.get_channel(settings.DISCORD_LOGS) if settings.DISCORD_LOGS else None
		report_log = client.get_channel(settings.DISCORD_REPORTLOGS) if settings.DISCORD_REPORTLOGS else None
		if ops_log is None or report_log is None:
			logger.error(
				"discord_channels_missing | ops_log=%s | report_log=%s",
				settings.DISCORD_LOGS,
				settings.DISCORD_REPORTLOGS,
			)
			return
		notifier.bind_channels(ops_log, report_log)

	notifier.client = client
	return client
