"""Builders for Discord notification payloads, kept free of any transport code."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone

from user_agents import parse as parse_user_agent_string

from models.image_model import Image
from models.report_model import Report
from models.user_model import User


COLOR_GREEN = 0x37B24D
COLOR_CYAN = 0x1098AD
COLOR_RED = 0xF03E3E
COLOR_YELLOW = 0xF59F00


@dataclass(frozen=True)
class NotificationField:
	name: str
	value: str
	inline: bool = False


@dataclass(frozen=True)
class Notification:
	"""Transport-neutral notification: title, accent color, timestamp and ordered fields."""

	title: str
	color: int
	timestamp: datetime
	fields: tuple[NotificationField, ...] = field(default_factory=tuple)
	description: str | None = None

	@property
	def field_names(self) -> list[str]:
		return [item.name for item in self.fields]


@dataclass(frozen=True)
class ClientAgent:
	"""Browser, device and OS strings derived from a User-Agent header."""

	browser: str
	device: str
	os: str


class BulkDeletionKind(enum.Enum):
	"""Content kinds an account can bulk delete, with their display labels."""

	IMAGES = ("Image", "Images", "images")
	PASTES = ("Paste", "Pastes", "pastes")
	URLS = ("URL", "URLs", "shortened URLs")

	def __init__(self, singular: str, plural: str, noun: str) -> None:
		self.singular = singular
		self.plural = plural
		self.noun = noun


def _now(timestamp: datetime | None) -> datetime:
	return timestamp or datetime.now(timezone.utc)


def parse_user_agent(user_agent: str) -> ClientAgent:
	"""Split a User-Agent header into display strings; unknown parts read as "Other"."""
	agent = parse_user_agent_string(user_agent or "")
	return ClientAgent(
		browser=agent.get_browser(),
		device=agent.get_device(),
		os=agent.get_os(),
	)


def user_created(account: User, invited_by: str, timestamp: datetime | None = None) -> Notification:
	return Notification(
		title="User Created",
		color=COLOR_GREEN,
		description="A user signed up on the Mirage instance",
		timestamp=_now(timestamp),
		fields=(
			NotificationField("Username", account.username),
			NotificationField("Email", account.email),
			NotificationField("Invited By", invited_by),
		),
	)


def user_linked(username: str, external_id: str, timestamp: datetime | None = None) -> Notification:
	return Notification(
		title="User Linked Discord",
		color=COLOR_CYAN,
		description="A user linked their Discord to their account",
		timestamp=_now(timestamp),
		fields=(
			NotificationField("Username", username),
			NotificationField("Discord", f"<@{external_id}>"),
			NotificationField("Discord ID", external_id),
		),
	)


def moderator_deleted_image(
	image: Image,
	moderator: User,
	moderator_ip: str,
	base_url: str,
	timestamp: datetime | None = None,
) -> Notification:
	"""Moderation audit entry; the uploader's Discord pair is present only when linked."""
	uploader = image.uploader
	fields = [
		NotificationField("Deletion Type", image.deletion_reason or "N/A"),
		NotificationField("Uploader", f"[{uploader.username}]({base_url}/admin/users/{uploader.username})"),
	]
	if uploader.discord:
		fields.append(NotificationField("Discord", f"<@{uploader.discord}>"))
		fields.append(NotificationField("Discord ID", uploader.discord))
	fields.append(NotificationField("Moderator", f"[{moderator.username}]({base_url}/admin/users/{moderator.username})"))
	fields.append(NotificationField("Moderator IP", moderator_ip))

	return Notification(
		title="Image Deleted By Moderator",
		color=COLOR_RED,
		description=(
			f"Image `{image.short_id}` was deleted by a moderator\n"
			f"[View on Moderator Dashboard]({base_url}/moderator/images/{image.short_id})"
		),
		timestamp=_now(timestamp),
		fields=tuple(fields),
	)


def user_login(ip: str, agent: ClientAgent, timestamp: datetime | None = None) -> Notification:
	return Notification(
		title="User Login",
		color=COLOR_YELLOW,
		description="Your Mirage account was logged into",
		timestamp=_now(timestamp),
		fields=(
			NotificationField("IP Address", ip),
			NotificationField("Browser", agent.browser),
			NotificationField("Device", agent.device),
			NotificationField("OS", agent.os),
		),
	)


def session_ip_mismatch(
	original_ip: str,
	new_ip: str,
	agent: ClientAgent,
	timestamp: datetime | None = None,
) -> Notification:
	return Notification(
		title="User Session IP Mismatch",
		color=COLOR_RED,
		description=(
			"Your Mirage account has been logged into with an existing session with a new IP!\n"
			"This could be due to:\n"
			"* Dynamic IPs\n"
			"* You connected to a VPN\n"
			"* Your session was stolen\n\n"
			"If this was not you, contact a Mirage admin immediately."
		),
		timestamp=_now(timestamp),
		fields=(
			NotificationField("your IP address", original_ip),
			NotificationField("Bad IP Address", new_ip),
			NotificationField("Browser", agent.browser),
			NotificationField("Device", agent.device),
			NotificationField("OS", agent.os),
		),
	)


def report_submitted(report: Report, base_url: str, timestamp: datetime | None = None) -> Notification:
	image = report.image
	return Notification(
		title="Abuse Report Submitted",
		color=COLOR_RED,
		description=(
			f"Report `{report.id}` was submitted\n"
			f"[View on Moderator Dashboard]({base_url}/moderator/reports/{report.id})"
		),
		timestamp=_now(timestamp),
		fields=(
			NotificationField("Reporter IP", report.reporter_ip),
			NotificationField("Reason", f"```\n{report.reason}```"),
			NotificationField("Image", f"[{image.path}]({base_url}/moderator/images/{image.short_id})"),
		),
	)


def bulk_deletion_completed(kind: BulkDeletionKind, count: int, timestamp: datetime | None = None) -> Notification:
	return Notification(
		title=f"{kind.singular} Nuke Completed",
		color=COLOR_CYAN,
		description=f"Your {kind.noun} were successfully deleted from Mirage servers",
		timestamp=_now(timestamp),
		fields=(NotificationField(f"{kind.plural} Deleted", str(count)),),
	)


def relink_advisory() -> str:
	"""Direct message sent to the previously linked Discord member."""
	return "You linked a new Discord to your Mirage account.\n\nIf you did not do this, contact Mirage admins"
