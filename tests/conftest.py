from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

BACKEND = str(Path(__file__).resolve().parents[1] / "backend")
if BACKEND not in sys.path:
	sys.path.insert(0, BACKEND)

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET"] = "test-secret-for-session-signing"
os.environ["TRUST_PROXY"] = "true"
os.environ["DISCORD_TOKEN"] = ""
os.environ["DISCORD_LINKED_ROLES"] = "900"
os.environ["CHAT_TIMEOUT_SECONDS"] = "2"
os.environ["SENTRY_DSN"] = ""

from typing import Any, Iterator

import discord
import fakeredis
import pytest
from fastapi.testclient import TestClient

from config import get_settings
from database import Base, SessionLocal, engine
from models import content_model, image_model, invite_model, report_model, user_model  # noqa: F401
from services.account_service import create_account
from services.discord_service import DiscordNotifier

MEMBER_A = "111111111111111111"
MEMBER_B = "222222222222222222"
LINKED_ROLE = 900


class FakeRole:
	def __init__(self, role_id: int) -> None:
		self.id = role_id


class FakeMember:
	def __init__(self, member_id: str, guild: "FakeGuild", fail: bool = False, delay: float = 0.0) -> None:
		self.id = int(member_id)
		self.guild = guild
		self.fail = fail
		self.delay = delay
		self.roles: list[FakeRole] = []
		self.removed: list[FakeRole] = []
		self.nick: str | None = None
		self.messages: list[str] = []
		self.embeds: list[discord.Embed] = []
		self.send_attempts = 0

	def _maybe_fail(self) -> None:
		if self.fail:
			raise discord.DiscordException("member unavailable")

	async def add_roles(self, *roles: FakeRole, reason: str | None = None) -> None:
		self._maybe_fail()
		self.roles.extend(roles)

	async def remove_roles(self, *roles: FakeRole, reason: str | None = None) -> None:
		self._maybe_fail()
		self.removed.extend(roles)
		self.roles = [role for role in self.roles if role not in roles]

	async def edit(self, nick: str | None = None) -> None:
		if self.delay:
			await asyncio.sleep(self.delay)
		self._maybe_fail()
		self.nick = nick

	async def send(self, content: str | None = None, embed: discord.Embed | None = None) -> None:
		self.send_attempts += 1
		if self.delay:
			await asyncio.sleep(self.delay)
		self._maybe_fail()
		if content is not None:
			self.messages.append(content)
		if embed is not None:
			self.embeds.append(embed)


class FakeGuild:
	def __init__(self) -> None:
		self.members: dict[int, FakeMember] = {}
		self.role_map = {LINKED_ROLE: FakeRole(LINKED_ROLE)}

	def add_member(self, member_id: str, fail: bool = False, delay: float = 0.0) -> FakeMember:
		member = FakeMember(member_id, self, fail=fail, delay=delay)
		self.members[member.id] = member
		return member

	def get_member(self, member_id: int) -> FakeMember | None:
		return self.members.get(member_id)

	def get_role(self, role_id: int) -> FakeRole | None:
		return self.role_map.get(role_id)


class FakeChannel:
	def __init__(self, channel_id: int, guild: FakeGuild, fail: bool = False) -> None:
		self.id = channel_id
		self.guild = guild
		self.fail = fail
		self.embeds: list[discord.Embed] = []

	async def send(self, embed: discord.Embed | None = None) -> None:
		if self.fail:
			raise discord.DiscordException("channel unavailable")
		self.embeds.append(embed)


class RecordingNotifier(DiscordNotifier):
	"""Notifier that records detached work instead of scheduling it."""

	def __init__(self, *args: Any, **kwargs: Any) -> None:
		super().__init__(*args, **kwargs)
		self.dispatched: list[str] = []

	def dispatch(self, coro: Any, label: str) -> None:
		self.dispatched.append(label)
		coro.close()


@pytest.fixture(autouse=True)
def reset_database() -> Iterator[None]:
	Base.metadata.drop_all(bind=engine)
	Base.metadata.create_all(bind=engine)
	yield
	Base.metadata.drop_all(bind=engine)


@pytest.fixture
def settings():
	return get_settings()


@pytest.fixture
def db_session() -> Iterator[Any]:
	session = SessionLocal()
	try:
		yield session
	finally:
		session.close()


@pytest.fixture
def redis_client() -> fakeredis.FakeRedis:
	return fakeredis.FakeRedis()


@pytest.fixture
def guild() -> FakeGuild:
	return FakeGuild()


@pytest.fixture
def ops_channel(guild: FakeGuild) -> FakeChannel:
	return FakeChannel(1, guild)


@pytest.fixture
def report_channel(guild: FakeGuild) -> FakeChannel:
	return FakeChannel(2, guild)


@pytest.fixture
def notifier(settings, ops_channel: FakeChannel, report_channel: FakeChannel) -> DiscordNotifier:
	instance = DiscordNotifier(settings)
	instance.bind_channels(ops_channel, report_channel)
	return instance


@pytest.fixture
def recording_notifier(settings, ops_channel: FakeChannel, report_channel: FakeChannel) -> RecordingNotifier:
	instance = RecordingNotifier(settings)
	instance.bind_channels(ops_channel, report_channel)
	return instance


@pytest.fixture
def client(redis_client, recording_notifier: RecordingNotifier) -> Iterator[TestClient]:
	from main import create_app

	app = create_app(redis_client=redis_client, notifier=recording_notifier)
	with TestClient(app, raise_server_exceptions=False) as test_client:
		yield test_client


def make_account(db, username: str, password: str = "correct-horse", **flags: Any):
	"""Create a committed account and apply flags such as admin or discord."""
	account = create_account(db, username=username, email=f"{username}@example.com", password=password)
	for name, value in flags.items():
		setattr(account, name, value)
	db.commit()
	return account
