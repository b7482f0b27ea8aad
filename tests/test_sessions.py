from __future__ import annotations

from sessions import RedisSessionStore, ServerSession


def test_create_sets_expiry(redis_client):
	store = RedisSessionStore(redis_client, max_age_seconds=600)

	session_id = store.create({"logged_in": True})

	assert store.load(session_id) == {"logged_in": True}
	assert 0 < redis_client.ttl(f"mirage:session:{session_id}") <= 600


def test_save_keeps_original_expiry(redis_client):
	store = RedisSessionStore(redis_client, max_age_seconds=600)
	session_id = store.create({"logged_in": True})
	redis_client.expire(f"mirage:session:{session_id}", 30)

	assert store.save(session_id, {"logged_in": False}) is True

	assert store.load(session_id) == {"logged_in": False}
	assert redis_client.ttl(f"mirage:session:{session_id}") <= 30


def test_save_on_expired_record_returns_false(redis_client):
	store = RedisSessionStore(redis_client, max_age_seconds=600)

	assert store.save("missing", {"logged_in": True}) is False
	assert store.load("missing") is None


def test_delete_removes_record(redis_client):
	store = RedisSessionStore(redis_client, max_age_seconds=600)
	session_id = store.create({"user": "abc"})

	store.delete(session_id)

	assert store.load(session_id) is None


def test_invalidate_clears_data():
	session = ServerSession({"logged_in": True}, session_id="abc")

	session.invalidate()

	assert session == {}
	assert session.invalidated
	assert session.session_id == "abc"
