"""Key-value cache over Redis with compute-and-store fallback."""

from __future__ import annotations

import json
import logging
from threading import Lock, RLock
from typing import Any, Callable

from redis import Redis
from redis.exceptions import RedisError


logger = logging.getLogger(__name__)


class Cache:
	"""JSON value cache with at-most-one compute per missing key in this process."""

	def __init__(self, client: Redis, namespace: str = "mirage:cache", ttl_seconds: int = 300) -> None:
		self._client = client
		self._namespace = namespace
		self._ttl_seconds = ttl_seconds
		self._key_locks: dict[str, Lock] = {}
		self._registry_lock = RLock()

	def _key(self, key: str) -> str:
		return f"{self._namespace}:{key}"

	def _lock_for(self, key: str) -> Lock:
		with self._registry_lock:
			return self._key_locks.setdefault(key, Lock())

	def get(self, key: str) -> Any | None:
		raw = self._client.get(self._key(key))
		if raw is None:
			return None
		return json.loads(raw)

	def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
		ttl = ttl_seconds if ttl_seconds is not None else self._ttl_seconds
		self._client.set(self._key(key), json.dumps(value), ex=ttl)

	def delete(self, key: str) -> None:
		self._client.delete(self._key(key))

	def get_or_set(self, key: str, compute: Callable[[], Any], ttl_seconds: int | None = None) -> Any:
		"""Return the cached value for `key`, computing and storing it on a miss.

		Concurrent callers for the same missing key wait on a per-key lock and
		re-read the cache, so `compute` runs once. A store outage degrades to
		computing without caching.
		"""
		try:
			value = self.get(key)
		except RedisError:
			logger.warning("cache_unavailable | key=%s", key)
			return compute()
		if value is not None:
			return value

		with self._lock_for(key):
			try:
				value = self.get(key)
			except RedisError:
				logger.warning("cache_unavailable | key=%s", key)
				return compute()
			if value is not None:
				return value
			value = compute()
			try:
				self.set(key, value, ttl_seconds=ttl_seconds)
			except RedisError:
				logger.warning("cache_store_failed | key=%s", key)
			else:
				logger.debug("cache_filled | key=%s", key)
			return value
