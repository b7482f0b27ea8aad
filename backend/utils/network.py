"""Client address helpers for requests arriving through a reverse proxy."""

from __future__ import annotations

from starlette.requests import HTTPConnection


def client_ip(connection: HTTPConnection, trust_proxy: bool = True) -> str:
	"""Return the request's source IP.

	Behind a trusted proxy this is the left-most `X-Forwarded-For` entry,
	otherwise the socket peer address.
	"""
	if trust_proxy:
		forwarded = connection.headers.get("x-forwarded-for", "")
		first_hop = forwarded.split(",")[0].strip()
		if first_hop:
			return first_hop
	if connection.client is None:
		return "unknown"
	return connection.client.host
