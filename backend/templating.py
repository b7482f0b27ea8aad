"""Jinja2 rendering with the per-request globals every page layout expects."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi.templating import Jinja2Templates
from starlette.requests import Request
from starlette.responses import Response

from services.session_guard import RequestIdentity


TEMPLATES_DIR = Path(__file__).parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def page_context(request: Request) -> dict[str, Any]:
	"""Identity, banner and navigation helpers shared by all templates."""
	identity: RequestIdentity = getattr(request.state, "identity", None) or RequestIdentity()
	path = request.url.path
	banner = identity.banner
	return {
		"logged_in": identity.authenticated,
		"profile": identity.profile,
		"global_message": banner.message if banner else False,
		"global_message_class": banner.css_class if banner else False,
		"active_path": lambda candidate: path == candidate,
		"nb_path": lambda candidate: "is-active" if path == candidate else "",
		"nb_sw_path": lambda candidate: "is-active" if path.startswith(candidate) else "",
	}


def render(request: Request, name: str, context: dict[str, Any] | None = None, status_code: int = 200) -> Response:
	merged = page_context(request)
	merged.update(context or {})
	return templates.TemplateResponse(request, name, merged, status_code=status_code)
