"""Web-specific helpers for rendering pages and flash messages."""

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import HTMLResponse

from housing.web.template_config import templates


def get_flash_messages(request: Request) -> list:
    """Get and clear flash messages from session."""
    return request.session.pop("flash_messages", [])


def add_flash_message(request: Request, message: str, category: str = "info") -> None:
    """Add a flash message to the session."""
    messages = request.session.get("flash_messages", [])
    messages.append({"message": message, "category": category})
    request.session["flash_messages"] = messages


def render(
    request: Request,
    template: str,
    context: Optional[Dict[str, Any]] = None,
    status_code: int = 200
) -> HTMLResponse:
    """
    Render a page with the context every layout needs: the signed-in user,
    their profile when the session guard loaded it, the settings and pending
    flash messages.
    """
    page_context = {
        "user": getattr(request.state, "user", None),
        "profile": getattr(request.state, "profile", None),
        "settings": request.app.state.settings,
        "messages": get_flash_messages(request),
    }
    page_context.update(context or {})
    return templates.TemplateResponse(request, template, page_context, status_code=status_code)
