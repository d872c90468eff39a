"""Jinja2 page rendering shared by every router"""

from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from .constants import APP_NAME, DJ_GENRES, LAUNCH_REGION, MIN_QUOTED_TOTAL
from .utils.sanitization import format_usd

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals.update(
    app_name=APP_NAME,
    launch_region=LAUNCH_REGION,
    dj_genres=DJ_GENRES,
    min_quoted_total=MIN_QUOTED_TOTAL,
)
templates.env.filters["usd"] = format_usd


def render(
    request: Request,
    name: str,
    context: Optional[dict[str, Any]] = None,
    status_code: int = 200,
):
    """Render a page template; ``current_user`` defaults to None for the header"""
    ctx = {"current_user": None}
    ctx.update(context or {})
    return templates.TemplateResponse(request, name, ctx, status_code=status_code)


def redirect_with(path: str, **params: Any) -> RedirectResponse:
    """303 redirect to path with query parameters; None values are dropped"""
    query = urlencode({k: v for k, v in params.items() if v is not None})
    separator = "&" if "?" in path else "?"
    return RedirectResponse(f"{path}{separator}{query}" if query else path, status_code=303)
