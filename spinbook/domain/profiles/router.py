"""Profile router - DJ profile editor, public profile pages and roster"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ...auth import get_optional_user, require_dj
from ...database import get_db
from ...models import User
from ...shared.validators import parse_genres
from ...templating import redirect_with, render
from .schemas import ProfileForm
from .service import ProfileService, ProfileValidationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Profiles"])


def get_profile_service(db: Session = Depends(get_db)) -> ProfileService:
    """Dependency injection for ProfileService"""
    return ProfileService(db)


# ============================================================================
# DASHBOARD EDITOR
# ============================================================================


@router.get("/dashboard/profile")
async def profile_editor(
    request: Request,
    msg: Optional[str] = Query(None),
    current_user: User = Depends(require_dj),
    service: ProfileService = Depends(get_profile_service),
):
    profile = service.get_profile(current_user)
    return render(
        request,
        "dashboard/profile.html",
        {"current_user": current_user, "profile": profile, "msg": msg},
    )


@router.post("/dashboard/profile")
async def save_profile(
    stage_name: str = Form(""),
    slug: str = Form(""),
    city: str = Form(""),
    bio: str = Form(""),
    genres: list[str] = Form([]),
    rate: str = Form(""),
    published: str = Form(""),
    avatar: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_dj),
    service: ProfileService = Depends(get_profile_service),
):
    form = ProfileForm(
        stage_name=stage_name,
        slug=slug,
        city=city,
        bio=bio,
        genres=genres,
        rate=rate,
        published=published,
    )

    avatar_content = None
    avatar_content_type = None
    if avatar is not None:
        avatar_content = await avatar.read()
        avatar_content_type = avatar.content_type

    try:
        message = await service.save_profile(
            current_user, form, avatar_content, avatar_content_type
        )
    except ProfileValidationError as e:
        return redirect_with("/dashboard/profile", msg=str(e))

    return redirect_with("/dashboard/profile", msg=message)


# ============================================================================
# PUBLIC PAGES
# ============================================================================


@router.get("/dj/{slug}")
async def public_profile(
    request: Request,
    slug: str,
    current_user: Optional[User] = Depends(get_optional_user),
    service: ProfileService = Depends(get_profile_service),
):
    result = service.get_viewable_profile(slug, current_user)
    if result is None:
        return render(
            request, "dj/not_found.html", {"current_user": current_user}, status_code=404
        )

    profile, is_draft = result
    return render(
        request,
        "dj/profile.html",
        {
            "current_user": current_user,
            "profile": profile,
            "genres": parse_genres(profile.genres),
            "is_draft": is_draft,
        },
    )


@router.get("/djs")
async def roster(request: Request, current_user: Optional[User] = Depends(get_optional_user)):
    """Roster opening soon; DJs are pointed at the waitlist"""
    return render(request, "djs.html", {"current_user": current_user})


@router.get("/djs/{profile_id}")
async def legacy_profile_redirect(
    profile_id: str, service: ProfileService = Depends(get_profile_service)
):
    """Old /djs/{id} links point at /dj/{slug}"""
    slug = service.get_legacy_slug(profile_id)
    if not slug:
        return RedirectResponse("/djs", status_code=307)
    return RedirectResponse(f"/dj/{slug}", status_code=308)


__all__ = ["router"]
