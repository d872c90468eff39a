"""Profile domain schemas - Pydantic models for validation"""

from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...constants import BIO_MAX_LENGTH
from ...shared.validators import clean_genres, parse_genres, parse_positive_int
from ...utils.sanitization import clip_text


class ProfileForm(BaseModel):
    """Fields posted by the dashboard profile editor"""

    stage_name: str = ""
    slug: str = ""
    city: str = ""
    bio: Optional[str] = None
    genres: list[str] = []
    rate: Optional[int] = None
    published: bool = False

    @field_validator("stage_name", "slug", "city", mode="before")
    @classmethod
    def strip_text(cls, v):
        return str(v or "").strip()

    @field_validator("bio", mode="before")
    @classmethod
    def trim_bio(cls, v):
        return clip_text(v, BIO_MAX_LENGTH)

    @field_validator("genres", mode="before")
    @classmethod
    def known_genres(cls, v):
        return clean_genres(parse_genres(v))

    @field_validator("rate", mode="before")
    @classmethod
    def positive_rate(cls, v):
        return parse_positive_int(v)

    @field_validator("published", mode="before")
    @classmethod
    def checkbox(cls, v: Any):
        if isinstance(v, bool):
            return v
        return str(v or "").lower() in ("on", "true", "1", "yes")


class PublicProfile(BaseModel):
    """Data shown on /dj/{slug}"""

    id: str
    stage_name: str
    slug: str
    city: str
    bio: Optional[str] = None
    genres: list[str] = []
    rate: Optional[int] = None
    avatar_url: Optional[str] = None
    published: bool = False

    @field_validator("genres", mode="before")
    @classmethod
    def genres_from_storage(cls, v):
        return parse_genres(v)

    model_config = {"from_attributes": True}


class ChecklistItem(BaseModel):
    label: str
    done: bool
