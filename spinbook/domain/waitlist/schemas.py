"""Waitlist domain schemas"""

from pydantic import BaseModel, field_validator


class WaitlistForm(BaseModel):
    """Founding DJ waitlist application"""

    stage_name: str = ""
    email: str = ""
    city: str = ""
    experience_band: str = ""

    @field_validator("stage_name", "city", "experience_band", mode="before")
    @classmethod
    def strip_text(cls, v):
        return str(v or "").strip()

    @field_validator("email", mode="before")
    @classmethod
    def lower_email(cls, v):
        return str(v or "").strip().lower()
