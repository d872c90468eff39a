from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

import pytest

from spinbook.models import DjProfile
from spinbook.utils.avatar_storage import AvatarUploadError


def _msg(response) -> str:
    return parse_qs(urlparse(response.headers["location"]).query)["msg"][0]


PROFILE_FORM = {
    "stage_name": "DJ Nova",
    "slug": "DJ Nova!",
    "city": "Washington, DC",
    "bio": "Open format.",
    "genres": ["House", "Afrobeats", "Polka"],
    "rate": "$1,200",
    "published": "on",
}


@pytest.fixture
def uploaded(monkeypatch):
    upload = MagicMock(return_value="https://cdn.example.com/avatars/1/avatar.png")
    monkeypatch.setattr("spinbook.domain.profiles.service.upload_avatar", upload)
    return upload


class TestProfileEditor:
    def test_requires_sign_in(self, client):
        response = client.get("/dashboard/profile")
        assert response.status_code == 303
        assert response.headers["location"] == "/login?next=%2Fdashboard%2Fprofile"

    def test_renders_for_signed_in_dj(self, client, sign_in, make_user):
        sign_in(make_user())
        response = client.get("/dashboard/profile?msg=Hello")
        assert response.status_code == 200
        assert "Your DJ Profile" in response.text
        assert "Hello" in response.text

    def test_photo_is_checked_first(self, client, sign_in, make_user):
        sign_in(make_user())
        response = client.post("/dashboard/profile", data={"stage_name": ""})
        assert _msg(response) == (
            "Profile photo is required. Please upload a clear headshot before continuing."
        )

    def test_required_fields(self, client, db, sign_in, make_user, make_profile):
        user = sign_in(make_user())
        make_profile(user)
        response = client.post("/dashboard/profile", data={"stage_name": "X", "slug": ""})
        assert _msg(response) == "Stage name, slug, and city are required."

    def test_invalid_slug(self, client, sign_in, make_user, make_profile):
        user = sign_in(make_user())
        make_profile(user)
        response = client.post(
            "/dashboard/profile", data={"stage_name": "X", "slug": "!!!", "city": "DC"}
        )
        assert _msg(response) == "Slug is invalid. Use letters, numbers, and hyphens."

    def test_slug_taken_by_another_dj(self, client, sign_in, make_user, make_profile):
        other = make_user()
        make_profile(other, slug="dj-nova")
        user = sign_in(make_user())
        make_profile(user, slug="mine")

        response = client.post(
            "/dashboard/profile", data={"stage_name": "X", "slug": "DJ-Nova", "city": "DC"}
        )
        assert _msg(response) == "That slug is already taken. Try another."

    def test_new_profile_with_upload(self, client, db, sign_in, make_user, uploaded):
        user = sign_in(make_user())

        response = client.post(
            "/dashboard/profile",
            data=PROFILE_FORM,
            files={"avatar": ("me.png", b"\x89PNG fake", "image/png")},
        )

        assert _msg(response) == "Profile saved and published."
        uploaded.assert_called_once_with(user.id, b"\x89PNG fake", "image/png")
        profile = db.query(DjProfile).filter(DjProfile.user_id == user.id).one()
        assert profile.slug == "dj-nova"
        assert profile.genres == ["Afrobeats", "House"]
        assert profile.rate == 1200
        assert profile.published is True
        assert profile.avatar_url == "https://cdn.example.com/avatars/1/avatar.png"

    def test_update_keeps_existing_avatar_and_saves_draft(
        self, client, db, sign_in, make_user, make_profile, uploaded
    ):
        user = sign_in(make_user())
        profile = make_profile(user, slug="dj-nova")
        old_avatar = profile.avatar_url

        form = dict(PROFILE_FORM, published="", bio="  " + "x" * 700)
        response = client.post("/dashboard/profile", data=form)

        assert _msg(response) == "Profile saved. Turn on Publish when you’re ready."
        uploaded.assert_not_called()
        db.refresh(profile)
        assert profile.avatar_url == old_avatar
        assert profile.published is False
        assert len(profile.bio) == 600

    def test_upload_failure(self, client, sign_in, make_user, monkeypatch):
        sign_in(make_user())
        monkeypatch.setattr(
            "spinbook.domain.profiles.service.upload_avatar",
            MagicMock(side_effect=AvatarUploadError("bucket unavailable")),
        )
        response = client.post(
            "/dashboard/profile",
            data=PROFILE_FORM,
            files={"avatar": ("me.jpg", b"jpeg", "image/jpeg")},
        )
        assert _msg(response) == "Photo upload failed: bucket unavailable"


class TestPublicProfile:
    def test_published_profile(self, client, dj):
        response = client.get("/dj/dj-nova")
        assert response.status_code == 200
        assert "DJ Nova" in response.text
        assert "Draft preview" not in response.text
        assert 'href="/dj/dj-nova/book"' in response.text

    def test_draft_hidden_from_visitors(self, client, make_user, make_profile):
        make_profile(make_user(), slug="hidden", published=False)
        response = client.get("/dj/hidden")
        assert response.status_code == 404
        assert "DJ not found" in response.text

    def test_draft_visible_to_owner(self, client, sign_in, make_user, make_profile):
        user = sign_in(make_user())
        make_profile(user, slug="hidden", published=False)
        response = client.get("/dj/hidden")
        assert response.status_code == 200
        assert "Draft preview" in response.text

    def test_unknown_slug(self, client):
        assert client.get("/dj/nobody").status_code == 404

    def test_genres_stored_as_comma_string(self, client, make_user, make_profile):
        make_profile(make_user(), slug="legacy", genres="Soca, Gospel")
        response = client.get("/dj/legacy")
        assert "Soca" in response.text
        assert "Gospel" in response.text


class TestRoster:
    def test_roster_page(self, client):
        response = client.get("/djs")
        assert response.status_code == 200
        assert "/dj-waitlist" in response.text

    def test_legacy_id_redirects_to_slug(self, client, make_user, make_profile):
        profile = make_profile(make_user(), slug="dj-nova")
        response = client.get(f"/djs/{profile.id}")
        assert response.status_code == 308
        assert response.headers["location"] == "/dj/dj-nova"

    def test_legacy_unknown_id_goes_to_roster(self, client):
        response = client.get("/djs/does-not-exist")
        assert response.status_code == 307
        assert response.headers["location"] == "/djs"
