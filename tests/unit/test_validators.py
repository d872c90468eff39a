from datetime import date

import pytest

from spinbook.shared.validators import (
    calc_fee_due,
    calc_fee_status,
    calc_platform_fee_total,
    clean_genres,
    generate_public_token,
    is_valid_email,
    normalize_slug,
    parse_event_date,
    parse_genres,
    parse_positive_int,
    safe_next_path,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("DJ Nova", "dj-nova"),
        ("  --Nova__Beats!!  ", "nova-beats"),
        ("dj---nova", "dj-nova"),
        ("Ünïcode", "n-code"),
        ("!!!", ""),
        (None, ""),
    ],
)
def test_normalize_slug(raw, expected):
    assert normalize_slug(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [("$1,200", 1200), ("450", 450), ("0", None), ("", None), (None, None), ("abc", None)],
)
def test_parse_positive_int(raw, expected):
    assert parse_positive_int(raw) == expected


def test_parse_event_date():
    assert parse_event_date("2030-06-14") == date(2030, 6, 14)
    assert parse_event_date(" 2030-06-14 ") == date(2030, 6, 14)
    assert parse_event_date("06/14/2030") is None
    assert parse_event_date(None) is None


def test_is_valid_email():
    assert is_valid_email("ada@example.com")
    assert not is_valid_email("ada@example")
    assert not is_valid_email("ada example.com")
    assert not is_valid_email("")


def test_parse_genres_accepts_list_or_comma_string():
    assert parse_genres(["House", " Soca ", ""]) == ["House", "Soca"]
    assert parse_genres("House, Soca,,") == ["House", "Soca"]
    assert parse_genres(None) == []


def test_clean_genres_keeps_catalogue_order():
    assert clean_genres(["Soca", "Polka", "Afrobeats", "Soca"]) == ["Afrobeats", "Soca"]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("/dashboard/requests", "/dashboard/requests"),
        ("https://evil.example", "/dashboard/profile"),
        ("//evil.example", "/dashboard/profile"),
        ("/\\evil.example", "/dashboard/profile"),
        (None, "/dashboard/profile"),
    ],
)
def test_safe_next_path(raw, expected):
    assert safe_next_path(raw) == expected


class TestFeeMath:
    @pytest.mark.parametrize(
        "quoted, fee", [(450, 45), (1000, 100), (1205, 121), (999, 100)]
    )
    def test_platform_fee_is_ten_percent_rounded_up(self, quoted, fee):
        assert calc_platform_fee_total(quoted) == fee

    def test_fee_status(self):
        assert calc_fee_status(None, 80) == "unknown"
        assert calc_fee_status(120, 80) == "due"
        assert calc_fee_status(80, 80) == "ok"
        assert calc_fee_status(45, 80) == "ok"

    def test_fee_due_never_negative(self):
        assert calc_fee_due(120, 80) == 40
        assert calc_fee_due(45, 80) == 0
        assert calc_fee_due(None, 80) is None


def test_public_tokens_are_long_and_unique():
    tokens = {generate_public_token() for _ in range(20)}
    assert len(tokens) == 20
    assert all(len(t) == 64 for t in tokens)
