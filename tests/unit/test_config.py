"""
Tests for settings parsing and admin identification.
"""

from shopcart.api.config import get_settings, reset_settings
from shopcart.models.points import PointsPolicy
from shopcart.models.admin import get_admin_emails, is_admin, is_user_admin


def test_admin_emails_comma_separated(monkeypatch):
    monkeypatch.setenv("ADMIN_EMAILS", "Boss@Shop.test, ops@shop.test ,")
    reset_settings()

    assert get_admin_emails() == ["boss@shop.test", "ops@shop.test"]


def test_admin_emails_bracketed_list(monkeypatch):
    monkeypatch.setenv("ADMIN_EMAILS", "[boss@shop.test,ops@shop.test]")
    reset_settings()

    assert get_admin_emails() == ["boss@shop.test", "ops@shop.test"]


def test_admin_emails_json_list(monkeypatch):
    monkeypatch.setenv("ADMIN_EMAILS", '["boss@shop.test", "ops@shop.test"]')
    reset_settings()

    assert get_admin_emails() == ["boss@shop.test", "ops@shop.test"]


def test_is_user_admin_ignores_case_and_whitespace():
    assert is_user_admin(" ADMIN@shop.test ")
    assert not is_user_admin("jane@shop.test")
    assert not is_user_admin(None)
    assert not is_user_admin("")


def test_is_admin_honours_sanity_flag():
    assert is_admin({"email": "jane@shop.test", "isAdmin": True})
    assert is_admin({"email": "admin@shop.test"})
    assert not is_admin({"email": "jane@shop.test"})
    assert not is_admin(None)


def test_settings_singleton_and_reset(monkeypatch):
    first = get_settings()
    assert get_settings() is first

    monkeypatch.setenv("SITE_URL", "https://other.test")
    reset_settings()
    assert get_settings() is not first
    assert get_settings().site_url == "https://other.test"


def test_points_settings_defaults():
    settings = get_settings()

    assert settings.reward_points_threshold == 3000
    assert settings.reward_points_amount == 5
    assert settings.loyalty_points_order_threshold == 5
    assert settings.loyalty_points_amount == 100


def test_reward_threshold_keeps_fraction(monkeypatch):
    monkeypatch.setenv("REWARD_POINTS_THRESHOLD", "2500.5")
    reset_settings()

    assert get_settings().reward_points_threshold == 2500.5
    assert PointsPolicy.from_settings().reward_threshold == 2500.5


def test_malformed_points_settings_fall_back(monkeypatch):
    monkeypatch.setenv("REWARD_POINTS_THRESHOLD", "inf")
    monkeypatch.setenv("REWARD_POINTS_AMOUNT", "-2")
    monkeypatch.setenv("LOYALTY_POINTS_AMOUNT", "lots")
    reset_settings()
    settings = get_settings()

    assert settings.reward_points_threshold == 3000
    assert settings.reward_points_amount == 5
    assert settings.loyalty_points_amount == 100
