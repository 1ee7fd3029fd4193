"""Tests for the User and RegisterToken model helpers."""

from datetime import datetime, timedelta

from models import db
from models.register_token import RegisterToken
from models.user import User


def test_user_password_helpers(app):
    with app.app_context():
        user = User(email="helper@example.com", username="helper", role="employee")
        user.set_password("password123")
        db.session.add(user)
        db.session.commit()

        assert user.password_hash != "password123"
        assert user.check_password("password123") is True
        assert user.check_password("wrong") is False
        assert user.is_hr is False
        assert user.to_dict()["role"] == "employee"
        assert "password_hash" not in user.to_dict()


def test_register_token_usability():
    now = datetime(2024, 5, 1, 12, 0, 0)
    token = RegisterToken(
        email="new@example.com", token="abc", expires_at=now + timedelta(hours=3), used=False
    )

    assert token.is_usable(now) is True
    assert token.is_expired(now + timedelta(hours=4)) is True
    assert token.is_usable(now + timedelta(hours=4)) is False

    token.used = True
    assert token.is_usable(now) is False
