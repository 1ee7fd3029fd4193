"""Database initialization and model exports."""

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()

# Import models to register them with SQLAlchemy metadata.
from .user import User  # noqa: E402,F401
from .register_token import RegisterToken  # noqa: E402,F401
from .onboarding_application import OnboardingApplication  # noqa: E402,F401
from .visa_step import VisaStep  # noqa: E402,F401
from .notification import Notification  # noqa: E402,F401

__all__ = [
    "db",
    "User",
    "RegisterToken",
    "OnboardingApplication",
    "VisaStep",
    "Notification",
]
