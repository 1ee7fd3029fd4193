"""Seed an HR user."""

import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app  # noqa: E402
from models import db  # noqa: E402
from models.user import User  # noqa: E402

HR_USERNAME = os.getenv("HR_USERNAME", "hr")
HR_EMAIL = os.getenv("HR_EMAIL", "hr@example.com")
HR_PASSWORD = os.getenv("HR_PASSWORD", "HrPass123")


def main() -> None:
    app = create_app()
    with app.app_context():
        hr_user = User.query.filter_by(username=HR_USERNAME).first()
        if hr_user is None:
            hr_user = User(username=HR_USERNAME, email=HR_EMAIL, role="hr")
            db.session.add(hr_user)
            action = "created"
        else:
            hr_user.role = "hr"
            hr_user.email = HR_EMAIL
            action = "updated"
        hr_user.set_password(HR_PASSWORD)
        db.session.commit()
        print(f"HR user {action}: {HR_USERNAME} <{HR_EMAIL}>")


if __name__ == "__main__":
    main()
