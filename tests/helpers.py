"""Record builders shared by the test modules."""

from __future__ import annotations

from flask_jwt_extended import create_access_token

from models import db
from models.onboarding_application import OnboardingApplication
from models.user import User
from models.visa_step import VisaStep

COMPLETE_FORM = {
    "first_name": "Mei",
    "last_name": "Chen",
    "preferred_name": "May",
    "address": {"street": "1 Main St", "city": "Austin", "state": "TX", "zip": "73301"},
    "contact": {"phone": "555-0100"},
    "ssn": "123-45-6789",
    "dob": "1998-04-02",
    "work_authorization": {"visa_type": "f1-cpt-opt", "visa_title": "F1 OPT"},
}


def auth_headers(app, user_id: int) -> dict[str, str]:
    with app.app_context():
        token = create_access_token(identity=str(user_id))
    return {"Authorization": f"Bearer {token}"}


def create_user(username: str, role: str = "employee", password: str = "Passw0rd!") -> User:
    user = User(username=username, email=f"{username}@example.com", role=role)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def create_application(
    user_id: int, status: str = "pending", complete: bool = True, **overrides
) -> OnboardingApplication:
    form = dict(COMPLETE_FORM) if complete else {"first_name": "Mei", "last_name": "Chen"}
    form.update(overrides)
    application = OnboardingApplication(
        user_id=user_id,
        first_name=form.pop("first_name"),
        last_name=form.pop("last_name"),
        preferred_name=form.pop("preferred_name", None),
        personal_info=form,
        documents=[],
        status=status,
    )
    db.session.add(application)
    db.session.commit()
    return application


def create_step(
    user_id: int, document_type: str, status: str = "pending", feedback: str | None = None
) -> VisaStep:
    step = VisaStep(
        user_id=user_id,
        document_type=document_type,
        file_ref=f"{user_id}/{document_type.replace(' ', '-').lower()}.pdf",
        filename=f"{document_type}.pdf",
        status=status,
        feedback=feedback,
    )
    db.session.add(step)
    db.session.commit()
    return step


def create_employee(app, username: str, onboarding: str | None = "pending", **application) -> int:
    """Create an employee (and optionally an application); return the user id."""

    with app.app_context():
        user = create_user(username)
        if onboarding is not None:
            create_application(user.id, status=onboarding, **application)
        return user.id


def create_hr(app, username: str = "hr") -> int:
    with app.app_context():
        return create_user(username, role="hr").id
