"""Onboarding application submission and HR review."""

from __future__ import annotations

import logging
from datetime import datetime

from models import db
from models.onboarding_application import OnboardingApplication
from models.user import User
from models.visa_step import VisaStep
from services import notifications
from services.workflow_engine import (
    ErrorCode,
    OnboardingStatus,
    OperationResult,
    is_complete,
)

logger = logging.getLogger(__name__)

NAME_FIELDS = ("first_name", "last_name", "middle_name", "preferred_name")


def get_application(user_id: int) -> OnboardingApplication | None:
    return OnboardingApplication.query.filter_by(user_id=user_id).first()


def find_onboarding_status(user_id: int) -> OnboardingStatus:
    """Return the employee's onboarding status; no application is never-submitted."""

    application = get_application(user_id)
    if application is None:
        return OnboardingStatus.NEVER_SUBMITTED
    return OnboardingStatus(application.status)


def _clean(value):
    if isinstance(value, str):
        value = value.strip()
    return value or None


def build_personal_info(payload: dict) -> dict:
    """Translate the submitted form into the stored ``personal_info`` shape."""

    phone_numbers = payload.get("phone_numbers") or {}
    work_authorization = payload.get("work_authorization") or {}
    return {
        "profile_picture": _clean(payload.get("profile_picture")),
        "address": payload.get("address") or {},
        "contact": {
            "phone": _clean(phone_numbers.get("cell")),
            "work_phone": _clean(phone_numbers.get("work")),
        }
        if phone_numbers.get("cell") or phone_numbers.get("work")
        else {},
        "ssn": _clean(payload.get("ssn")),
        "dob": _clean(payload.get("date_of_birth")),
        "gender": _clean(payload.get("gender")),
        "work_authorization": {
            "is_permanent_resident": bool(work_authorization.get("is_permanent_resident")),
            "visa_type": _clean(work_authorization.get("visa_type")),
            "visa_title": _clean(
                work_authorization.get("visa_title") or work_authorization.get("visa_type")
            ),
            "start_date": _clean(work_authorization.get("start_date")),
            "end_date": _clean(work_authorization.get("end_date")),
        }
        if work_authorization
        else {},
        "reference": payload.get("reference") or {},
        "emergency_contacts": payload.get("emergency_contacts") or [],
    }


def document_refs(documents: object) -> list[str]:
    if not isinstance(documents, dict):
        return []
    return [
        value.strip()
        for value in documents.values()
        if isinstance(value, str) and value.strip()
    ]


def submit_application(user: User, payload: dict) -> OperationResult:
    """Create the user's application, or resubmit it for review.

    Resubmission resets the status to pending and clears HR feedback.
    Approved applications are locked.
    """

    application = get_application(user.id)
    created = application is None
    if application is not None and application.status == "approved":
        return OperationResult.failure(
            ErrorCode.APPLICATION_LOCKED,
            "An approved onboarding application cannot be changed.",
        )

    if created:
        application = OnboardingApplication(user_id=user.id)
        db.session.add(application)

    for name in NAME_FIELDS:
        setattr(application, name, _clean(payload.get(name)))
    application.personal_info = build_personal_info(payload)
    refs = document_refs(payload.get("documents"))
    if refs or created:
        application.documents = refs
    application.mark_pending()
    db.session.commit()

    logger.info(
        "Onboarding application %s for user %s",
        "submitted" if created else "resubmitted",
        user.id,
    )
    return OperationResult.success(application=application, created=created)


def review_application(
    user_id: int, decision: object, feedback: str | None, reviewer: User | None = None
) -> OperationResult:
    """Approve or reject a pending application; rejection requires feedback."""

    if decision not in (OnboardingStatus.APPROVED.value, OnboardingStatus.REJECTED.value):
        return OperationResult.failure(
            ErrorCode.INVALID_DECISION, "Decision must be 'approved' or 'rejected'."
        )
    note = (feedback or "").strip()
    if decision == OnboardingStatus.REJECTED.value and not note:
        return OperationResult.failure(
            ErrorCode.FEEDBACK_REQUIRED,
            "Feedback is required when rejecting an application.",
        )

    application = get_application(user_id)
    if application is None:
        return OperationResult.failure(
            ErrorCode.APPLICATION_NOT_FOUND, "Onboarding application not found."
        )
    if application.status != "pending":
        if application.status == decision:
            return OperationResult.success(application=application, changed=False)
        return OperationResult.failure(
            ErrorCode.APPLICATION_NOT_REVIEWABLE,
            f"Application is already {application.status}.",
        )

    application.status = decision
    application.feedback = note if decision == OnboardingStatus.REJECTED.value else None
    application.reviewer_id = reviewer.id if reviewer is not None else None
    application.reviewed_at = datetime.utcnow()
    notifications.notify_user(
        application.user,
        f"onboarding-{decision}",
        feedback=application.feedback,
    )
    db.session.commit()

    logger.info("Onboarding application for user %s %s", user_id, decision)
    return OperationResult.success(application=application, changed=True)


def sync_onboarding_completion(user_id: int) -> bool:
    """Approve a pending application once onboarding is fully complete.

    Complete means the required personal information is filled in and all
    four visa documents are effectively approved. Returns True when the
    application was approved by this call.
    """

    application = get_application(user_id)
    if application is None or application.status != "pending":
        return False
    if not application.has_required_info():
        logger.debug("User %s has not completed the required onboarding fields", user_id)
        return False

    explicit = VisaStep.explicit_statuses(VisaStep.for_user(user_id))
    if not explicit or not is_complete(explicit):
        return False

    application.status = OnboardingStatus.APPROVED.value
    application.feedback = None
    application.reviewed_at = datetime.utcnow()
    notifications.notify_user(application.user, "onboarding-approved", feedback=None)
    db.session.commit()
    logger.info("All visa documents approved; onboarding approved for user %s", user_id)
    return True
