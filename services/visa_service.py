"""Persistence-backed OPT visa document operations.

Every rule about status inference and step gating comes from
:mod:`services.workflow_engine`; this module only loads and stores rows and
turns storage conflicts into typed results.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from models import db
from models.user import User
from models.visa_step import VisaStep
from services import notifications
from services.onboarding_service import find_onboarding_status, sync_onboarding_completion
from services.workflow_engine import (
    STEP_TABLE,
    Availability,
    ErrorCode,
    OnboardingStatus,
    OperationResult,
    StepStatus,
    UnknownDocumentType,
    availability_for_all,
    coerce_onboarding_status,
    effective_statuses,
    is_complete,
    next_action,
    next_available_step,
    resolve_client_key,
    resolve_document_type,
    review_transition,
)

logger = logging.getLogger(__name__)


def find_steps_by_employee(employee_id: int) -> list[VisaStep]:
    return VisaStep.for_user(employee_id)


def find_step(employee_id: int, document_type: str) -> VisaStep | None:
    return VisaStep.query.filter_by(user_id=employee_id, document_type=document_type).first()


def upsert_step(employee_id: int, document_type: str, **fields) -> VisaStep:
    """Create or update the single row for ``(employee_id, document_type)``.

    The caller commits.
    """

    step = find_step(employee_id, document_type)
    if step is None:
        step = VisaStep(user_id=employee_id, document_type=document_type)
        db.session.add(step)
    for name, value in fields.items():
        setattr(step, name, value)
    return step


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def build_workflow(
    steps: list[VisaStep], onboarding_status: OnboardingStatus | str
) -> dict:
    """Serialize a workflow view with effective statuses and gating per step."""

    by_type = {step.document_type: step for step in steps}
    explicit = VisaStep.explicit_statuses(steps)
    effective = effective_statuses(explicit)
    availability = availability_for_all(onboarding_status, explicit)

    payload = []
    for definition in STEP_TABLE:
        record = by_type.get(definition.type.value)
        explicit_status = record.status if record is not None else None
        gate = availability[definition.type]
        status = effective[definition.type]
        payload.append(
            {
                "index": definition.index,
                "type": definition.type.value,
                "key": definition.client_key,
                "label": definition.label,
                "status": status.value,
                "explicit_status": explicit_status,
                "inferred": status is StepStatus.APPROVED
                and explicit_status != StepStatus.APPROVED.value,
                "file": record.file_ref if record is not None else None,
                "filename": record.filename if record is not None else None,
                "feedback": record.feedback if record is not None else None,
                "uploaded_at": _isoformat(record.uploaded_at) if record is not None else None,
                "reviewed_at": _isoformat(record.reviewed_at) if record is not None else None,
                "version": record.version if record is not None else None,
                "available": gate.available,
                "blocking_reason": gate.reason,
                "reviewable": explicit_status == StepStatus.PENDING.value and gate.available,
            }
        )

    next_step = next_available_step(onboarding_status, explicit)
    status = coerce_onboarding_status(onboarding_status)
    return {
        "onboarding_status": status.value if status is not None else None,
        "steps": payload,
        "next_available_step": next_step.value if next_step is not None else None,
        "next_action": next_action(explicit),
        "complete": is_complete(explicit),
    }


def get_visa_workflow(employee_id: int) -> OperationResult:
    """Return the workflow view for one employee."""

    if db.session.get(User, employee_id) is None:
        return OperationResult.failure(ErrorCode.EMPLOYEE_NOT_FOUND, "Employee not found.")
    workflow = build_workflow(
        find_steps_by_employee(employee_id), find_onboarding_status(employee_id)
    )
    return OperationResult.success(**workflow)


def _commit_step(step: VisaStep, action: str) -> OperationResult | None:
    """Commit, or return a ConcurrentUpdate failure if another writer won."""

    document_type, user_id = step.document_type, step.user_id
    try:
        db.session.commit()
    except (StaleDataError, IntegrityError) as exc:
        db.session.rollback()
        logger.warning(
            "Concurrent %s on %s for user %s: %s",
            action,
            document_type,
            user_id,
            exc.__class__.__name__,
        )
        return OperationResult.failure(
            ErrorCode.CONCURRENT_UPDATE,
            "The document was changed by someone else. Reload and try again.",
        )
    return None


def check_upload(employee_id: int, client_type: object) -> OperationResult:
    """Resolve the upload key and consult the gate without writing anything."""

    try:
        definition = resolve_client_key(client_type)
    except UnknownDocumentType as exc:
        return OperationResult.failure(ErrorCode.UNKNOWN_DOCUMENT_TYPE, str(exc))

    if db.session.get(User, employee_id) is None:
        return OperationResult.failure(ErrorCode.EMPLOYEE_NOT_FOUND, "Employee not found.")

    explicit = VisaStep.explicit_statuses(find_steps_by_employee(employee_id))
    gate = availability_for_all(find_onboarding_status(employee_id), explicit)[definition.type]
    if not gate.available:
        return _refuse(employee_id, definition, gate, "upload")
    return OperationResult.success(definition=definition)


def _refuse(employee_id: int, definition, gate: Availability, action: str) -> OperationResult:
    logger.info(
        "Refused %s %s for user %s: %s",
        definition.type.value,
        action,
        employee_id,
        gate.reason,
    )
    return OperationResult.failure(
        ErrorCode.STEP_NOT_AVAILABLE,
        gate.reason or "This step is not available yet.",
        blocking_step=gate.blocking_step.value if gate.blocking_step else None,
    )


def upload_step(
    employee_id: int,
    client_type: object,
    file_ref: str | None,
    filename: str | None = None,
) -> OperationResult:
    """Record an employee upload for the step named by ``client_type``.

    The step must be available; the row is reset to pending with the new file
    and any earlier feedback cleared.
    """

    try:
        resolve_client_key(client_type)
    except UnknownDocumentType as exc:
        return OperationResult.failure(ErrorCode.UNKNOWN_DOCUMENT_TYPE, str(exc))

    if not isinstance(file_ref, str) or not file_ref.strip():
        return OperationResult.failure(ErrorCode.MISSING_FILE, "A document file is required.")

    checked = check_upload(employee_id, client_type)
    if not checked.ok:
        return checked
    definition = checked.data["definition"]

    step = upsert_step(employee_id, definition.type.value)
    step.replace_upload(file_ref.strip(), filename)
    conflict = _commit_step(step, "upload")
    if conflict is not None:
        return conflict

    logger.info("User %s uploaded %s", employee_id, definition.type.value)
    return OperationResult.success(step=step)


def _emit_review_notifications(
    employee: User,
    definition,
    decision: StepStatus,
    feedback: str | None,
    onboarding_status: OnboardingStatus,
    before: dict,
    after: dict,
) -> None:
    if decision is StepStatus.REJECTED:
        notifications.notify_user(
            employee,
            "document-rejected",
            document_type=definition.type.value,
            feedback=feedback,
        )
        return

    if is_complete(after):
        if not is_complete(before):
            notifications.notify_user(employee, "visa-workflow-complete")
        return

    before_next = next_available_step(onboarding_status, before)
    after_next = next_available_step(onboarding_status, after)
    if after_next is not None and after_next != before_next:
        notifications.notify_user(
            employee, "next-step-available", document_type=after_next.value
        )


def review_step(
    employee_id: int,
    document_type: object,
    decision: object,
    feedback: str | None = None,
    reviewer: User | None = None,
    expected_version: int | None = None,
) -> OperationResult:
    """Apply an HR decision to one uploaded document.

    The step must pass the same availability gate as uploads. Only explicitly
    pending steps change state; repeating the decision that is already
    recorded succeeds without changes.
    """

    try:
        definition = resolve_document_type(document_type)
    except UnknownDocumentType as exc:
        return OperationResult.failure(ErrorCode.UNKNOWN_DOCUMENT_TYPE, str(exc))

    employee = db.session.get(User, employee_id)
    if employee is None:
        return OperationResult.failure(ErrorCode.EMPLOYEE_NOT_FOUND, "Employee not found.")

    steps = find_steps_by_employee(employee_id)
    step = next((s for s in steps if s.document_type == definition.type.value), None)

    transition = review_transition(
        step.status if step is not None else None, decision, feedback
    )
    if not transition.ok:
        return transition

    before = VisaStep.explicit_statuses(steps)
    onboarding_status = find_onboarding_status(employee_id)
    gate = availability_for_all(onboarding_status, before)[definition.type]
    if not gate.available:
        return _refuse(employee_id, definition, gate, "review")

    if expected_version is not None and step.version != expected_version:
        return OperationResult.failure(
            ErrorCode.CONCURRENT_UPDATE,
            "The document was changed by someone else. Reload and try again.",
        )

    if not transition.data["changed"]:
        return OperationResult.success(step=step, changed=False)

    new_status: StepStatus = transition.data["status"]
    step.status = new_status.value
    step.feedback = transition.data["feedback"]
    step.reviewer_id = reviewer.id if reviewer is not None else None
    step.reviewed_at = datetime.utcnow()
    after = dict(before)
    after[definition.type] = new_status

    _emit_review_notifications(
        employee, definition, new_status, step.feedback, onboarding_status, before, after
    )
    conflict = _commit_step(step, "review")
    if conflict is not None:
        return conflict

    logger.info(
        "Reviewed %s for user %s: %s", definition.type.value, employee_id, new_status.value
    )
    sync_onboarding_completion(employee_id)
    return OperationResult.success(step=step, changed=True)


def workflow_for_user(user: User) -> dict:
    return build_workflow(find_steps_by_employee(user.id), find_onboarding_status(user.id))


def count_pending_documents() -> int:
    return VisaStep.query.filter_by(status=StepStatus.PENDING.value).count()


def is_workflow_in_progress(employee_id: int) -> bool:
    steps = find_steps_by_employee(employee_id)
    return bool(steps) and not is_complete(VisaStep.explicit_statuses(steps))
