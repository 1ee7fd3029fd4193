"""OPT visa document workflow state machine.

Pure business logic: no HTTP, no database. Both the employee upload path and
the HR review/listing path consult these functions.

Step order is fixed:

    0. OPT Receipt -> 1. OPT EAD -> 2. I-983 -> 3. I-20

An explicitly approved step implies every earlier step is approved
(backward propagation). A step can only be acted on once onboarding has been
submitted and, while onboarding is still pending, every earlier step is
effectively approved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)


class DocumentType(str, Enum):
    OPT_RECEIPT = "OPT Receipt"
    OPT_EAD = "OPT EAD"
    I983 = "I-983"
    I20 = "I-20"


class StepStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OnboardingStatus(str, Enum):
    NEVER_SUBMITTED = "never-submitted"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ErrorCode(str, Enum):
    """Typed failure reasons returned by workflow operations."""

    UNKNOWN_DOCUMENT_TYPE = "UnknownDocumentType"
    MISSING_FILE = "MissingFile"
    STEP_NOT_AVAILABLE = "StepNotAvailable"
    FEEDBACK_REQUIRED = "FeedbackRequired"
    INVALID_DECISION = "InvalidDecision"
    STEP_NOT_FOUND = "StepNotFound"
    STEP_NOT_REVIEWABLE = "StepNotReviewable"
    CONCURRENT_UPDATE = "ConcurrentUpdate"
    EMPLOYEE_NOT_FOUND = "EmployeeNotFound"
    APPLICATION_NOT_FOUND = "ApplicationNotFound"
    APPLICATION_NOT_REVIEWABLE = "ApplicationNotReviewable"
    APPLICATION_LOCKED = "ApplicationLocked"


@dataclass(frozen=True)
class StepDefinition:
    index: int
    type: DocumentType
    client_key: str
    label: str


STEP_TABLE: tuple[StepDefinition, ...] = (
    StepDefinition(0, DocumentType.OPT_RECEIPT, "opt-receipt", "OPT Receipt"),
    StepDefinition(1, DocumentType.OPT_EAD, "opt-ead", "OPT EAD"),
    StepDefinition(2, DocumentType.I983, "i983", "I-983 Form"),
    StepDefinition(3, DocumentType.I20, "i20", "I-20"),
)

_BY_CLIENT_KEY = {step.client_key: step for step in STEP_TABLE}
_BY_TYPE = {step.type.value: step for step in STEP_TABLE}

DOCUMENT_TYPE_VALUES = tuple(step.type.value for step in STEP_TABLE)
STEP_STATUS_VALUES = tuple(status.value for status in StepStatus)

ExplicitStatuses = Mapping[DocumentType, Optional[StepStatus]]


@dataclass
class OperationResult:
    """Outcome of a workflow operation.

    Gating and validation failures are values, not exceptions, so callers can
    render the specific reason.
    """

    ok: bool
    error: ErrorCode | None = None
    message: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, **data: Any) -> "OperationResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: ErrorCode, message: str, **data: Any) -> "OperationResult":
        return cls(ok=False, error=error, message=message, data=data)


@dataclass(frozen=True)
class Availability:
    available: bool
    reason: str | None = None
    blocking_step: DocumentType | None = None


class UnknownDocumentType(ValueError):
    """Raised by :func:`resolve_document_type` for unmapped values."""

    def __init__(self, value: object):
        super().__init__(f"Unknown document type: {value!r}.")
        self.value = value


def resolve_document_type(value: object) -> StepDefinition:
    """Map a client key (``opt-ead``) or canonical value (``OPT EAD``) to its step.

    The mapping is exact: no case folding or trimming.
    """

    if isinstance(value, DocumentType):
        return _BY_TYPE[value.value]
    if isinstance(value, str):
        step = _BY_CLIENT_KEY.get(value) or _BY_TYPE.get(value)
        if step is not None:
            return step
    raise UnknownDocumentType(value)


def resolve_client_key(value: object) -> StepDefinition:
    """Map an employee-facing upload key; canonical values are not accepted."""

    if isinstance(value, str) and value in _BY_CLIENT_KEY:
        return _BY_CLIENT_KEY[value]
    raise UnknownDocumentType(value)


def step_definition(document_type: DocumentType | str) -> StepDefinition:
    return resolve_document_type(document_type)


def coerce_step_status(value: object) -> StepStatus | None:
    if value is None or isinstance(value, StepStatus):
        return value
    try:
        return StepStatus(value)
    except ValueError:
        return None


def coerce_onboarding_status(value: object) -> OnboardingStatus | None:
    """Return the enum member for ``value`` or None when it is not recognised."""

    if value is None:
        return None
    if isinstance(value, OnboardingStatus):
        return value
    try:
        return OnboardingStatus(value)
    except ValueError:
        return None


def effective_statuses(explicit: ExplicitStatuses) -> dict[DocumentType, StepStatus]:
    """Compute every step's effective status.

    Walks the sequence from the last step backward. Once any step is
    effectively approved, every earlier step that is pending or has no record
    is approved too. A rejected step keeps its rejection and does not stop
    the propagation to steps before it.
    """

    result: dict[DocumentType, StepStatus] = {}
    later_approved: DocumentType | None = None

    for step in reversed(STEP_TABLE):
        status = coerce_step_status(explicit.get(step.type))
        if status is StepStatus.APPROVED:
            effective = StepStatus.APPROVED
            later_approved = later_approved or step.type
        elif status is StepStatus.REJECTED:
            effective = StepStatus.REJECTED
        elif later_approved is not None:
            effective = StepStatus.APPROVED
            logger.debug(
                "%s inferred approved because %s is approved",
                step.type.value,
                later_approved.value,
            )
        else:
            effective = StepStatus.PENDING
        result[step.type] = effective

    return {step.type: result[step.type] for step in STEP_TABLE}


def effective_status(document_type: DocumentType | str, explicit: ExplicitStatuses) -> StepStatus:
    step = step_definition(document_type)
    return effective_statuses(explicit)[step.type]


def is_complete(explicit: ExplicitStatuses) -> bool:
    """True when all four steps are effectively approved."""

    return all(
        status is StepStatus.APPROVED for status in effective_statuses(explicit).values()
    )


def check_availability(
    step_index: int,
    onboarding_status: object,
    prior_effective_statuses: Sequence[object],
) -> Availability:
    """Decide whether the step at ``step_index`` may be uploaded or reviewed.

    ``prior_effective_statuses`` holds the effective statuses of steps
    ``0..step_index-1`` in order. Unknown onboarding statuses fail closed.
    """

    if step_index < 0 or step_index >= len(STEP_TABLE):
        return Availability(False, "Unknown visa step.")

    status = coerce_onboarding_status(onboarding_status)
    if status is OnboardingStatus.APPROVED:
        return Availability(True)
    if status is OnboardingStatus.NEVER_SUBMITTED:
        return Availability(
            False, "Submit your onboarding application before uploading visa documents."
        )
    if status is OnboardingStatus.REJECTED:
        return Availability(
            False,
            "Your onboarding application was rejected. "
            "Resolve it before uploading visa documents.",
        )
    if status is not OnboardingStatus.PENDING:
        return Availability(False, "Onboarding status is unknown.")

    if step_index == 0:
        return Availability(True)

    for prior in STEP_TABLE[:step_index]:
        value = (
            prior_effective_statuses[prior.index]
            if prior.index < len(prior_effective_statuses)
            else None
        )
        if coerce_step_status(value) is not StepStatus.APPROVED:
            return Availability(
                False, f"Waiting for {prior.label} to be approved.", prior.type
            )
    return Availability(True)


def is_available(
    step_index: int,
    onboarding_status: object,
    prior_effective_statuses: Sequence[object],
) -> bool:
    return check_availability(step_index, onboarding_status, prior_effective_statuses).available


def availability_for_all(
    onboarding_status: object, explicit: ExplicitStatuses
) -> dict[DocumentType, Availability]:
    effective = effective_statuses(explicit)
    ordered = [effective[step.type] for step in STEP_TABLE]
    return {
        step.type: check_availability(step.index, onboarding_status, ordered[: step.index])
        for step in STEP_TABLE
    }


def next_available_step(
    onboarding_status: object, explicit: ExplicitStatuses
) -> DocumentType | None:
    """First step that can be acted on and is not yet effectively approved."""

    effective = effective_statuses(explicit)
    availability = availability_for_all(onboarding_status, explicit)
    for step in STEP_TABLE:
        if availability[step.type].available and effective[step.type] is not StepStatus.APPROVED:
            return step.type
    return None


def next_action(explicit: ExplicitStatuses) -> str:
    """Summary of what the workflow is waiting on, for the HR dashboard."""

    effective = effective_statuses(explicit)
    for step in STEP_TABLE:
        status = effective[step.type]
        if status is StepStatus.APPROVED:
            continue
        if explicit.get(step.type) is None:
            return f"Upload {step.label}"
        if status is StepStatus.REJECTED:
            return f"Resubmit {step.type.value}"
        return f"Wait for HR approval - {step.type.value}"
    return "All documents approved"


def review_transition(
    current: object, decision: object, feedback: str | None
) -> OperationResult:
    """Validate an HR decision against the step's explicit status.

    On success ``data`` carries the new ``status``/``feedback`` and whether
    anything changed.
    """

    try:
        decided = StepStatus(decision)
    except ValueError:
        decided = None
    if decided not in (StepStatus.APPROVED, StepStatus.REJECTED):
        return OperationResult.failure(
            ErrorCode.INVALID_DECISION, "Decision must be 'approved' or 'rejected'."
        )

    note = (feedback or "").strip()
    if decided is StepStatus.REJECTED and not note:
        return OperationResult.failure(
            ErrorCode.FEEDBACK_REQUIRED, "Feedback is required when rejecting a document."
        )

    status = coerce_step_status(current)
    if status is None:
        return OperationResult.failure(ErrorCode.STEP_NOT_FOUND, "Document has not been uploaded.")

    new_feedback = note if decided is StepStatus.REJECTED else None
    if status is StepStatus.PENDING:
        return OperationResult.success(status=decided, feedback=new_feedback, changed=True)
    if status is decided:
        return OperationResult.success(
            status=decided,
            feedback=new_feedback,
            changed=decided is StepStatus.REJECTED,
        )
    return OperationResult.failure(
        ErrorCode.STEP_NOT_REVIEWABLE,
        f"Document is already {status.value}; it must be reuploaded before it can be "
        f"{decided.value}.",
    )
