"""Onboarding application model."""

from datetime import datetime

from . import db


APPLICATION_STATUSES = ("pending", "approved", "rejected")

# personal_info keys that must be filled before onboarding can complete
REQUIRED_PERSONAL_INFO = ("address", "contact", "ssn", "dob", "work_authorization")


class OnboardingApplication(db.Model):
    """The onboarding form an employee submits for HR approval."""

    __tablename__ = "onboarding_applications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True
    )
    first_name = db.Column(db.String(120), nullable=True)
    last_name = db.Column(db.String(120), nullable=True)
    middle_name = db.Column(db.String(120), nullable=True)
    preferred_name = db.Column(db.String(120), nullable=True)
    personal_info = db.Column(db.JSON, nullable=False, default=dict)
    documents = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(
        db.Enum(*APPLICATION_STATUSES, name="onboarding_status"),
        nullable=False,
        default="pending",
        server_default=db.text("'pending'"),
    )
    feedback = db.Column(db.Text, nullable=True)
    reviewer_id = db.Column(db.Integer, nullable=True)
    submitted_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    reviewed_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship("User", back_populates="onboarding_application")

    @property
    def visa_type(self) -> str | None:
        work_authorization = (self.personal_info or {}).get("work_authorization") or {}
        return work_authorization.get("visa_type")

    def has_required_info(self) -> bool:
        """Return True when every field needed to finish onboarding is present."""

        if not self.first_name or not self.last_name:
            return False
        info = self.personal_info or {}
        return all(info.get(key) for key in REQUIRED_PERSONAL_INFO)

    def mark_pending(self) -> None:
        self.status = "pending"
        self.feedback = None
        self.reviewer_id = None
        self.reviewed_at = None
        self.submitted_at = datetime.utcnow()

    def to_dict(self) -> dict:
        """Serialize the application into a dictionary."""

        return {
            "id": self.id,
            "user_id": self.user_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "middle_name": self.middle_name,
            "preferred_name": self.preferred_name,
            "personal_info": self.personal_info or {},
            "documents": self.documents or [],
            "status": self.status,
            "feedback": self.feedback,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<OnboardingApplication user_id={self.user_id} status={self.status}>"
