"""VisaStep model definition."""

from datetime import datetime

from services.workflow_engine import (
    DOCUMENT_TYPE_VALUES,
    STEP_STATUS_VALUES,
    DocumentType,
    StepStatus,
)

from . import db


class VisaStep(db.Model):
    """The latest upload for one OPT document type of one employee.

    Reuploads overwrite the row; ``version`` guards read-modify-write cycles.
    """

    __tablename__ = "visa_steps"
    __table_args__ = (
        db.UniqueConstraint("user_id", "document_type", name="uq_visa_steps_user_type"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    document_type = db.Column(
        db.Enum(*DOCUMENT_TYPE_VALUES, name="visa_document_type"),
        nullable=False,
    )
    file_ref = db.Column(db.String(512), nullable=True)
    filename = db.Column(db.String(255), nullable=True)
    status = db.Column(
        db.Enum(*STEP_STATUS_VALUES, name="visa_step_status"),
        nullable=False,
        default="pending",
        server_default=db.text("'pending'"),
    )
    feedback = db.Column(db.Text, nullable=True)
    reviewer_id = db.Column(db.Integer, nullable=True)
    uploaded_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    user = db.relationship(
        "User",
        backref=db.backref("visa_steps", lazy="dynamic"),
    )

    @classmethod
    def for_user(cls, user_id: int) -> list["VisaStep"]:
        return cls.query.filter_by(user_id=user_id).all()

    @staticmethod
    def explicit_statuses(steps) -> dict[DocumentType, StepStatus]:
        """Map each uploaded document type to its stored status."""

        return {DocumentType(step.document_type): StepStatus(step.status) for step in steps}

    def replace_upload(self, file_ref: str, filename: str | None = None) -> None:
        """Reset the step to a fresh pending upload."""

        self.file_ref = file_ref
        self.filename = filename
        self.status = "pending"
        self.feedback = None
        self.reviewer_id = None
        self.reviewed_at = None
        self.uploaded_at = datetime.utcnow()

    def __repr__(self) -> str:
        return (
            f"<VisaStep user_id={self.user_id} type={self.document_type} "
            f"status={self.status}>"
        )
