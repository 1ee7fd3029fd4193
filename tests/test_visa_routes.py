"""Tests for the employee visa document routes."""

from __future__ import annotations

from io import BytesIO
from pathlib import Path

from helpers import auth_headers, create_employee, create_hr, create_step

from models.visa_step import VisaStep
from services import visa_service


def _upload(client, headers, key: str, name: str = "scan.pdf"):
    return client.post(
        "/visa/upload",
        data={"type": key, "file": (BytesIO(b"%PDF-1.4 data"), name)},
        headers=headers,
        content_type="multipart/form-data",
    )


def _approve(client, hr_headers, employee_id: int, document_type: str):
    response = client.post(
        "/hr/visa/review",
        json={"employee_id": employee_id, "type": document_type, "decision": "approved"},
        headers=hr_headers,
    )
    assert response.status_code == 200, response.get_json()
    return response


def test_workflow_lists_four_steps_for_new_employee(app, client):
    employee_id = create_employee(app, "mei")

    response = client.get("/visa", headers=auth_headers(app, employee_id))

    assert response.status_code == 200
    payload = response.get_json()
    assert [step["type"] for step in payload["steps"]] == ["OPT Receipt", "OPT EAD", "I-983", "I-20"]
    assert [step["status"] for step in payload["steps"]] == ["pending"] * 4
    assert payload["steps"][0]["available"] is True
    assert payload["steps"][1]["blocking_reason"] == "Waiting for OPT Receipt to be approved."
    assert payload["next_available_step"] == "OPT Receipt"
    assert payload["next_action"] == "Upload OPT Receipt"
    assert payload["complete"] is False


def test_upload_stores_file_and_creates_pending_step(app, client):
    employee_id = create_employee(app, "mei")

    response = _upload(client, auth_headers(app, employee_id), "opt-receipt", "receipt.pdf")

    assert response.status_code == 201
    step = response.get_json()["step"]
    assert step["type"] == "OPT Receipt"
    assert step["status"] == "pending"
    assert step["filename"] == "receipt.pdf"
    assert step["file"].startswith(f"{employee_id}/")
    assert (Path(app.config["UPLOAD_DIR"]) / step["file"]).is_file()


def test_second_step_waits_for_receipt_approval(app, client):
    employee_id = create_employee(app, "mei")
    hr_id = create_hr(app)
    headers = auth_headers(app, employee_id)

    assert _upload(client, headers, "opt-receipt").status_code == 201
    blocked = _upload(client, headers, "opt-ead")

    assert blocked.status_code == 409
    payload = blocked.get_json()
    assert payload["code"] == "StepNotAvailable"
    assert payload["detail"] == "Waiting for OPT Receipt to be approved."
    assert payload["blocking_step"] == "OPT Receipt"

    _approve(client, auth_headers(app, hr_id), employee_id, "OPT Receipt")
    assert _upload(client, headers, "opt-ead").status_code == 201


def test_refused_upload_does_not_store_file(app, client):
    employee_id = create_employee(app, "mei")

    response = _upload(client, auth_headers(app, employee_id), "i20")

    assert response.status_code == 409
    owner_directory = Path(app.config["UPLOAD_DIR"]) / str(employee_id)
    assert not owner_directory.exists() or not any(owner_directory.iterdir())


def test_reupload_after_rejection_keeps_single_record(app, client):
    employee_id = create_employee(app, "mei")
    hr_id = create_hr(app)
    headers = auth_headers(app, employee_id)
    hr_headers = auth_headers(app, hr_id)

    _upload(client, headers, "opt-receipt")
    _approve(client, hr_headers, employee_id, "OPT Receipt")
    _upload(client, headers, "opt-ead", "first.pdf")
    rejected = client.post(
        "/hr/visa/review",
        json={
            "employee_id": employee_id,
            "type": "opt-ead",
            "decision": "rejected",
            "feedback": "Card is expired",
        },
        headers=hr_headers,
    )
    assert rejected.status_code == 200

    workflow = client.get("/visa", headers=headers).get_json()
    assert workflow["steps"][1]["status"] == "rejected"
    assert workflow["steps"][1]["feedback"] == "Card is expired"
    assert workflow["steps"][2]["available"] is False
    assert workflow["next_action"] == "Resubmit OPT EAD"

    response = _upload(client, headers, "opt-ead", "second.pdf")
    assert response.status_code == 201
    assert response.get_json()["step"]["feedback"] is None

    workflow = client.get("/visa", headers=headers).get_json()
    assert workflow["steps"][1]["status"] == "pending"
    assert workflow["steps"][1]["filename"] == "second.pdf"
    assert workflow["steps"][2]["available"] is False

    with app.app_context():
        rows = VisaStep.query.filter_by(user_id=employee_id, document_type="OPT EAD").all()
    assert len(rows) == 1


def test_repeated_upload_of_same_step_is_idempotent(app, client):
    employee_id = create_employee(app, "mei")
    headers = auth_headers(app, employee_id)

    _upload(client, headers, "opt-receipt", "one.pdf")
    second = _upload(client, headers, "opt-receipt", "two.pdf")

    assert second.status_code == 201
    with app.app_context():
        rows = VisaStep.query.filter_by(user_id=employee_id).all()
    assert len(rows) == 1
    assert rows[0].filename == "two.pdf"
    assert rows[0].status == "pending"


def test_unknown_document_type_is_rejected(app, client):
    employee_id = create_employee(app, "mei")

    response = _upload(client, auth_headers(app, employee_id), "i-797")

    assert response.status_code == 400
    assert response.get_json()["code"] == "UnknownDocumentType"
    with app.app_context():
        assert VisaStep.query.count() == 0


def test_canonical_type_is_not_an_upload_key(app, client):
    employee_id = create_employee(app, "mei")

    response = _upload(client, auth_headers(app, employee_id), "OPT Receipt")

    assert response.status_code == 400
    assert response.get_json()["code"] == "UnknownDocumentType"


def test_upload_without_file_is_rejected(app, client):
    employee_id = create_employee(app, "mei")

    response = client.post(
        "/visa/upload",
        json={"type": "opt-receipt"},
        headers=auth_headers(app, employee_id),
    )

    assert response.status_code == 400
    assert response.get_json()["code"] == "MissingFile"


def test_upload_requires_submitted_onboarding(app, client):
    employee_id = create_employee(app, "mei", onboarding=None)

    response = _upload(client, auth_headers(app, employee_id), "opt-receipt")

    assert response.status_code == 409
    assert response.get_json()["detail"].startswith("Submit your onboarding application")


def test_rejected_onboarding_blocks_uploads(app, client):
    employee_id = create_employee(app, "mei", onboarding="rejected")

    response = _upload(client, auth_headers(app, employee_id), "opt-receipt")

    assert response.status_code == 409
    assert response.get_json()["code"] == "StepNotAvailable"


def test_approved_onboarding_allows_any_step(app, client):
    employee_id = create_employee(app, "mei", onboarding="approved")

    response = _upload(client, auth_headers(app, employee_id), "i20")

    assert response.status_code == 201
    assert response.get_json()["step"]["type"] == "I-20"


def test_upload_by_file_reference(app, client):
    employee_id = create_employee(app, "mei")
    headers = auth_headers(app, employee_id)

    stored = client.post(
        "/uploads",
        data={"file": (BytesIO(b"%PDF-1.4"), "receipt.pdf")},
        headers=headers,
        content_type="multipart/form-data",
    )
    assert stored.status_code == 201
    file_ref = stored.get_json()["file_ref"]

    response = client.post(
        "/visa/upload",
        json={"type": "opt-receipt", "file_ref": file_ref, "filename": "receipt.pdf"},
        headers=headers,
    )

    assert response.status_code == 201
    assert response.get_json()["step"]["file"] == file_ref


def test_cannot_submit_someone_elses_file(app, client):
    owner_id = create_employee(app, "owner")
    other_id = create_employee(app, "other")

    stored = client.post(
        "/uploads",
        data={"file": (BytesIO(b"%PDF-1.4"), "receipt.pdf")},
        headers=auth_headers(app, owner_id),
        content_type="multipart/form-data",
    )
    file_ref = stored.get_json()["file_ref"]

    response = client.post(
        "/visa/upload",
        json={"type": "opt-receipt", "file_ref": file_ref},
        headers=auth_headers(app, other_id),
    )
    assert response.status_code == 403

    download = client.get(f"/uploads/{file_ref}", headers=auth_headers(app, other_id))
    assert download.status_code == 403


def test_disallowed_file_extension(app, client):
    employee_id = create_employee(app, "mei")

    response = _upload(client, auth_headers(app, employee_id), "opt-receipt", "receipt.exe")

    assert response.status_code == 400
    assert "File type not allowed" in response.get_json()["detail"]


def test_hr_cannot_use_employee_upload(app, client):
    hr_id = create_hr(app)

    response = _upload(client, auth_headers(app, hr_id), "opt-receipt")

    assert response.status_code == 403


def test_approving_last_step_infers_earlier_steps(app, client):
    employee_id = create_employee(app, "mei", onboarding="approved")
    with app.app_context():
        create_step(employee_id, "I-20")
    hr_id = create_hr(app)

    _approve(client, auth_headers(app, hr_id), employee_id, "i20")

    workflow = client.get("/visa", headers=auth_headers(app, employee_id)).get_json()
    assert [step["status"] for step in workflow["steps"]] == ["approved"] * 4
    assert [step["inferred"] for step in workflow["steps"]] == [True, True, True, False]
    assert workflow["complete"] is True
    assert workflow["next_action"] == "All documents approved"


def test_failed_upload_removes_stored_file(app, client, monkeypatch):
    employee_id = create_employee(app, "mei")
    with app.app_context():
        create_step(employee_id, "OPT Receipt")
    # a second writer inserts the row between our read and our commit
    monkeypatch.setattr(visa_service, "find_step", lambda *args: None)

    response = _upload(client, auth_headers(app, employee_id), "opt-receipt")

    assert response.status_code == 409
    assert response.get_json()["code"] == "ConcurrentUpdate"
    owner_directory = Path(app.config["UPLOAD_DIR"]) / str(employee_id)
    assert not owner_directory.exists() or not any(owner_directory.iterdir())
