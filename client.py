"""
Client for the form functions, as used by the contact page and the
application modal. Forms are validated locally first; nothing is sent while
any field has an error.
"""
import logging
import time
from typing import Callable, Dict, Mapping, Optional

import httpx
from pydantic import BaseModel, Field

from forms import (
    DocumentUpload,
    application_file_path,
    storage_object_path,
    validate_application_form,
    validate_contact_form,
)

logger = logging.getLogger(__name__)

CONNECTION_ERROR = "Sorry, there was an error sending your message. Please check your connection and try again."
SUBMIT_ERROR = "Sorry, there was an error sending your message. Please try again."

# (object path, document) -> public URL, or None when the upload failed
Uploader = Callable[[str, DocumentUpload], Optional[str]]


class SubmitResult(BaseModel):
    success: bool
    message: Optional[str] = None
    errors: Dict[str, str] = Field(default_factory=dict)


def _upload(upload: Uploader, path: str, document: DocumentUpload) -> Optional[str]:
    try:
        return upload(path, document)
    except Exception as e:
        logger.error("Error uploading %s: %s", path, e)
        return None


class FunctionsClient:
    def __init__(self, base_url: str, api_key: str, http: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._owns_http = http is None
        self.http = http or httpx.Client(timeout=10.0)

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "FunctionsClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _post(self, function: str, payload: Mapping) -> SubmitResult:
        try:
            response = self.http.post(
                f"{self.base_url}/functions/v1/{function}",
                json=dict(payload),
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error submitting %s: %s", function, e)
            return SubmitResult(success=False, errors={"submit": CONNECTION_ERROR})

        if not isinstance(body, dict):
            logger.error("Unexpected response from %s: %s", function, body)
            return SubmitResult(success=False, errors={"submit": SUBMIT_ERROR})
        if body.get("success"):
            message = body.get("message")
            return SubmitResult(success=True, message=message if isinstance(message, str) else None)
        error = str(body.get("error") or SUBMIT_ERROR)
        return SubmitResult(success=False, errors={"submit": error})

    def submit_contact(self, form: Mapping[str, str]) -> SubmitResult:
        errors = validate_contact_form(form)
        if errors:
            return SubmitResult(success=False, errors=errors)
        payload = {key: form.get(key, "") for key in ("firstName", "lastName", "email", "phone", "message")}
        return self._post("send-contact-email", payload)

    def submit_application(self, position_id: str, position_title: str, name: str, email: str,
                           resume: Optional[DocumentUpload], upload: Uploader,
                           cover_letter: Optional[DocumentUpload] = None) -> SubmitResult:
        errors = validate_application_form(name, email, resume, cover_letter)
        if errors:
            return SubmitResult(success=False, errors=errors)

        timestamp = int(time.time() * 1000)
        resume_path = storage_object_path(application_file_path(position_id, timestamp, name, "resume"))
        resume_url = _upload(upload, resume_path, resume)
        if not resume_url:
            return SubmitResult(success=False, errors={"submit": "Failed to upload resume. Please try again."})

        cover_letter_url = None
        if cover_letter is not None:
            cover_letter_url = _upload(
                upload,
                storage_object_path(application_file_path(position_id, timestamp, name, "cover_letter")),
                cover_letter,
            )
            if not cover_letter_url:
                return SubmitResult(success=False,
                                    errors={"submit": "Failed to upload cover letter. Please try again."})

        return self._post("submit-application", {
            "positionId": position_id,
            "positionTitle": position_title,
            "applicantName": name,
            "applicantEmail": email,
            "resumeUrl": resume_url,
            "coverLetterUrl": cover_letter_url,
        })
