"""
Contact and job-application form handling shared by the API and the client.

Server-side validation returns a list of messages; client-side validation
returns field-scoped errors. Email dispatch is a logging stand-in: the
rendered message is logged, never sent.
"""
import os
import re
import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, EmailStr, TypeAdapter, ValidationError

from database import create_document, utcnow
from schemas import Contact

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^[+]?[1-9]\d{0,15}$")
PHONE_SEPARATORS_RE = re.compile(r"[\s\-()]")
WHITESPACE_RE = re.compile(r"\s+")

MESSAGE_MAX_LENGTH = 500
MAX_DOCUMENT_BYTES = 5 * 1024 * 1024
PDF_CONTENT_TYPE = "application/pdf"


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


_email = TypeAdapter(EmailStr)


def is_valid_email(value: str) -> bool:
    try:
        _email.validate_python(value)
    except ValidationError:
        return False
    return True


def is_valid_phone(value: str) -> bool:
    return bool(PHONE_RE.match(PHONE_SEPARATORS_RE.sub("", value)))


# ---------- Contact ----------

def validate_contact_submission(data: Mapping[str, Any]) -> List[str]:
    errors = []
    if not _text(data, "firstName").strip():
        errors.append("First name is required")
    if not _text(data, "lastName").strip():
        errors.append("Last name is required")

    email = _text(data, "email")
    if not email.strip():
        errors.append("Email is required")
    elif not is_valid_email(email):
        errors.append("Invalid email format")

    if not _text(data, "phone").strip():
        errors.append("Phone number is required")

    message = _text(data, "message")
    if not message.strip():
        errors.append("Message is required")
    elif len(message) > MESSAGE_MAX_LENGTH:
        errors.append("Message must be 500 characters or less")
    return errors


def validate_contact_form(form: Mapping[str, Any]) -> Dict[str, str]:
    """Field-scoped checks run before anything is sent."""
    errors: Dict[str, str] = {}
    if not _text(form, "firstName").strip():
        errors["firstName"] = "First name is required"
    if not _text(form, "lastName").strip():
        errors["lastName"] = "Last name is required"

    email = _text(form, "email")
    if not email.strip():
        errors["email"] = "Email is required"
    elif not is_valid_email(email):
        errors["email"] = "Please enter a valid email address"

    phone = _text(form, "phone")
    if not phone.strip():
        errors["phone"] = "Phone number is required"
    elif not is_valid_phone(phone):
        errors["phone"] = "Please enter a valid phone number"

    message = _text(form, "message")
    if not message.strip():
        errors["message"] = "Message is required"
    elif len(message) > MESSAGE_MAX_LENGTH:
        errors["message"] = "Message must be 500 characters or less"
    return errors


def save_contact(db, data: Mapping[str, Any]) -> bool:
    try:
        contact = Contact(
            first_name=_text(data, "firstName"),
            last_name=_text(data, "lastName"),
            email=_text(data, "email"),
            phone=_text(data, "phone"),
            message=_text(data, "message"),
            created_at=utcnow(),
        )
        create_document("contact", contact, using=db)
    except Exception as e:
        logger.error("Error saving contact submission: %s", e)
        return False
    logger.info("Contact form data saved to database")
    return True


def render_contact_email(data: Mapping[str, Any]) -> str:
    return "\n".join([
        "New Contact Form Submission",
        "",
        f"From: {_text(data, 'firstName')} {_text(data, 'lastName')}",
        f"Email: {_text(data, 'email')}",
        f"Phone: {_text(data, 'phone')}",
        "",
        "Message:",
        _text(data, "message"),
        "",
        f"Submitted at: {utcnow().isoformat()}",
    ])


# ---------- Job application ----------

class DocumentUpload(BaseModel):
    """A file picked in the application form."""
    filename: str
    content_type: str
    size: int
    content: bytes = b""


def validate_application_submission(data: Mapping[str, Any]) -> List[str]:
    errors = []
    if not _text(data, "positionId").strip():
        errors.append("Position ID is required")
    if not _text(data, "positionTitle").strip():
        errors.append("Position title is required")
    if not _text(data, "applicantName").strip():
        errors.append("Applicant name is required")

    email = _text(data, "applicantEmail")
    if not email.strip():
        errors.append("Applicant email is required")
    elif not is_valid_email(email):
        errors.append("Invalid email format")

    if not _text(data, "resumeUrl").strip():
        errors.append("Resume URL is required")
    return errors


def _document_error(doc: DocumentUpload, label: str) -> Optional[str]:
    if doc.content_type != PDF_CONTENT_TYPE:
        return f"{label} must be a PDF file"
    if doc.size > MAX_DOCUMENT_BYTES:
        return f"{label} file size must be less than 5MB"
    return None


def validate_application_form(name: str, email: str, resume: Optional[DocumentUpload],
                              cover_letter: Optional[DocumentUpload] = None) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if not (name or "").strip():
        errors["name"] = "Name is required"

    if not (email or "").strip():
        errors["email"] = "Email is required"
    elif not is_valid_email(email):
        errors["email"] = "Please enter a valid email address"

    if resume is None:
        errors["resume"] = "Resume is required"
    else:
        problem = _document_error(resume, "Resume")
        if problem:
            errors["resume"] = problem

    if cover_letter is not None:
        problem = _document_error(cover_letter, "Cover letter")
        if problem:
            errors["coverLetter"] = problem
    return errors


def application_file_path(position_id: str, timestamp_ms: int, applicant_name: str, kind: str) -> str:
    """Object path for an uploaded document, e.g. `42/1700000000000_Ada_Lovelace_resume.pdf`."""
    safe_name = WHITESPACE_RE.sub("_", applicant_name)
    return f"{position_id}/{timestamp_ms}_{safe_name}_{kind}.pdf"


def storage_object_path(file_path: str) -> str:
    return f"applications/{file_path}"


def render_application_email(data: Mapping[str, Any]) -> str:
    cover = _text(data, "coverLetterUrl")
    return "\n".join([
        "New Job Application Received",
        "",
        f"Position: {_text(data, 'positionTitle')}",
        f"Position ID: {_text(data, 'positionId')}",
        "",
        "Applicant Details:",
        f"Name: {_text(data, 'applicantName')}",
        f"Email: {_text(data, 'applicantEmail')}",
        "",
        "Documents:",
        f"Resume: {_text(data, 'resumeUrl')}",
        f"Cover Letter: {cover}" if cover else "Cover Letter: Not provided",
        "",
        f"Application submitted at: {utcnow().isoformat()}",
    ])


# ---------- Email ----------

def dispatch_email(subject: str, body: str) -> bool:
    """Log the message that would be sent. No mail transport is wired up."""
    sender = os.getenv("MAIL_FROM", "noreply@multiagentdronesystems.com")
    recipient = os.getenv("CONTACT_INBOX", "info@multiagentdronesystems.com")
    logger.info("Email would be sent from %s to %s: %s\n%s", sender, recipient, subject, body)
    return True
