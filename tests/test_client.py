import json
import re

import httpx
import pytest

from client import CONNECTION_ERROR, SUBMIT_ERROR, FunctionsClient
from forms import DocumentUpload

CONTACT = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "ada@example.com",
    "phone": "5550102030",
    "message": "Interested in a survey fleet.",
}


class Recorder:
    def __init__(self, status=200, body=None, exc=None):
        self.requests = []
        self.status = status
        self.body = body if body is not None else {"success": True, "message": "Thanks!"}
        self.exc = exc

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status, json=self.body)


def make_client(recorder):
    http = httpx.Client(transport=httpx.MockTransport(recorder))
    return FunctionsClient("https://api.example.com/", "anon-key", http=http)


def test_overlong_message_is_rejected_before_sending():
    recorder = Recorder()
    result = make_client(recorder).submit_contact({**CONTACT, "message": "x" * 501})

    assert result.success is False
    assert result.errors == {"message": "Message must be 500 characters or less"}
    assert recorder.requests == []


def test_contact_posts_with_bearer():
    recorder = Recorder()
    result = make_client(recorder).submit_contact(CONTACT)

    assert result.success is True
    assert result.message == "Thanks!"
    request = recorder.requests[0]
    assert str(request.url) == "https://api.example.com/functions/v1/send-contact-email"
    assert request.headers["Authorization"] == "Bearer anon-key"
    assert json.loads(request.content) == CONTACT


def test_server_error_becomes_submit_error():
    recorder = Recorder(status=400, body={"success": False, "error": "Invalid email format"})
    result = make_client(recorder).submit_contact(CONTACT)

    assert result.success is False
    assert result.errors == {"submit": "Invalid email format"}


def test_connection_failure_becomes_submit_error():
    recorder = Recorder(exc=httpx.ConnectError("unreachable"))
    result = make_client(recorder).submit_contact(CONTACT)

    assert result.errors == {"submit": CONNECTION_ERROR}


@pytest.fixture
def resume():
    return DocumentUpload(filename="cv.pdf", content_type="application/pdf", size=2048, content=b"%PDF-1.7")


def test_application_uploads_then_posts(resume):
    uploads = []

    def upload(path, document):
        uploads.append(path)
        return f"https://files.example.com/{path}"

    recorder = Recorder()
    cover = DocumentUpload(filename="letter.pdf", content_type="application/pdf", size=1024)
    result = make_client(recorder).submit_application(
        "pos-7", "Field Test Pilot", "Grace Hopper", "grace@example.com", resume, upload, cover)

    assert result.success is True
    assert len(uploads) == 2
    assert re.fullmatch(r"applications/pos-7/\d+_Grace_Hopper_resume\.pdf", uploads[0])
    assert re.fullmatch(r"applications/pos-7/\d+_Grace_Hopper_cover_letter\.pdf", uploads[1])

    payload = json.loads(recorder.requests[0].content)
    assert payload["resumeUrl"] == f"https://files.example.com/{uploads[0]}"
    assert payload["coverLetterUrl"] == f"https://files.example.com/{uploads[1]}"
    assert payload["positionTitle"] == "Field Test Pilot"


def test_application_stops_when_upload_fails(resume):
    recorder = Recorder()
    result = make_client(recorder).submit_application(
        "pos-7", "Field Test Pilot", "Grace Hopper", "grace@example.com", resume, lambda p, d: None)

    assert result.errors == {"submit": "Failed to upload resume. Please try again."}
    assert recorder.requests == []


def test_application_requires_pdf_resume():
    calls = []
    recorder = Recorder()
    word = DocumentUpload(filename="cv.docx", content_type="application/msword", size=10)
    result = make_client(recorder).submit_application(
        "pos-7", "Field Test Pilot", "Grace Hopper", "grace@example.com", word,
        lambda p, d: calls.append(p))

    assert result.errors == {"resume": "Resume must be a PDF file"}
    assert calls == []
    assert recorder.requests == []


def test_non_object_error_body_becomes_submit_error():
    recorder = Recorder(status=502, body=["bad gateway"])
    result = make_client(recorder).submit_contact(CONTACT)

    assert result.success is False
    assert result.errors == {"submit": SUBMIT_ERROR}


def test_contact_with_malformed_domain_is_not_sent():
    recorder = Recorder()
    result = make_client(recorder).submit_contact({**CONTACT, "email": "a@-bad-.c"})

    assert result.errors == {"email": "Please enter a valid email address"}
    assert recorder.requests == []


def test_application_upload_exception_is_a_submit_error(resume):
    def broken(path, document):
        raise OSError("storage down")

    recorder = Recorder()
    result = make_client(recorder).submit_application(
        "pos-7", "Field Test Pilot", "Grace Hopper", "grace@example.com", resume, broken)

    assert result.success is False
    assert result.errors == {"submit": "Failed to upload resume. Please try again."}
    assert recorder.requests == []


def test_cover_letter_upload_exception_is_a_submit_error(resume):
    def resume_only(path, document):
        if "cover_letter" in path:
            raise OSError("storage down")
        return f"https://files.example.com/{path}"

    recorder = Recorder()
    cover = DocumentUpload(filename="letter.pdf", content_type="application/pdf", size=1024)
    result = make_client(recorder).submit_application(
        "pos-7", "Field Test Pilot", "Grace Hopper", "grace@example.com", resume, resume_only, cover)

    assert result.errors == {"submit": "Failed to upload cover letter. Please try again."}
    assert recorder.requests == []


def test_owned_http_client_is_closed():
    with FunctionsClient("https://api.example.com", "anon-key") as client:
        assert client.http.is_closed is False
    assert client.http.is_closed is True


def test_injected_http_client_is_left_open():
    http = httpx.Client(transport=httpx.MockTransport(Recorder()))
    with FunctionsClient("https://api.example.com", "anon-key", http=http):
        pass

    assert http.is_closed is False
    http.close()
