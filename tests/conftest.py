import os
import uuid

# Must be set before stuwork.config is imported.
os.environ["DISABLE_DOTENV"] = "1"

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from stuwork import database
from stuwork import main as main_module
from stuwork.services.realtime import RealtimeChannel


class RecordingMailer:
    """Mail relay double: remembers every OTP instead of sending it."""

    console_mode = True

    def __init__(self):
        self.otps = []
        self.welcomed = []
        self.fail_otp = False
        self.fail_welcome = False

    async def send_otp_email(self, email, otp, purpose="registration"):
        if self.fail_otp:
            return False
        self.otps.append((email, otp, purpose))
        return True

    async def send_welcome_email(self, email, name):
        if self.fail_welcome:
            raise RuntimeError("smtp down")
        self.welcomed.append(email)
        return True

    def last_otp(self, email, purpose="registration"):
        for sent_to, otp, sent_purpose in reversed(self.otps):
            if sent_to == email and sent_purpose == purpose:
                return otp
        raise AssertionError(f"no {purpose} OTP sent to {email}")


class RecordingChannel(RealtimeChannel):
    """Channel double that records pushes instead of writing to sockets."""

    def __init__(self):
        super().__init__()
        self.events = []

    async def emit(self, user_id, event, data):
        self.events.append((str(user_id), event, data))
        return 1

    def events_for(self, user_id, event=None):
        return [
            data for uid, name, data in self.events
            if uid == str(user_id) and (event is None or name == event)
        ]


@pytest.fixture()
def mongo(monkeypatch):
    client = AsyncMongoMockClient()
    db = client[f"stuwork_test_{uuid.uuid4().hex[:8]}"]
    monkeypatch.setattr(database, "db", db)
    return db


@pytest.fixture()
def mailer():
    return RecordingMailer()


@pytest.fixture()
def channel():
    return RecordingChannel()


@pytest.fixture()
def app(mongo, mailer, monkeypatch):
    """The real application, wired to an in-memory MongoDB and the recording mailer."""

    async def fake_connect():
        await database.ensure_indexes(mongo)

    async def fake_close():
        return None

    monkeypatch.setattr(main_module, "connect_to_mongo", fake_connect)
    monkeypatch.setattr(main_module, "close_mongo_connection", fake_close)

    fastapi_app = main_module.app
    monkeypatch.setattr(fastapi_app.state, "mailer", mailer)
    monkeypatch.setattr(fastapi_app.state, "channel", RealtimeChannel())
    return fastapi_app


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register(client, mailer, *, email, role="student", name="Test User", password="Testpass123!"):
    """Run the full OTP registration flow and return (token, user)."""
    r = client.post("/auth/send-otp", json={"email": email})
    assert r.status_code == 200, r.text
    otp = mailer.last_otp(email.strip().lower())

    r = client.post(
        "/auth/verify-otp-register",
        json={"name": name, "email": email, "password": password, "role": role, "otp": otp},
    )
    assert r.status_code == 201, r.text
    data = r.json()
    return data["token"], data["user"]


def post_job(client, token, **overrides):
    body = {
        "title": "Campus Barista",
        "description": "Morning shifts at the campus cafe",
        "location": "Main Campus",
        "salary": "15/hr",
        "job_type": "part-time",
        "skills": ["coffee"],
    }
    body.update(overrides)
    r = client.post("/jobs", json=body, headers=auth_headers(token))
    assert r.status_code == 201, r.text
    return r.json()["job"]
