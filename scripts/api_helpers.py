"""Shared TestClient setup: in-memory store, fake push and mail transports."""
import unittest

from fastapi.testclient import TestClient

from app.api.deps import get_expo, get_mailer, get_push, get_store
from app.main import app
from app.services.verification import VERIFICATION_CODES


class FakePush:
    def __init__(self):
        self.sent = []
        self.topics = []
        self.fail_with = None

    def send(self, title, body, data, token=None, topic=None):
        if self.fail_with:
            raise self.fail_with
        self.sent.append({"title": title, "body": body, "data": data, "token": token, "topic": topic})
        return f"projects/test/messages/{len(self.sent)}"

    def subscribe(self, token, topic):
        self.topics.append(("subscribe", token, topic))
        return {"successCount": 1, "failureCount": 0, "errors": []}

    def unsubscribe(self, token, topic):
        self.topics.append(("unsubscribe", token, topic))
        return {"successCount": 1, "failureCount": 0, "errors": []}


class FakeExpo:
    def __init__(self):
        self.sent = []

    def send(self, token, title, body, data):
        self.sent.append({"to": token, "title": title, "body": body, "data": data})
        return {"data": {"status": "ok"}}


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.fail_with = None

    def send(self, to, subject, text, html=None):
        if self.fail_with:
            raise self.fail_with
        self.sent.append({"to": to, "subject": subject, "text": text, "html": html})
        return f"<{len(self.sent)}@test>"


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.push = FakePush()
        self.expo = FakeExpo()
        self.mailer = FakeMailer()
        app.dependency_overrides[get_push] = lambda: self.push
        app.dependency_overrides[get_expo] = lambda: self.expo
        app.dependency_overrides[get_mailer] = lambda: self.mailer

        self.store = get_store()
        self.store.reset()
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    # -------------------------
    # Helpers
    # -------------------------
    @staticmethod
    def bearer(token):
        return {"Authorization": f"Bearer {token}"}

    def signup_user(self, email="alice@gmail.com", password="secret123", name="Alice"):
        response = self.client.post(
            "/api/auth/signup", json={"name": name, "email": email, "password": password}
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def signup_caregiver(self, email="carl@example.com", password="secret123", name="Carl"):
        response = self.client.post(
            "/api/caregivers/signup",
            json={"name": name, "email": email, "password": password, "phoneNumber": "555-0100"},
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def connect(self, caregiver_id, patient_email="alice@gmail.com"):
        response = self.client.post(
            "/api/caregivers/connect", json={"caregiverId": caregiver_id, "patientEmail": patient_email}
        )
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()

    def pending_code(self, purpose, email):
        entry = self.store.get(VERIFICATION_CODES, f"{purpose}:{email}")
        return entry["code"] if entry else None
