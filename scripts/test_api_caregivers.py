import unittest

from api_helpers import ApiTestCase
from app.models.caregiver import CAREGIVERS
from app.models.user import USERS
from app.services.connections import PATIENT_NOT_FOUND
from app.services.verification import CAREGIVER_RESET


class TestCaregiverAuth(ApiTestCase):
    def test_signup_and_login(self):
        signup = self.signup_caregiver()
        self.assertEqual(signup["caregiver"]["phone"], "555-0100")

        login = self.client.post("/api/caregivers/login", json={"email": "carl@example.com", "password": "secret123"})
        self.assertEqual(login.status_code, 200)
        body = login.json()
        self.assertTrue(body["token"])
        self.assertIsNone(body["caregiver"]["patientEmail"])

    def test_invalid_credentials(self):
        self.signup_caregiver()
        for email, password in (("carl@example.com", "wrong-pass"), ("nobody@example.com", "secret123")):
            response = self.client.post("/api/caregivers/login", json={"email": email, "password": password})
            self.assertEqual(response.status_code, 401)
            self.assertEqual(response.json()["message"], "Invalid credentials")

    def test_login_clears_deleted_primary_patient(self):
        user = self.signup_user()["user"]
        caregiver = self.signup_caregiver()["caregiver"]
        self.connect(caregiver["id"])
        self.store.delete(USERS, user["id"])

        login = self.client.post("/api/caregivers/login", json={"email": "carl@example.com", "password": "secret123"})
        self.assertIsNone(login.json()["caregiver"]["patientEmail"])
        self.assertIsNone(self.store.get(CAREGIVERS, caregiver["id"])["patientEmail"])

    def test_check_email(self):
        self.signup_caregiver()
        self.assertEqual(self.client.post("/api/caregivers/check-email", json={"email": "CARL@example.com"}).status_code, 200)
        self.assertEqual(self.client.get("/api/caregivers/check-email", params={"email": "carl@example.com"}).status_code, 200)
        missing = self.client.get("/api/caregivers/check-email", params={"email": "x@example.com"})
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["message"], "Email not found")

    def test_reset_password(self):
        self.signup_caregiver()
        self.client.post("/api/caregivers/forgot-password", json={"email": "carl@example.com"})
        self.assertEqual(self.mailer.sent[0]["subject"], "Caregiver Password Reset Code")
        code = self.pending_code(CAREGIVER_RESET, "carl@example.com")

        reset = self.client.post(
            "/api/caregivers/reset-password",
            json={"email": "carl@example.com", "code": code, "newPassword": "brandnew1"},
        )
        self.assertEqual(reset.status_code, 200)
        login = self.client.post("/api/caregivers/login", json={"email": "carl@example.com", "password": "brandnew1"})
        self.assertEqual(login.status_code, 200)

    def test_info(self):
        self.signup_caregiver()
        response = self.client.get("/api/caregivers/info/Carl@Example.com")
        self.assertEqual(response.json()["caregiver"], {"name": "Carl", "email": "carl@example.com"})
        self.assertEqual(self.client.get("/api/caregivers/info/x@example.com").status_code, 404)


class TestConnectAndSync(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.user = self.signup_user()["user"]
        signup = self.signup_caregiver()
        self.caregiver = signup["caregiver"]
        self.caregiver_token = signup["token"]

    def test_connect_sync_and_read_back(self):
        connected = self.connect(self.caregiver["id"], "ALICE@gmail.com")
        self.assertEqual(connected["caregiver"]["patientEmail"], "alice@gmail.com")
        self.assertNotIn("password", connected["caregiver"])

        sync = self.client.post(
            "/api/caregivers/sync/patient-reminders",
            json={"caregiverId": self.caregiver["id"], "patientEmail": "alice@gmail.com", "reminders": [{"id": "r1"}]},
        )
        self.assertEqual(sync.status_code, 200)
        self.assertEqual(sync.json()["count"], 1)

        data = self.client.get(
            "/api/caregivers/sync/patient-data/alice@gmail.com", params={"caregiverId": self.caregiver["id"]}
        )
        self.assertEqual(data.status_code, 200)
        reminders = data.json()["patientData"]["reminders"]
        self.assertEqual(len(reminders), 1)
        self.assertEqual(reminders[0]["id"], "r1")
        self.assertEqual(reminders[0]["forPatient"], "alice@gmail.com")

    def test_resync_replaces_items_by_id(self):
        self.connect(self.caregiver["id"])
        url = "/api/caregivers/sync/patient-memories"
        base = {"caregiverId": self.caregiver["id"], "patientEmail": "alice@gmail.com"}
        self.client.post(url, json={**base, "memories": [{"id": "m1", "text": "old"}, {"id": "m2"}]})
        self.client.post(url, json={**base, "memories": [{"id": "m1", "text": "new"}]})

        memories = self.store.get(USERS, self.user["id"])["memories"]
        self.assertEqual([m["id"] for m in memories], ["m2", "m1"])
        self.assertEqual(memories[1]["text"], "new")

    def test_contacts_and_location(self):
        self.connect(self.caregiver["id"])
        base = {"caregiverId": self.caregiver["id"], "patientEmail": "alice@gmail.com"}
        contacts = self.client.post(
            "/api/caregivers/sync/patient-contacts", json={**base, "contacts": [{"id": "c1", "name": "Bob"}]}
        )
        self.assertEqual(contacts.json()["message"], "Patient emergency contacts synced successfully")
        location = self.client.post(
            "/api/caregivers/sync/patient-location", json={**base, "homeLocation": {"lat": 1.5, "lng": 2.5}}
        )
        self.assertEqual(location.status_code, 200)

        patient = self.store.get(USERS, self.user["id"])
        self.assertEqual(patient["emergencyContacts"][0]["createdBy"], "carl@example.com")
        self.assertEqual(patient["homeLocation"], {"lat": 1.5, "lng": 2.5})
        slot = self.store.get(CAREGIVERS, self.caregiver["id"])["patientData"]["alice@gmail.com"]
        self.assertEqual(slot["homeLocation"], {"lat": 1.5, "lng": 2.5})

    def test_sync_invalid_payload(self):
        self.connect(self.caregiver["id"])
        response = self.client.post(
            "/api/caregivers/sync/patient-reminders",
            json={"caregiverId": self.caregiver["id"], "patientEmail": "alice@gmail.com"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Missing required fields or invalid data format")

    def test_sync_without_connection(self):
        response = self.client.post(
            "/api/caregivers/sync/patient-reminders",
            json={"caregiverId": self.caregiver["id"], "patientEmail": "alice@gmail.com", "reminders": []},
        )
        self.assertEqual(response.status_code, 403)

    def test_connect_to_missing_patient(self):
        response = self.client.post(
            "/api/caregivers/connect", json={"caregiverId": self.caregiver["id"], "patientEmail": "ghost@gmail.com"}
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], PATIENT_NOT_FOUND)
        self.assertIsNone(self.store.get(CAREGIVERS, self.caregiver["id"])["patientEmail"])

    def test_disconnect(self):
        self.connect(self.caregiver["id"])
        payload = {"caregiverId": self.caregiver["id"], "patientEmail": "alice@gmail.com"}
        self.assertEqual(self.client.post("/api/caregivers/disconnect", json=payload).status_code, 200)

        again = self.client.post("/api/caregivers/disconnect", json=payload)
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.json()["message"], "Caregiver is not connected to this patient")

    def test_check_patient(self):
        self.assertTrue(self.client.get("/api/caregivers/check-patient/Alice@gmail.com").json()["exists"])
        self.assertFalse(self.client.get("/api/caregivers/check-patient/ghost@gmail.com").json()["exists"])

    def test_verification_endpoints_repair_dangling_primary(self):
        self.connect(self.caregiver["id"])
        cid = self.caregiver["id"]

        self.assertTrue(self.client.get(f"/api/caregivers/verify-connections/{cid}").json()["valid"])
        self.assertTrue(self.client.get(f"/api/caregivers/verify-connection/{cid}/alice@gmail.com").json()["connected"])
        check = self.client.get(f"/api/caregivers/verify-patient-connection/{cid}").json()
        self.assertTrue(check["hasValidPatient"])
        self.assertEqual(check["patientEmail"], "alice@gmail.com")

        self.store.delete(USERS, self.user["id"])
        connection = self.client.get(f"/api/caregivers/verify-connection/{cid}/alice@gmail.com").json()
        self.assertFalse(connection["connected"])
        self.assertEqual(connection["message"], "Patient account no longer exists. Connection removed.")
        self.assertFalse(self.client.get(f"/api/caregivers/verify-patient-connection/{cid}").json()["hasValidPatient"])

    def test_connected_patients(self):
        empty = self.client.get(f"/api/caregivers/{self.caregiver['id']}/patients").json()
        self.assertEqual(empty["patients"], [])

        self.connect(self.caregiver["id"])
        listed = self.client.get(f"/api/caregivers/{self.caregiver['id']}/patients").json()
        self.assertEqual(listed["patients"][0]["email"], "alice@gmail.com")
        self.assertEqual(listed["patients"][0]["name"], "Alice")

    def test_profile_sync(self):
        response = self.client.post(
            "/api/caregivers/sync/profile",
            json={"caregiverId": self.caregiver["id"], "profile": {"name": "Carlos", "profileImageUrl": "http://img"}},
        )
        self.assertEqual(response.status_code, 200)
        profile = self.client.get("/api/caregivers/profile", params={"caregiverId": self.caregiver["id"]}).json()
        self.assertEqual(profile["data"]["name"], "Carlos")
        self.assertEqual(profile["data"]["profileImage"], "http://img")

        self.assertEqual(self.client.get("/api/caregivers/profile").status_code, 400)

    def test_profile_clears_vanished_primary(self):
        self.connect(self.caregiver["id"])
        self.store.delete(USERS, self.user["id"])

        profile = self.client.get("/api/caregivers/profile", params={"caregiverId": self.caregiver["id"]}).json()
        self.assertIsNone(profile["data"]["patientEmail"])
        self.assertIsNone(self.store.get(CAREGIVERS, self.caregiver["id"])["patientEmail"])

    def test_connect_replaces_vanished_primary(self):
        self.connect(self.caregiver["id"])
        self.store.delete(USERS, self.user["id"])
        self.signup_user(email="bob@gmail.com", name="Bob")

        body = self.connect(self.caregiver["id"], "bob@gmail.com")
        self.assertEqual(body["caregiver"]["patientEmail"], "bob@gmail.com")

    def test_patient_data_for_caregiver_token(self):
        self.connect(self.caregiver["id"])
        response = self.client.get("/api/user/patient/alice@gmail.com", headers=self.bearer(self.caregiver_token))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["patient"]["email"], "alice@gmail.com")

        user_token = self.client.post(
            "/api/auth/login", json={"email": "alice@gmail.com", "password": "secret123"}
        ).json()["token"]
        denied = self.client.get("/api/user/patient/alice@gmail.com", headers=self.bearer(user_token))
        self.assertEqual(denied.status_code, 403)


class TestCaregiverDeletion(ApiTestCase):
    def test_delete_by_email_unsets_patient_references(self):
        user = self.signup_user()["user"]
        caregiver = self.signup_caregiver()["caregiver"]
        self.connect(caregiver["id"])
        self.assertEqual(self.store.get(USERS, user["id"])["caregiverEmail"], "carl@example.com")

        response = self.client.post("/api/caregivers/deleteAccount", json={"caregiverEmail": "Carl@Example.com"})
        self.assertEqual(response.status_code, 200)

        patient = self.store.get(USERS, user["id"])
        self.assertNotIn("caregiverEmail", patient)
        self.assertNotIn("caregiverId", patient)
        self.assertIsNone(self.store.get(CAREGIVERS, caregiver["id"]))

        again = self.client.post("/api/caregivers/deleteAccount", json={"caregiverId": caregiver["id"]})
        self.assertEqual(again.status_code, 404)

    def test_delete_requires_identifier(self):
        response = self.client.post("/api/caregivers/deleteAccount", json={})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Either caregiver ID or email is required")


if __name__ == "__main__":
    unittest.main()
