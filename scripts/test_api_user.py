import unittest

from api_helpers import ApiTestCase
from app.models.user import USERS


class TestAvailability(ApiTestCase):
    def test_ping_routes(self):
        for path in ("/ping", "/api/user/ping", "/api/user", "/health", "/"):
            response = self.client.get(path)
            self.assertEqual(response.status_code, 200, path)
            self.assertTrue(response.json()["success"])


class TestOwnRecord(ApiTestCase):
    def setUp(self):
        super().setUp()
        signup = self.signup_user()
        self.user = signup["user"]
        self.headers = self.bearer(signup["token"])

    def test_update_whitelists_fields(self):
        response = self.client.put(
            "/api/user",
            headers=self.headers,
            json={
                "name": "Alice B",
                "age": 81,
                "medicalInfo": {"bloodType": "O+"},
                "caregiverEmail": "intruder@example.com",
                "email": "other@gmail.com",
            },
        )
        self.assertEqual(response.status_code, 200, response.text)
        user = response.json()["user"]
        self.assertEqual(user["name"], "Alice B")
        self.assertEqual(user["age"], "81")
        self.assertEqual(user["medicalInfo"]["bloodType"], "O+")
        self.assertEqual(user["medicalInfo"]["conditions"], "")
        self.assertEqual(user["email"], "alice@gmail.com")
        self.assertIsNone(user["caregiverEmail"])

    def test_password_change_is_hashed(self):
        self.client.put("/api/user/profile", headers=self.headers, json={"password": "changed1"})
        stored = self.store.get(USERS, self.user["id"])
        self.assertNotEqual(stored["password"], "changed1")
        login = self.client.post("/api/auth/login", json={"email": "alice@gmail.com", "password": "changed1"})
        self.assertEqual(login.status_code, 200)

    def test_name_too_long(self):
        response = self.client.put("/api/user", headers=self.headers, json={"name": "x" * 51})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_requires_token(self):
        self.assertEqual(self.client.put("/api/user", json={"name": "x"}).status_code, 401)

    def test_get_profile(self):
        data = self.client.get("/api/user/profile", headers=self.headers).json()["data"]
        self.assertEqual(data["email"], "alice@gmail.com")
        self.assertIsNone(data["homeLocation"])

    def test_caregiver_token_cannot_use_patient_routes(self):
        token = self.signup_caregiver()["token"]
        response = self.client.get("/api/user/profile", headers=self.bearer(token))
        self.assertEqual(response.status_code, 403)


class TestSelfSync(ApiTestCase):
    def setUp(self):
        super().setUp()
        signup = self.signup_user()
        self.user = signup["user"]
        self.headers = self.bearer(signup["token"])

    def test_lists_are_replaced_wholesale(self):
        self.client.post("/api/user/sync/reminders", headers=self.headers, json={"reminders": [{"id": "a"}, {"id": "b"}]})
        response = self.client.post("/api/user/sync/reminders", headers=self.headers, json={"reminders": [{"id": "c"}]})
        self.assertEqual(response.json()["reminders"], [{"id": "c"}])
        self.assertEqual(self.client.get("/api/user/sync/reminders", headers=self.headers).json()["reminders"], [{"id": "c"}])

    def test_contacts_map_to_emergency_contacts(self):
        self.client.post("/api/user/sync/contacts", headers=self.headers, json={"contacts": [{"id": "c1"}]})
        self.assertEqual(self.store.get(USERS, self.user["id"])["emergencyContacts"], [{"id": "c1"}])
        self.assertEqual(self.client.get("/api/user/sync/contacts", headers=self.headers).json()["contacts"], [{"id": "c1"}])

    def test_non_list_rejected(self):
        response = self.client.post("/api/user/sync/memories", headers=self.headers, json={"memories": "nope"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Memories must be an array")

    def test_home_location(self):
        response = self.client.post(
            "/api/user/sync/homeLocation", headers=self.headers, json={"homeLocation": {"lat": 1, "lng": 2}}
        )
        self.assertEqual(response.json()["homeLocation"], {"lat": 1, "lng": 2})

    def test_sync_by_email_authorization(self):
        own = self.client.get("/api/user/sync/email/Alice@gmail.com", headers=self.headers)
        self.assertEqual(own.status_code, 200)
        self.assertEqual(own.json()["user"]["reminders"], [])

        other_token = self.signup_user(email="bob@gmail.com", name="Bob")["token"]
        denied = self.client.get("/api/user/sync/email/alice@gmail.com", headers=self.bearer(other_token))
        self.assertEqual(denied.status_code, 403)

        caregiver = self.signup_caregiver()
        self.assertEqual(
            self.client.get("/api/user/sync/email/alice@gmail.com", headers=self.bearer(caregiver["token"])).status_code,
            403,
        )
        self.connect(caregiver["caregiver"]["id"])
        self.assertEqual(
            self.client.get("/api/user/sync/email/alice@gmail.com", headers=self.bearer(caregiver["token"])).status_code,
            200,
        )


class TestLookups(ApiTestCase):
    def setUp(self):
        super().setUp()
        signup = self.signup_user()
        self.user = signup["user"]
        self.headers = self.bearer(signup["token"])

    def test_profile_and_lookup_by_email(self):
        profile = self.client.get("/api/user/profile/ALICE@gmail.com").json()
        self.assertEqual(profile["id"], self.user["id"])
        self.assertIn("phone", profile)
        lookup = self.client.get("/api/user/lookup/alice@gmail.com").json()
        self.assertNotIn("phone", lookup)
        self.assertEqual(self.client.get("/api/user/lookup/ghost@gmail.com").status_code, 404)

    def test_get_by_id(self):
        response = self.client.get(f"/api/user/{self.user['id']}", headers=self.headers)
        self.assertEqual(response.json()["user"]["email"], "alice@gmail.com")
        self.assertEqual(self.client.get("/api/user/missing", headers=self.headers).status_code, 404)

    def test_activities(self):
        body = self.client.get(f"/api/user/activities/{self.user['id']}", headers=self.headers).json()
        self.assertEqual(len(body["activities"]), 5)
        self.assertTrue(body["userFound"])
        self.assertFalse(self.client.get("/api/user/activities/missing", headers=self.headers).json()["userFound"])

    def test_patient_connects_to_caregiver(self):
        caregiver = self.signup_caregiver()["caregiver"]
        response = self.client.post(
            "/api/user/connect/caregiver", headers=self.headers, json={"caregiverEmail": "CARL@example.com"}
        )
        self.assertEqual(response.status_code, 200)
        patients = self.client.get(f"/api/caregivers/{caregiver['id']}/patients").json()["patients"]
        self.assertEqual([p["email"] for p in patients], ["alice@gmail.com"])

        missing = self.client.post(
            "/api/user/connect/caregiver", headers=self.headers, json={"caregiverEmail": "nobody@example.com"}
        )
        self.assertEqual(missing.status_code, 404)


if __name__ == "__main__":
    unittest.main()
