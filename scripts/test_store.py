import unittest

from app.core.errors import ConcurrentModification
from app.core.store import DELETE, InMemoryStore, Where


class TestInMemoryStore(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryStore()

    def test_insert_and_get(self):
        doc_id = self.store.insert("users", {"email": "a@gmail.com"})
        doc = self.store.get("users", doc_id)
        self.assertEqual(doc["id"], doc_id)
        self.assertEqual(doc["email"], "a@gmail.com")
        self.assertEqual(doc["revision"], 1)

    def test_returned_documents_are_copies(self):
        doc_id = self.store.insert("users", {"reminders": []})
        doc = self.store.get("users", doc_id)
        doc["reminders"].append({"id": "r1"})
        self.assertEqual(self.store.get("users", doc_id)["reminders"], [])

    def test_update_bumps_revision(self):
        doc_id = self.store.insert("users", {"name": "Alice"})
        updated = self.store.update("users", doc_id, {"name": "Alicia"})
        self.assertEqual(updated["name"], "Alicia")
        self.assertEqual(updated["revision"], 2)

    def test_stale_revision_is_rejected(self):
        doc_id = self.store.insert("users", {"name": "Alice"})
        first = self.store.get("users", doc_id)
        self.store.update("users", doc_id, {"name": "Bob"}, expected_revision=first["revision"])

        with self.assertRaises(ConcurrentModification):
            self.store.update("users", doc_id, {"name": "Carol"}, expected_revision=first["revision"])
        self.assertEqual(self.store.get("users", doc_id)["name"], "Bob")

    def test_delete_sentinel_removes_field(self):
        doc_id = self.store.insert("users", {"caregiverEmail": "c@x.com", "name": "A"})
        updated = self.store.update("users", doc_id, {"caregiverEmail": DELETE})
        self.assertNotIn("caregiverEmail", updated)

    def test_update_missing_document(self):
        self.assertIsNone(self.store.update("users", "nope", {"name": "x"}))

    def test_find_filters_orders_and_limits(self):
        for i in range(5):
            self.store.insert("notifications", {"userId": "u1" if i % 2 == 0 else "u2", "n": i})
        found = self.store.find("notifications", Where("userId", "==", "u1"), order_by="n", descending=True, limit=2)
        self.assertEqual([d["n"] for d in found], [4, 2])
        self.assertEqual(self.store.count("notifications", Where("userId", "==", "u2")), 2)

    def test_array_contains_and_range(self):
        self.store.insert("caregivers", {"connectedPatients": ["p@gmail.com"], "n": 1})
        self.store.insert("caregivers", {"connectedPatients": [], "n": 5})
        self.assertEqual(
            len(self.store.find("caregivers", Where("connectedPatients", "array_contains", "p@gmail.com"))), 1
        )
        self.assertEqual(len(self.store.find("caregivers", Where("n", "<", 3))), 1)

    def test_delete(self):
        doc_id = self.store.insert("users", {"name": "A"})
        self.assertTrue(self.store.delete("users", doc_id))
        self.assertFalse(self.store.delete("users", doc_id))
        self.assertIsNone(self.store.get("users", doc_id))


if __name__ == "__main__":
    unittest.main()
