"""
Caregiver <-> patient connections.

A caregiver points at patients by email: ``patientEmail`` (primary patient),
``connectedPatients`` (active set) and the ``patientData`` cache slots. The
patient points back through ``caregiverEmail``. This module is the only writer
of those fields, so both sides are kept in step here:

- connect / disconnect update both documents,
- reads that touch a caregiver's references re-check that the patient still
  exists and clear dangling ones (lazy repair),
- account deletes call the cascade helpers.

Two documents are never written atomically; each single-document
read-then-write uses the record revision to detect a concurrent writer.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from app.core.errors import InvalidState, NotFound, ValidationError
from app.core.store import DELETE, DocumentStore, Where
from app.models.caregiver import CAREGIVERS, empty_patient_slot
from app.models.user import CAREGIVER_REFERENCE_FIELDS, USERS, user_summary
from app.services.accounts import normalize_email
from app.services.logger import log_event

logger = logging.getLogger(__name__)

PATIENT_NOT_FOUND = "Patient not found. This account may have been deleted or does not exist."


class ConnectionManager:
    def __init__(self, store: DocumentStore):
        self.store = store

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def require_caregiver(self, caregiver_id: Optional[str]) -> Dict[str, Any]:
        doc = self.store.get(CAREGIVERS, caregiver_id) if caregiver_id else None
        if doc is None:
            raise NotFound("Caregiver not found")
        return doc

    def _patient(self, email: str) -> Optional[Dict[str, Any]]:
        return self.store.find_one(USERS, "email", email)

    def patient_exists(self, email: Optional[str]) -> bool:
        normalized = normalize_email(email)
        return bool(normalized) and self._patient(normalized) is not None

    @staticmethod
    def is_connected(caregiver: Dict[str, Any], patient_email: Optional[str]) -> bool:
        normalized = normalize_email(patient_email)
        if not normalized:
            return False
        return (
            caregiver.get("patientEmail") == normalized
            or normalized in (caregiver.get("connectedPatients") or [])
        )

    # ------------------------------------------------------------------
    # Connect / disconnect
    # ------------------------------------------------------------------
    def connect(self, caregiver_id: Optional[str], patient_email: Optional[str]) -> Dict[str, Any]:
        """
        Link a caregiver to an existing patient.

        The first patient becomes the primary one; later patients only join
        ``connectedPatients``. Returns the updated caregiver document.
        """
        normalized = normalize_email(patient_email)
        if not normalized:
            raise ValidationError("Patient email is required")

        caregiver = self.require_caregiver(caregiver_id)
        patient = self._patient(normalized)
        if patient is None:
            raise NotFound(PATIENT_NOT_FOUND)

        # A vanished primary is cleared first so the new patient can take its place
        caregiver, _ = self.verify_primary(caregiver)
        updated = self._attach(caregiver, normalized)
        self._set_back_reference(patient, updated)

        log_event("connection.connect", {"caregiver": updated["email"], "patient": normalized})
        logger.info("Caregiver %s connected to patient %s", updated["email"], normalized)
        return updated

    def connect_from_patient(self, user_id: str, caregiver_email: Optional[str]) -> Dict[str, Any]:
        """The patient-initiated form of ``connect``."""
        normalized = normalize_email(caregiver_email)
        if not normalized:
            raise ValidationError("Caregiver email is required")

        patient = self.store.get(USERS, user_id)
        if patient is None:
            raise NotFound("User not found")
        caregiver = self.store.find_one(CAREGIVERS, "email", normalized)
        if caregiver is None:
            raise NotFound("Caregiver not found")

        return self.connect(caregiver["id"], patient["email"])

    def _attach(self, caregiver: Dict[str, Any], patient_email: str) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        if not caregiver.get("patientEmail"):
            fields["patientEmail"] = patient_email

        connected = list(caregiver.get("connectedPatients") or [])
        if patient_email not in connected:
            fields["connectedPatients"] = connected + [patient_email]

        patient_data = dict(caregiver.get("patientData") or {})
        if patient_email not in patient_data:
            patient_data[patient_email] = empty_patient_slot()
            fields["patientData"] = patient_data

        if not fields:
            return caregiver
        return self.store.update(CAREGIVERS, caregiver["id"], fields, caregiver.get("revision"))

    def _set_back_reference(self, patient: Dict[str, Any], caregiver: Dict[str, Any]):
        self.store.update(
            USERS,
            patient["id"],
            {
                "caregiverEmail": caregiver["email"],
                "caregiverName": caregiver.get("name"),
                "caregiverId": caregiver["id"],
            },
        )

    def disconnect(self, caregiver_id: Optional[str], patient_email: Optional[str]) -> Dict[str, Any]:
        normalized = normalize_email(patient_email)
        if not caregiver_id or not normalized:
            raise ValidationError("Caregiver ID and patient email are required")

        caregiver = self.require_caregiver(caregiver_id)
        if not self.is_connected(caregiver, normalized):
            raise InvalidState("Caregiver is not connected to this patient")

        connected = [e for e in (caregiver.get("connectedPatients") or []) if e != normalized]
        patient_data = {
            k: v for k, v in (caregiver.get("patientData") or {}).items() if k != normalized
        }
        fields: Dict[str, Any] = {"connectedPatients": connected, "patientData": patient_data}
        if caregiver.get("patientEmail") == normalized:
            fields["patientEmail"] = None
        updated = self.store.update(CAREGIVERS, caregiver["id"], fields, caregiver.get("revision"))

        patient = self._patient(normalized)
        if patient is not None and patient.get("caregiverEmail") == caregiver["email"]:
            self.store.update(USERS, patient["id"], {f: DELETE for f in CAREGIVER_REFERENCE_FIELDS})

        log_event("connection.disconnect", {"caregiver": caregiver["email"], "patient": normalized})
        return updated

    # ------------------------------------------------------------------
    # Self-healing reads
    # ------------------------------------------------------------------
    def verify_primary(self, caregiver: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """
        Re-check the primary patient reference. Returns the (possibly repaired)
        caregiver and whether a dangling reference was cleared.
        """
        email = caregiver.get("patientEmail")
        if not email or self._patient(email.lower()) is not None:
            return caregiver, False

        logger.info("Patient %s not found. Removing connection from caregiver %s", email, caregiver.get("email"))
        repaired = self.store.update(
            CAREGIVERS, caregiver["id"], {"patientEmail": None}, caregiver.get("revision")
        )
        return repaired, True

    def verify_connection(self, caregiver_id: str, patient_email: Optional[str]) -> Tuple[bool, bool]:
        """Returns (connected, repaired) for one caregiver/patient pair."""
        normalized = normalize_email(patient_email)
        caregiver = self.require_caregiver(caregiver_id)
        if caregiver.get("patientEmail") != normalized:
            return False, False
        _, repaired = self.verify_primary(caregiver)
        return not repaired, repaired

    def connected_patients(self, caregiver_id: str) -> List[Dict[str, Any]]:
        """Summaries of every connected patient; vanished ones are pruned from the record."""
        caregiver = self.require_caregiver(caregiver_id)
        emails = caregiver.get("connectedPatients") or []

        patients = []
        missing = []
        for email in emails:
            patient = self._patient(email.lower())
            if patient is None:
                missing.append(email)
            else:
                patients.append(user_summary(patient))

        if missing:
            logger.info("Pruning vanished patients %s from caregiver %s", missing, caregiver.get("email"))
            fields: Dict[str, Any] = {
                "connectedPatients": [e for e in emails if e not in missing],
            }
            if caregiver.get("patientEmail") in missing:
                fields["patientEmail"] = None
            self.store.update(CAREGIVERS, caregiver["id"], fields, caregiver.get("revision"))
        return patients

    # ------------------------------------------------------------------
    # Cascades
    # ------------------------------------------------------------------
    def on_patient_deleted(self, patient_email: str) -> int:
        """Drop every caregiver reference to a deleted patient. Returns caregivers touched."""
        normalized = normalize_email(patient_email)
        if not normalized:
            return 0
        logger.info("[CLEANUP] Clearing all caregiver connections to patient: %s", normalized)

        touched = 0
        # patientData is keyed by email, which cannot be queried on; scan them all
        for caregiver in self.store.find(CAREGIVERS):
            fields: Dict[str, Any] = {}
            if caregiver.get("patientEmail") == normalized:
                fields["patientEmail"] = None
            connected = caregiver.get("connectedPatients") or []
            if normalized in connected:
                fields["connectedPatients"] = [e for e in connected if e != normalized]
            patient_data = caregiver.get("patientData") or {}
            if normalized in patient_data:
                fields["patientData"] = {k: v for k, v in patient_data.items() if k != normalized}
            if fields:
                self.store.update(CAREGIVERS, caregiver["id"], fields)
                touched += 1

        logger.info("[CLEANUP] Removed %d caregiver connections to patient: %s", touched, normalized)
        return touched

    def on_caregiver_deleted(self, caregiver: Dict[str, Any]) -> int:
        """Unset the back-reference on every patient that pointed at this caregiver."""
        email = normalize_email(caregiver.get("email"))
        unset = {f: DELETE for f in CAREGIVER_REFERENCE_FIELDS}

        patients = self.store.find(USERS, Where("caregiverEmail", "==", email))
        for patient in patients:
            self.store.update(USERS, patient["id"], unset)

        logger.info("Removed caregiver %s from %d patient records", email, len(patients))
        return len(patients)

