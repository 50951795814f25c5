"""
Caregiver -> patient data sync.

Caregiver-authored reminders, memories and emergency contacts are merged into
the patient's own lists (the source of truth) and then mirrored into the
caregiver's ``patientData[patientEmail]`` cache. Home location is replaced
wholesale. The two writes are separate; a failure between them leaves the
cache stale, which is acceptable because reads always go to the patient.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from app.core.errors import Forbidden, NotFound, ValidationError
from app.core.store import DocumentStore
from app.models.caregiver import CAREGIVERS, empty_patient_slot
from app.models.user import LIST_DOMAINS, USERS
from app.services.accounts import normalize_email
from app.services.connections import ConnectionManager
from app.services.logger import log_event

logger = logging.getLogger(__name__)


def stamp_provenance(items: Iterable[Dict[str, Any]], patient_email: str, caregiver_email: str) -> List[Dict[str, Any]]:
    return [{**item, "forPatient": patient_email, "createdBy": caregiver_email} for item in items]


def merge_list(existing: Optional[List[Dict[str, Any]]], incoming: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Incoming items win by ``id``: existing items whose id is not in ``incoming``
    keep their relative order, followed by ``incoming`` as given.
    """
    incoming_ids = {item.get("id") for item in incoming}
    survivors = [item for item in (existing or []) if item.get("id") not in incoming_ids]
    return survivors + list(incoming)


class SyncService:
    def __init__(self, store: DocumentStore, connections: ConnectionManager):
        self.store = store
        self.connections = connections

    def _resolve(self, caregiver_id: Optional[str], patient_email: Optional[str]):
        normalized = normalize_email(patient_email)
        caregiver = self.store.get(CAREGIVERS, caregiver_id) if caregiver_id else None
        if caregiver is None:
            raise NotFound("Caregiver not found")

        patient = self.store.find_one(USERS, "email", normalized)
        if patient is None:
            raise NotFound("Patient not found")

        if not self.connections.is_connected(caregiver, normalized):
            raise Forbidden("Caregiver is not connected to this patient")
        return caregiver, patient, normalized

    def _mirror(self, caregiver: Dict[str, Any], patient_email: str, fields: Dict[str, Any]) -> None:
        patient_data = dict(caregiver.get("patientData") or {})
        slot = {**empty_patient_slot(), **(patient_data.get(patient_email) or {})}
        slot.update(fields)
        slot["lastSync"] = datetime.now(timezone.utc)
        patient_data[patient_email] = slot
        self.store.update(CAREGIVERS, caregiver["id"], {"patientData": patient_data}, caregiver.get("revision"))

    def sync_list(
        self,
        caregiver_id: Optional[str],
        patient_email: Optional[str],
        domain: str,
        items: Optional[List[Dict[str, Any]]],
    ) -> int:
        """Merge caregiver-authored items into one of the patient's lists. Returns the incoming count."""
        if domain not in LIST_DOMAINS:
            raise ValueError(f"Unknown sync domain: {domain}")
        if not caregiver_id or not patient_email or items is None or not isinstance(items, list):
            raise ValidationError("Missing required fields or invalid data format")

        caregiver, patient, normalized = self._resolve(caregiver_id, patient_email)

        stamped = stamp_provenance(items, normalized, caregiver["email"])
        merged = merge_list(patient.get(domain), stamped)

        self.store.update(
            USERS,
            patient["id"],
            {domain: merged, "lastSyncTime": datetime.now(timezone.utc)},
            patient.get("revision"),
        )
        self._mirror(caregiver, normalized, {domain: merged})

        log_event(f"sync.{domain}", {"caregiver": caregiver["email"], "patient": normalized, "count": len(stamped)})
        return len(stamped)

    def sync_home_location(
        self,
        caregiver_id: Optional[str],
        patient_email: Optional[str],
        home_location: Optional[Dict[str, Any]],
    ) -> None:
        if not caregiver_id or not patient_email or not home_location:
            raise ValidationError("Missing required fields")

        caregiver, patient, normalized = self._resolve(caregiver_id, patient_email)

        self.store.update(
            USERS,
            patient["id"],
            {"homeLocation": home_location, "lastSyncTime": datetime.now(timezone.utc)},
            patient.get("revision"),
        )
        self._mirror(caregiver, normalized, {"homeLocation": home_location})
        log_event("sync.homeLocation", {"caregiver": caregiver["email"], "patient": normalized})

    def get_patient_data(self, caregiver_id: Optional[str], patient_email: Optional[str]) -> Dict[str, Any]:
        """Authoritative patient lists; the caregiver cache is never read here."""
        if not caregiver_id or not patient_email:
            raise ValidationError("Missing required fields")

        _, patient, _ = self._resolve(caregiver_id, patient_email)
        return {
            "reminders": patient.get("reminders") or [],
            "memories": patient.get("memories") or [],
            "emergencyContacts": patient.get("emergencyContacts") or [],
            "homeLocation": patient.get("homeLocation"),
        }


def replace_own_list(store: DocumentStore, user_id: str, domain: str, items: Any) -> List[Dict[str, Any]]:
    """Patient self-sync: the device's copy replaces the stored list wholesale."""
    if domain not in LIST_DOMAINS:
        raise ValueError(f"Unknown sync domain: {domain}")
    updated = store.update(USERS, user_id, {domain: items, "lastSyncTime": datetime.now(timezone.utc)})
    if updated is None:
        raise NotFound("User not found")
    return updated.get(domain) or []
