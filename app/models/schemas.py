"""Request payloads shared by the auth, caregiver, user and notification routes.

The mobile clients speak camelCase JSON; fields are snake_case here and mapped
through the alias generator.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _normalize_email(v):
    if isinstance(v, str):
        return v.strip().lower()
    return v


# ---------------------------------------------------------------------------
# Auth (both account kinds)
# ---------------------------------------------------------------------------

class SignupRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    # caregiver clients send phoneNumber
    phone_number: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class EmailRequest(CamelModel):
    email: Optional[str] = None


class EmailVerificationRequest(CamelModel):
    email: Optional[str] = None
    code: Optional[str] = None


class ResetPasswordRequest(CamelModel):
    email: Optional[str] = None
    code: Optional[str] = None
    new_password: Optional[str] = None


class DeleteUserRequest(CamelModel):
    user_id: Optional[str] = None


class DeleteCaregiverRequest(CamelModel):
    caregiver_id: Optional[str] = None
    caregiver_email: Optional[str] = None


# ---------------------------------------------------------------------------
# Connections and caregiver sync
# ---------------------------------------------------------------------------

class ConnectRequest(CamelModel):
    caregiver_id: Optional[str] = None
    patient_email: Optional[str] = None

    @field_validator("patient_email", mode="before")
    @classmethod
    def normalize_patient_email(cls, v):
        return _normalize_email(v)


class ConnectCaregiverRequest(CamelModel):
    caregiver_email: Optional[str] = None

    @field_validator("caregiver_email", mode="before")
    @classmethod
    def normalize_caregiver_email(cls, v):
        return _normalize_email(v)


class PatientListSync(CamelModel):
    caregiver_id: Optional[str] = None
    patient_email: Optional[str] = None
    reminders: Optional[List[Dict[str, Any]]] = None
    memories: Optional[List[Dict[str, Any]]] = None
    contacts: Optional[List[Dict[str, Any]]] = None


class PatientLocationSync(CamelModel):
    caregiver_id: Optional[str] = None
    patient_email: Optional[str] = None
    home_location: Optional[Dict[str, Any]] = None


class CaregiverProfile(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    profile_image_url: Optional[str] = None


class CaregiverProfileSync(CamelModel):
    caregiver_id: Optional[str] = None
    profile: Optional[CaregiverProfile] = None


# ---------------------------------------------------------------------------
# Patient self-service
# ---------------------------------------------------------------------------

class MedicalInfo(CamelModel):
    conditions: str = ""
    medications: str = ""
    allergies: str = ""
    blood_type: str = ""


class UserUpdate(CamelModel):
    """Fields a patient may change on their own record."""

    name: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = None
    profile_image: Optional[str] = None
    address: Optional[str] = None
    age: Optional[str] = None
    medical_info: Optional[MedicalInfo] = None
    home_location: Optional[Dict[str, Any]] = None
    password: Optional[str] = Field(None, min_length=6)

    @field_validator("age", mode="before")
    @classmethod
    def age_as_string(cls, v):
        if v is None:
            return None
        return str(v)


# ---------------------------------------------------------------------------
# Notifications / email
# ---------------------------------------------------------------------------

class DeviceTokenRequest(CamelModel):
    token: Optional[str] = None


class TopicRequest(CamelModel):
    token: Optional[str] = None
    topic: Optional[str] = None


class SendNotificationRequest(CamelModel):
    title: Optional[str] = None
    body: Optional[str] = None
    token: Optional[str] = None
    topic: Optional[str] = None
    user_id: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    type: Optional[str] = None


class SendEmailRequest(CamelModel):
    to: Optional[EmailStr] = None
    subject: Optional[str] = None
    text: Optional[str] = None
