"""
Push and email dispatch.

Stateless pass-through to external providers: Firebase Cloud Messaging
(firebase-admin), the Expo push service (HTTP via requests) and SMTP. Nothing is
retried; provider errors surface as UpstreamFailure with the provider message
attached for diagnostics. Pushes addressed to an account id are also recorded in
the ``notifications`` collection so the app can show an inbox.
"""
from __future__ import annotations

import logging
import smtplib
import ssl
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import formataddr
from typing import Any, Dict, List, Optional, Protocol

import requests
from firebase_admin import messaging

from app.core.config import Settings
from app.core.errors import Forbidden, NotFound, UpstreamFailure, ValidationError
from app.core.store import DocumentStore, Where
from app.models.caregiver import CAREGIVERS
from app.models.notification import INBOX_LIMIT, NOTIFICATIONS, new_notification_document
from app.models.user import USERS

logger = logging.getLogger(__name__)

EXPO_HEADERS = {
    "Accept": "application/json",
    "Accept-encoding": "gzip, deflate",
    "Content-Type": "application/json",
}


# -------------------------
# Transports
# -------------------------
class PushTransport(Protocol):
    def send(self, title: str, body: str, data: Dict[str, Any], token: Optional[str] = None,
             topic: Optional[str] = None) -> Any:
        ...

    def subscribe(self, token: str, topic: str) -> Any:
        ...

    def unsubscribe(self, token: str, topic: str) -> Any:
        ...


class ExpoTransport(Protocol):
    def send(self, token: str, title: str, body: str, data: Dict[str, Any]) -> Any:
        ...


class Mailer(Protocol):
    def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> str:
        ...


def _string_data(data: Dict[str, Any]) -> Dict[str, str]:
    # FCM data payloads only carry string values
    return {str(k): v if isinstance(v, str) else str(v) for k, v in (data or {}).items()}


def _topic_response(response) -> Dict[str, Any]:
    return {
        "successCount": response.success_count,
        "failureCount": response.failure_count,
        "errors": [{"index": e.index, "reason": e.reason} for e in response.errors],
    }


class FcmTransport:
    """Firebase Cloud Messaging through the Admin SDK initialised in app.core.firebase."""

    def send(self, title, body, data, token=None, topic=None):
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            data=_string_data(data),
            token=token,
            topic=topic,
        )
        return messaging.send(message)

    def subscribe(self, token, topic):
        return _topic_response(messaging.subscribe_to_topic(token, topic))

    def unsubscribe(self, token, topic):
        return _topic_response(messaging.unsubscribe_from_topic(token, topic))


class ExpoPushTransport:
    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    def send(self, token, title, body, data):
        payload = {"to": token, "sound": "default", "title": title, "body": body, "data": data or {}}
        resp = requests.post(self.url, json=payload, headers=EXPO_HEADERS, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()


class SmtpMailer:
    def __init__(self, settings: Settings):
        self.settings = settings

    def send(self, to, subject, text, html=None):
        settings = self.settings
        if not settings.email_configured:
            logger.error("EMAIL CONFIGURATION ERROR: Missing email credentials")
            raise UpstreamFailure("Email service not properly configured")

        msg = EmailMessage()
        msg["From"] = formataddr((settings.EMAIL_SENDER_NAME, settings.EMAIL_USER))
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")

        context = ssl.create_default_context()
        with smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, context=context) as server:
            server.login(settings.EMAIL_USER, settings.EMAIL_PASSWORD)
            server.send_message(msg)
        return msg["Message-ID"] or ""


# -------------------------
# Dispatch
# -------------------------
class NotificationDispatcher:
    def __init__(self, store: DocumentStore, push: PushTransport, expo: ExpoTransport, mailer: Mailer):
        self.store = store
        self.push = push
        self.expo = expo
        self.mailer = mailer

    def _account(self, kind: str, account_id: str) -> Optional[Dict[str, Any]]:
        return self.store.get(USERS if kind == "user" else CAREGIVERS, account_id)

    def register_device(self, kind: str, account_id: str, token: Optional[str], field: str = "fcmToken") -> None:
        if not token:
            raise ValidationError("Device token is required" if field == "fcmToken" else "Expo Push Token is required")
        collection = USERS if kind == "user" else CAREGIVERS
        if self.store.update(collection, account_id, {field: token}) is None:
            raise NotFound("User not found")

    def send_push(
        self,
        title: Optional[str],
        body: Optional[str],
        data: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        topic: Optional[str] = None,
        user_id: Optional[str] = None,
        type_: Optional[str] = None,
    ) -> Any:
        if not title or not body:
            raise ValidationError("Notification title and body are required")

        data = data or {}
        if token:
            target = {"token": token}
        elif topic:
            target = {"topic": topic}
        elif user_id:
            user = self._account("user", user_id)
            if not user or not user.get("fcmToken"):
                raise NotFound("User not found or does not have a registered device token")
            target = {"token": user["fcmToken"]}
        else:
            raise ValidationError("Either token, topic, or userId must be provided")

        try:
            response = self.push.send(title, body, data, **target)
        except Exception as exc:
            logger.error("Error sending notification: %s", exc)
            raise UpstreamFailure("Failed to send notification", error=str(exc)) from exc

        if user_id:
            self.record(user_id, title, body, data, type_)
        return response

    def send_expo(
        self,
        title: Optional[str],
        body: Optional[str],
        data: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        user_id: Optional[str] = None,
        type_: Optional[str] = None,
    ) -> Any:
        if not title or not body:
            raise ValidationError("Notification title and body are required")
        if not token and not user_id:
            raise ValidationError("Either token or userId must be provided")

        push_token = token
        if not push_token:
            user = self._account("user", user_id)
            if not user or not user.get("expoPushToken"):
                raise NotFound("User not found or does not have a registered push token")
            push_token = user["expoPushToken"]

        try:
            response = self.expo.send(push_token, title, body, data or {})
        except Exception as exc:
            logger.error("Error sending Expo notification: %s", exc)
            raise UpstreamFailure("Failed to send notification", error=str(exc)) from exc

        if user_id:
            self.record(user_id, title, body, data, type_)
        return response

    def subscribe(self, token: Optional[str], topic: Optional[str], unsubscribe: bool = False) -> Any:
        if not token or not topic:
            raise ValidationError("Token and topic are required")
        action = "unsubscribe" if unsubscribe else "subscribe"
        try:
            if unsubscribe:
                return self.push.unsubscribe(token, topic)
            return self.push.subscribe(token, topic)
        except Exception as exc:
            logger.error("Error trying to %s topic %s: %s", action, topic, exc)
            raise UpstreamFailure(f"Failed to {action} {'from' if unsubscribe else 'to'} topic", error=str(exc)) from exc

    def send_email(self, to: Optional[str], subject: Optional[str], text: Optional[str], html: Optional[str] = None) -> str:
        if not to or not subject or not text:
            raise ValidationError("To, subject, and text are required fields")
        try:
            return self.mailer.send(to, subject, text, html)
        except UpstreamFailure:
            raise
        except smtplib.SMTPAuthenticationError as exc:
            logger.error("Email authentication failed: %s", exc)
            raise UpstreamFailure("Authentication error - check email credentials", error=str(exc)) from exc
        except Exception as exc:
            logger.error("Error sending email to %s: %s", to, exc)
            raise UpstreamFailure("Failed to send email", error=str(exc)) from exc

    # -------------------------
    # Inbox
    # -------------------------
    def record(self, user_id: str, title: str, body: str, data: Optional[Dict[str, Any]], type_: Optional[str]) -> str:
        return self.store.insert(NOTIFICATIONS, new_notification_document(user_id, title, body, data, type_))

    def unread_count(self, user_id: str) -> int:
        return self.store.count(NOTIFICATIONS, Where("userId", "==", user_id), Where("read", "==", False))

    def inbox(self, user_id: str) -> List[Dict[str, Any]]:
        return self.store.find(
            NOTIFICATIONS,
            Where("userId", "==", user_id),
            order_by="createdAt",
            descending=True,
            limit=INBOX_LIMIT,
        )

    def mark_read(self, notification_id: str, user_id: str) -> Dict[str, Any]:
        notification = self.store.get(NOTIFICATIONS, notification_id)
        if notification is None:
            raise NotFound("Notification not found")
        if str(notification.get("userId")) != user_id:
            raise Forbidden("Not authorized to modify this notification")

        return self.store.update(
            NOTIFICATIONS,
            notification_id,
            {"read": True, "updatedAt": datetime.now(timezone.utc)},
        )
