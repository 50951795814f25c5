"""Generic outbound email endpoint used by the app for alerts."""
import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_dispatcher
from app.models.schemas import SendEmailRequest
from app.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/email", tags=["email"])


@router.post("/send-email")
def send_email(payload: SendEmailRequest, dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    message_id = dispatcher.send_email(payload.to, payload.subject, payload.text)
    logger.info("Email sent to %s", payload.to)
    return {"success": True, "message": "Email sent successfully", "messageId": message_id}
