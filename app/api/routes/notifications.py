"""Push notification routes (FCM and Expo) and the per-user inbox."""
from fastapi import APIRouter, Depends

from app.api.deps import get_current_account, get_dispatcher
from app.core.errors import Forbidden
from app.models.schemas import DeviceTokenRequest, SendNotificationRequest, TopicRequest
from app.models.user import strip_private
from app.services.notifications import NotificationDispatcher

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _require_owner(account, user_id: str):
    if account["id"] != user_id:
        raise Forbidden("Not authorized to access these notifications")


@router.post("/register")
def register_device(
    payload: DeviceTokenRequest,
    account=Depends(get_current_account),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    dispatcher.register_device(account["kind"], account["id"], payload.token)
    return {"success": True, "message": "Device token registered successfully"}


@router.post("/register-expo")
def register_expo(
    payload: DeviceTokenRequest,
    account=Depends(get_current_account),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    dispatcher.register_device(account["kind"], account["id"], payload.token, field="expoPushToken")
    return {"success": True, "message": "Expo Push Token registered successfully"}


@router.post("/send")
def send_notification(
    payload: SendNotificationRequest,
    account=Depends(get_current_account),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    response = dispatcher.send_push(
        payload.title,
        payload.body,
        data=payload.data,
        token=payload.token,
        topic=payload.topic,
        user_id=payload.user_id,
        type_=payload.type,
    )
    return {"success": True, "message": "Notification sent successfully", "response": response}


@router.post("/send-expo")
def send_expo_notification(
    payload: SendNotificationRequest,
    account=Depends(get_current_account),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    response = dispatcher.send_expo(
        payload.title,
        payload.body,
        data=payload.data,
        token=payload.token,
        user_id=payload.user_id,
        type_=payload.type,
    )
    return {"success": True, "message": "Notification sent successfully", "response": response}


@router.post("/subscribe")
def subscribe(
    payload: TopicRequest,
    account=Depends(get_current_account),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    response = dispatcher.subscribe(payload.token, payload.topic)
    return {"success": True, "message": f"Successfully subscribed to topic: {payload.topic}", "response": response}


@router.post("/unsubscribe")
def unsubscribe(
    payload: TopicRequest,
    account=Depends(get_current_account),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    response = dispatcher.subscribe(payload.token, payload.topic, unsubscribe=True)
    return {"success": True, "message": f"Successfully unsubscribed from topic: {payload.topic}", "response": response}


@router.get("/unread/{user_id}")
def unread_count(
    user_id: str,
    account=Depends(get_current_account),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    _require_owner(account, user_id)
    return {"success": True, "count": dispatcher.unread_count(user_id)}


@router.get("/user/{user_id}")
def list_notifications(
    user_id: str,
    account=Depends(get_current_account),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    _require_owner(account, user_id)
    return {"success": True, "notifications": [strip_private(n) for n in dispatcher.inbox(user_id)]}


@router.put("/{notification_id}/read")
def mark_read(
    notification_id: str,
    account=Depends(get_current_account),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    notification = dispatcher.mark_read(notification_id, account["id"])
    return {"success": True, "message": "Notification marked as read", "notification": strip_private(notification)}
