# zomatify/services/notification_service.py
from zomatify.celery_worker import celery_app
from zomatify.utils.logging import get_logger

logger = get_logger(__name__)

STATUS_MESSAGES = {
    "pending": "Your order has been placed",
    "accepted": "Your order has been accepted",
    "preparing": "Your order is being prepared",
    "ready": "Your order is ready for pickup",
    "completed": "Your order has been completed",
    "cancelled": "Your order has been cancelled",
}


class NotificationService:
    """
    Order status notifications.
    Sending goes through Celery so the request path never waits on it.
    """

    @staticmethod
    def send_order_notification(user_id: str, order_id: str, status: str):
        send_order_notification_task.delay(user_id, order_id, status)


@celery_app.task(name="zomatify.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: str, order_id: str, status: str):
    """
    Build the order_status notification for the user.
    Delivery (push/SMS) is up to the platform, here it is only logged.
    """
    title = STATUS_MESSAGES.get(status, f"Order status changed to {status}")
    logger.info(f"[NOTIFICATION] User {user_id}: Order {order_id} - {title}")

    return {
        "user_id": user_id,
        "title": title,
        "type": "order_status",
        "data": {"orderId": order_id, "status": status},
    }
