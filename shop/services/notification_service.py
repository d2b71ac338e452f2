# shop/services/notification_service.py
from shop.celery_worker import celery_app
from shop.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Order notifications, processed asynchronously by Celery.
    Only called after the order transaction has committed.
    """

    @staticmethod
    def send_order_notification(user_id: int, order_id: int, event: str):
        try:
            send_order_notification_task.delay(user_id, order_id, event)
        except Exception as e:
            # the order is already committed, a lost notification must not fail the request
            logger.warning(f"Could not enqueue {event} notification for order {order_id}: {e}")


@celery_app.task(name="shop.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: int, order_id: int, event: str):
    """
    Celery task - a real deployment would hand this to an email/SMS/push gateway.
    For now it only logs.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_id} {event}")

    return {"user_id": user_id, "order_id": order_id, "event": event, "status": "sent"}
