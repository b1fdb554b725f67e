"""
Notification Tasks
Broadcast fan-out run outside the request cycle.
"""

import asyncio
import logging
from typing import Any, Dict, List

from .celery_app import app
from ..api.dependencies import get_sanity_client
from ..api.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


@app.task(bind=True, name="tasks.send_bulk_notifications", max_retries=2, default_retry_delay=60)
def send_bulk_notifications(self, user_ids: List[str], payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deliver one notification to many users.

    Args:
        user_ids: Clerk user ids
        payload: title, message, type, priority, action_url, sent_by

    Returns:
        Totals of attempted, successful and failed deliveries
    """
    try:
        logger.info(f"Sending notification '{payload.get('title')}' to {len(user_ids)} users")
        service = NotificationService(get_sanity_client())
        result = asyncio.run(service.send_bulk_notifications(user_ids, **payload))
        logger.info(
            f"Bulk notification finished: {result['successful']}/{result['total']} delivered"
        )
        return result

    except Exception as e:
        logger.error(f"Error sending bulk notifications: {e}", exc_info=True)
        try:
            self.retry(exc=e)
        except self.MaxRetriesExceededError:
            logger.error("Max retries exceeded for bulk notifications")
            return {
                "success": False,
                "error": str(e),
                "total": len(user_ids),
                "successful": 0,
                "failed": len(user_ids),
                "retries_exceeded": True,
            }
