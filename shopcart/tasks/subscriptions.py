"""
Subscription Maintenance Tasks
"""

import asyncio
import logging
from typing import Any, Dict

from .celery_app import app
from ..api.dependencies import get_sanity_client
from ..api.services.subscription_service import cleanup_duplicate_subscriptions

logger = logging.getLogger(__name__)


@app.task(name="tasks.cleanup_duplicate_subscriptions")
def cleanup_duplicate_subscriptions_task() -> Dict[str, Any]:
    result = asyncio.run(cleanup_duplicate_subscriptions(get_sanity_client()))
    logger.info(
        f"Subscription cleanup: {result['duplicatesRemoved']} removed "
        f"across {result['duplicatesFound']} emails"
    )
    return result
