"""
User Sync Tasks
"""

import asyncio
import logging
from typing import Any, Dict, List

from .celery_app import app
from ..api.dependencies import get_clerk_client, get_sanity_client
from ..api.services.user_sync_service import UserSyncService

logger = logging.getLogger(__name__)


@app.task(bind=True, name="tasks.sync_clerk_users_to_sanity", max_retries=1, default_retry_delay=120)
def sync_clerk_users_to_sanity(self, clerk_user_ids: List[str], admin_email: str) -> Dict[str, Any]:
    """Create or activate Sanity users for the given Clerk ids."""
    try:
        service = UserSyncService(get_clerk_client(), get_sanity_client())
        return asyncio.run(service.sync_users(clerk_user_ids, admin_email))

    except Exception as e:
        logger.error(f"Error syncing Clerk users: {e}", exc_info=True)
        try:
            self.retry(exc=e)
        except self.MaxRetriesExceededError:
            return {"success": False, "error": str(e), "retries_exceeded": True}
