"""
Newsletter subscription maintenance.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from ...clients import SanityClient, build_delete

logger = logging.getLogger(__name__)

SUBSCRIPTIONS_OLDEST_FIRST_QUERY = """*[_type == "subscription"] | order(subscribedAt asc) {
  _id, email, status, subscribedAt
}"""


def find_duplicate_subscriptions(
    subscriptions: Iterable[Mapping[str, Any]],
) -> Tuple[List[str], List[str]]:
    """
    Group subscriptions by normalized email, oldest first.

    Returns:
        (emails with duplicates, ids to delete); the first subscription of
        every email is kept
    """
    groups: Dict[str, List[Mapping[str, Any]]] = {}
    for sub in subscriptions:
        email = (sub.get("email") or "").strip().lower()
        if not email:
            continue
        groups.setdefault(email, []).append(sub)

    duplicate_emails = []
    to_delete = []
    for email, subs in groups.items():
        if len(subs) > 1:
            duplicate_emails.append(email)
            to_delete.extend(s["_id"] for s in subs[1:])
    return duplicate_emails, to_delete


async def cleanup_duplicate_subscriptions(sanity: SanityClient) -> Dict[str, Any]:
    subscriptions = await sanity.fetch(SUBSCRIPTIONS_OLDEST_FIRST_QUERY) or []
    duplicate_emails, to_delete = find_duplicate_subscriptions(subscriptions)

    if to_delete:
        await sanity.transaction([build_delete(sub_id) for sub_id in to_delete])
        logger.info(
            f"Removed {len(to_delete)} duplicate subscriptions for {len(duplicate_emails)} emails"
        )

    return {
        "success": True,
        "message": "Cleanup completed successfully",
        "duplicatesFound": len(duplicate_emails),
        "duplicatesRemoved": len(to_delete),
        "affectedEmails": duplicate_emails,
    }
