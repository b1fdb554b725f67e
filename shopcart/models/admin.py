"""
Admin identification by configured email allow-list.
"""

from typing import Any, List, Mapping, Optional

from ..api.config import get_settings


def get_admin_emails() -> List[str]:
    return list(get_settings().admin_emails)


def is_user_admin(email: Optional[str]) -> bool:
    if not email:
        return False
    return email.strip().lower() in get_admin_emails()


def is_admin(user: Optional[Mapping[str, Any]]) -> bool:
    """Admin if the Sanity user is flagged, otherwise by email."""
    if not user:
        return False
    if user.get("isAdmin"):
        return True
    return is_user_admin(user.get("email"))
