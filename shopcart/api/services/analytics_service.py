"""
Analytics events.

Events are written to the ``shopcart.analytics`` logger as structured
records; the log pipeline ships them onward.
"""

import logging
from typing import Any, Dict, Optional

analytics_logger = logging.getLogger("shopcart.analytics")


def track_event(event_name: str, params: Optional[Dict[str, Any]] = None) -> None:
    analytics_logger.info(
        f"Analytics event: {event_name}",
        extra={"event_name": event_name, "event_params": params or {}},
    )
