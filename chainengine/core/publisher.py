"""HTTP client publishing world events to the shared backend.

Publishing is best effort: a slow or unreachable backend must never hold up
chain progression, so every failure is logged and reported as False.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Any, Dict, Optional

import requests

from config import get_events_url, get_events_timeout

logger = logging.getLogger(__name__)


class HttpEventPublisher:
    """Posts world events as JSON to ``<base_url>/events``."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 contributor: str = ""):
        self.base_url = (base_url if base_url is not None else get_events_url()).rstrip("/")
        self.timeout = timeout if timeout is not None else get_events_timeout()
        self.contributor = contributor

    def _post(self, payload: Dict[str, Any]) -> bool:
        response = requests.post(f"{self.base_url}/events", json=payload, timeout=self.timeout)
        if response.status_code in (200, 201, 202):
            return True
        logger.warning("World event rejected by backend (HTTP %s): %s",
                       response.status_code, payload.get("title"))
        return False

    async def publish_event(self, event_type: str, title: str, description: str,
                            location: Optional[Dict[str, Any]] = None) -> bool:
        if not self.base_url:
            logger.debug("No world event backend configured, skipping '%s'", title)
            return False

        payload = {
            "type": event_type,
            "title": title,
            "description": description,
            "contributor": self.contributor,
        }
        if location:
            payload["location"] = location

        try:
            # requests is blocking; keep the game loop responsive
            return await asyncio.to_thread(self._post, payload)
        except requests.RequestException as e:
            logger.warning("Failed to publish world event '%s': %s", title, e)
            return False
