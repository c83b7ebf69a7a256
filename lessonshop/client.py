"""
HTTP client for the lessons and orders API.

Thin wrapper over a ``requests.Session``: every call uses the configured
timeout and raises ``requests.RequestException`` (including ``HTTPError``
for non-success responses) on failure.
"""

from typing import Any, Dict, List, Optional

import requests

from .config import Settings


class LessonShopClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        settings = Settings() if base_url is None or timeout is None else None
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.api_timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        r = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        r.raise_for_status()
        return r.json()

    def list_lessons(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/lessons")

    def search_lessons(self, query: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/lessons/search/{requests.utils.quote(query, safe='')}")

    def adjust_availability(self, lesson_id: str, change: int) -> Dict[str, Any]:
        return self._request("PUT", f"/lessons/{lesson_id}/availability", json={"change": change})

    def list_orders(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/orders")

    def create_order(self, order: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/orders", json=order)
