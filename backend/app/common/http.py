# app/common/http.py
"""
Thin JSON client for the platform API, shared by the client SDK modules.
requests is blocking, so every call runs through sync_to_async.
"""
import logging

import requests
from asgiref.sync import sync_to_async

from app.common.errors import RequestRejected, TransientDependencyError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 5.0


class ApiClient:
    def __init__(self, base_url: str, *, session=None, timeout: float = DEFAULT_TIMEOUT_SEC):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise TransientDependencyError(f"{method} {path} failed: {exc}", dependency="api") from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if resp.status_code >= 500:
            raise TransientDependencyError(
                f"{method} {path} -> {resp.status_code}", dependency="api"
            )
        if resp.status_code >= 400:
            error = (body or {}).get("error") or {}
            raise RequestRejected(
                error.get("code", "REQUEST_REJECTED"),
                error.get("message", ""),
                status=resp.status_code,
            )
        return body

    async def get(self, path: str, **params) -> dict:
        return await sync_to_async(self._request, thread_sensitive=False)("GET", path, params=params)

    async def post(self, path: str, payload=None) -> dict:
        return await sync_to_async(self._request, thread_sensitive=False)("POST", path, json=payload or {})
