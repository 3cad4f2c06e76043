"""
HTTP Persistence Adapter

Talks to the serverless data API:
- GET  /api/data[?nocache=1]          bulk read
- POST /api/users/{userId}/samples    replace one user's samples
- POST /api/users/{userId}/works      replace one user's works (public mirror recomputed server side)
- POST /api/system                    {action, payload}
- POST /api/auth                      {action, username, password}
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from .base import PersistenceService
from ..config import settings
from ..core.errors import (
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
    ValidationError,
)
from ..schemas.auth import AuthRequest

logger = logging.getLogger("handwriting")


class HttpPersistenceService(PersistenceService):
    """Persistence over the HTTP data API"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout_sec
        self._transport = transport  # Injected in tests (httpx.MockTransport)

    @property
    def name(self) -> str:
        return "HTTP data API"

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                return await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise PersistenceError("PERSISTENCE_UNREACHABLE", f"{self.name}: {exc}") from exc

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.text or resp.reason_phrase
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return resp.text

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        message = self._error_message(resp)
        if resp.status_code == 404:
            raise NotFoundError("USER_NOT_FOUND", message)
        raise PersistenceError("PERSISTENCE_FAILED", f"{self.name}: HTTP {resp.status_code} {message}")

    async def read_all(self, force: bool = False) -> Dict[str, Any]:
        params = {"nocache": "1"} if force else None
        resp = await self._request("GET", "/api/data", params=params)
        self._raise_for_status(resp)
        return resp.json()

    async def write_samples(self, user_id: str, samples: List[dict]) -> None:
        resp = await self._request("POST", f"/api/users/{user_id}/samples", json=samples)
        self._raise_for_status(resp)

    async def write_works(self, user_id: str, works: List[dict]) -> None:
        resp = await self._request("POST", f"/api/users/{user_id}/works", json=works)
        self._raise_for_status(resp)

    async def system_action(self, action: str, payload: dict) -> Dict[str, Any]:
        resp = await self._request("POST", "/api/system", json={"action": action, "payload": payload})
        self._raise_for_status(resp)
        return resp.json()

    async def auth_action(self, action: str, username: str, password: str) -> Dict[str, Any]:
        body = AuthRequest(action=action, username=username, password=password)
        resp = await self._request("POST", "/api/auth", json=body.model_dump())
        # Credential rejections are user-facing, not transport failures
        if resp.status_code == 400:
            raise ValidationError("AUTH_REJECTED", self._error_message(resp))
        if resp.status_code == 401:
            raise PermissionDeniedError("AUTH_INVALID_CREDENTIALS", self._error_message(resp))
        self._raise_for_status(resp)
        return resp.json()
