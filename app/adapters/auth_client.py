# app/adapters/auth_client.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

log = logging.getLogger("backoffice.auth")


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str = "customer"
    email: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class AuthClient:
    """
    Session lookup against the external auth service: the caller's Cookie
    header is forwarded as-is; a body of {"user": {...}} means authenticated.
    """

    def __init__(
        self,
        *,
        base_url: str,
        session_path: str = "/api/auth/get-session",
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._session_path = session_path
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_session(self, cookie: str | None) -> Optional[CurrentUser]:
        if not cookie:
            return None
        try:
            resp = await self._client.get(self._session_path, headers={"Cookie": cookie})
        except httpx.HTTPError as exc:
            log.warning("auth service unreachable: %r", exc)
            return None
        if resp.status_code != 200:
            return None
        try:
            body = resp.json()
        except ValueError:
            return None
        user = (body or {}).get("user") if isinstance(body, dict) else None
        if not user or not user.get("id"):
            return None
        return CurrentUser(
            id=str(user["id"]),
            role=str(user.get("role") or "customer"),
            email=user.get("email"),
            name=user.get("name"),
        )
