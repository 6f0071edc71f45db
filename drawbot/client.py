from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping, Optional

import requests

from .config import BotSettings
from .types import ClaimReply


class DrawPoolClient:
    """HTTP client for the draw pool API.

    ``requests`` is blocking, so every call runs in a worker thread.
    """

    def __init__(self, settings: BotSettings, session: Optional[requests.Session] = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self._settings.base_url}/api/{path}"

    def _get_json(self, path: str) -> Mapping[str, Any]:
        resp = self._session.get(self._url(path), timeout=self._settings.timeout_seconds)
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, Mapping):
            raise ValueError(f"{path} returned non-object payload")
        return data

    def _post_json(
        self, path: str, body: Mapping[str, Any], headers: Optional[Dict[str, str]] = None
    ) -> requests.Response:
        return self._session.post(
            self._url(path), json=dict(body), headers=headers, timeout=self._settings.timeout_seconds
        )

    async def get_used_numbers(self) -> List[int]:
        data = await asyncio.to_thread(self._get_json, "used-numbers")
        return [int(n) for n in data.get("usedNumbers", [])]

    async def get_draw_records(self) -> Mapping[str, Any]:
        return await asyncio.to_thread(self._get_json, "draw-records")

    async def claim_number(
        self, number: int, topic_id: Optional[int] = None, user_name: Optional[str] = None
    ) -> ClaimReply:
        body: Dict[str, Any] = {"number": number}
        if topic_id is not None:
            body["topicId"] = topic_id
        if user_name is not None:
            body["userName"] = user_name
        resp = await asyncio.to_thread(self._post_json, "claim-number", body)
        # Lost races come back as 200 with success=false; 4xx/5xx carry a message too.
        try:
            data = resp.json()
        except ValueError:
            resp.raise_for_status()
            raise
        return ClaimReply(
            success=bool(data.get("success")),
            message=str(data.get("message", "")),
            number=data.get("number"),
        )

    async def reset(self) -> bool:
        headers = {"X-Admin-Token": self._settings.admin_token} if self._settings.admin_token else None
        resp = await asyncio.to_thread(self._post_json, "reset", {"isAdmin": True}, headers)
        resp.raise_for_status()
        return bool(resp.json().get("success"))

    async def close(self) -> None:
        self._session.close()
