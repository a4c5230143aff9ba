"""HTTP step transport posting form actions with httpx."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

import httpx

from ..contracts import StepResponse
from .base import BaseStepTransport

logger = logging.getLogger(__name__)


class HttpStepTransport(BaseStepTransport):
    """POSTs each step as a named form action: ``{base_url}?/{step}``."""

    def __init__(
        self,
        base_url: str = "http://localhost:5173/",
        timeout: float = 30.0,
        headers: Optional[Mapping[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.headers = dict(headers or {})
        self._client = client
        self._owns_client = client is None

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.headers,
                follow_redirects=False,
            )
            self._owns_client = True

    async def disconnect(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def action_url(self, step: str) -> str:
        return f"{self.base_url.split('?', 1)[0]}?/{step}"

    async def call(self, step: str, form: Mapping[str, str]) -> StepResponse:
        if self._client is None:
            await self.connect()

        url = self.action_url(step)
        logger.debug(f"POST {url}")
        response = await self._client.post(
            url,
            data=dict(form),
            headers={"accept": "application/json", "x-sveltekit-action": "true"},
        )
        return StepResponse(
            status=response.status_code,
            body=response.text,
            headers=dict(response.headers),
        )
