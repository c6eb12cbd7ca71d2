"""Client wrapper for the Anthropic Messages API used as the review service."""

from __future__ import annotations

from typing import Any, Dict

import httpx

from code_reviewer.config import ReviewServiceCredentials
from code_reviewer.logger import get_logger

logger = get_logger()

ANTHROPIC_VERSION = "2023-06-01"


class ReviewServiceError(RuntimeError):
    """Raised when the review service responds with an error or an unusable reply."""


class ReviewServiceClient:
    def __init__(
        self,
        credentials: ReviewServiceCredentials,
        *,
        base_url: str = "https://api.anthropic.com",
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._model = credentials.model
        self._max_tokens = credentials.max_tokens
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={
                "x-api-key": credentials.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "Content-Type": "application/json",
            },
        )
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def complete(self, prompt: str) -> str:
        """Send one prompt and return the text of the first content block."""

        request_body: Dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        logger.debug(f"Requesting review completion: model={self._model}, prompt_length={len(prompt)}")
        try:
            response = await self._client.post("/v1/messages", json=request_body)
        except httpx.HTTPError as exc:
            raise ReviewServiceError(f"Review service request failed: {exc}") from exc
        _raise_for_status("create message", response)

        try:
            data = response.json()
        except ValueError as exc:
            raise ReviewServiceError("Review service returned invalid JSON.") from exc

        return _extract_text(data)


def _raise_for_status(action: str, response: httpx.Response) -> None:
    if response.status_code < 400:
        return
    detail: Any | None
    try:
        detail = response.json()
    except ValueError:
        detail = response.text
    raise ReviewServiceError(f"Failed to {action}: status={response.status_code}, detail={detail}")


def _extract_text(payload: Dict[str, Any]) -> str:
    content = payload.get("content") or []
    if not content:
        raise ReviewServiceError("Review service returned no content.")
    first = content[0]
    if first.get("type") != "text":
        raise ReviewServiceError(f"Unexpected response type from review service: {first.get('type')!r}")
    return first.get("text") or ""
