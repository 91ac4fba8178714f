"""Async client that "touches" the Codex responses endpoint.

The only thing we want back is the response headers, which carry the
``x-codex-*`` rate-limit fields on success and error responses alike.
The streamed body is never read: the response is closed as soon as the
headers arrive.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from codex_ping.exceptions import TransportFailure
from codex_ping.services.credentials import CodexCredentials
from codex_ping.services.ping_context import generate_session_id, session_id_var

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PingResult:
    """Status and headers of one ping; the body is never kept."""

    status_code: int
    headers: Mapping[str, str]
    session_id: str


def _build_body(model: str, session_id: str) -> dict[str, Any]:
    return {
        "model": model,
        "instructions": "hi",
        "input": [
            {
                "type": "message",
                "id": None,
                "role": "user",
                "content": [{"type": "input_text", "text": "hi"}],
            }
        ],
        "tools": [],
        "tool_choice": "auto",
        "parallel_tool_calls": False,
        "reasoning": {"effort": "medium", "summary": "auto"},
        "store": False,
        "stream": True,
        "include": ["reasoning.encrypted_content"],
        "prompt_cache_key": session_id,
    }


class CodexPinger:
    """Issues one minimal streaming request per :meth:`ping` call."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        *,
        user_agent: str = "codex-ping/0.1.0",
        model: str = "gpt-5",
        _transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._model = model
        self._user_agent = user_agent
        kwargs: dict[str, Any] = {
            "base_url": base_url.rstrip("/"),
            "timeout": timeout,
        }
        if _transport is not None:
            kwargs["transport"] = _transport
        self._client = httpx.AsyncClient(**kwargs)

    # -- context manager -----------------------------------------------------

    async def __aenter__(self) -> CodexPinger:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # -- internal ------------------------------------------------------------

    def _build_headers(self, credentials: CodexCredentials, session_id: str) -> dict[str, str]:
        headers = {
            "OpenAI-Beta": "responses=experimental",
            "session_id": session_id,
            "Accept": "text/event-stream",
            "originator": "codex_ping",
            "User-Agent": self._user_agent,
            "Authorization": f"Bearer {credentials.access_token}",
            "Content-Type": "application/json",
            "Cache-Control": "no-cache",
        }
        if credentials.account_id:
            headers["chatgpt-account-id"] = credentials.account_id
        return headers

    # -- public methods ------------------------------------------------------

    async def ping(self, credentials: CodexCredentials) -> PingResult:
        """Send one ping and return its status and headers.

        Non-2xx statuses are returned like any other response. Raises
        :class:`TransportFailure` only when no response was received.
        """
        session_id = generate_session_id()
        token = session_id_var.set(session_id)
        try:
            request = self._client.build_request(
                "POST",
                "/responses",
                json=_build_body(self._model, session_id),
                headers=self._build_headers(credentials, session_id),
            )
            try:
                response = await self._client.send(request, stream=True)
            except httpx.HTTPError as exc:
                logger.warning("Ping failed before any response: %s", exc)
                raise TransportFailure(str(exc) or type(exc).__name__) from exc

            # Drop the event stream unread
            await response.aclose()
            logger.debug("Ping answered with status %d", response.status_code)
            return PingResult(
                status_code=response.status_code,
                headers=response.headers,
                session_id=session_id,
            )
        finally:
            session_id_var.reset(token)
