# app/services/badge_poller.py
"""
Badge watcher — the attendee-side short poll of GET /badges/{token}.

Polls on a fixed cadence and calls back only when the observed state changes.
An EXPIRED token with a replacement is followed automatically. Transport
failures back off exponentially (capped) and are reported through on_error;
the server itself never retries anything on the caller's behalf.

Stops when the badge is ISSUED (unless follow_issued=True, in which case it
keeps polling to refresh attendance) or when the task is cancelled.

Endpoint: GET {base_url}/api/v1/badges/{token}
"""

import asyncio
from typing import Awaitable, Callable, Optional, Union

import httpx

from app.utils.logger import get_logger

logger = get_logger(__name__)

Callback = Callable[[dict], Union[None, Awaitable[None]]]


async def _maybe_await(value):
    if asyncio.iscoroutine(value):
        await value


def _fingerprint(payload: dict) -> tuple:
    attendance = payload.get("attendance") or {}
    return (
        payload.get("token"),
        payload.get("status"),
        payload.get("replacement_token"),
        attendance.get("status"),
        attendance.get("current_zone_id"),
        attendance.get("projected_minutes"),
        attendance.get("is_goal_met"),
    )


class BadgeWatcher:
    def __init__(self, base_url: str, token: str, interval: float = 3.0, max_backoff: float = 30.0,
                 timeout: float = 10.0, follow_issued: bool = False,
                 client: Optional[httpx.AsyncClient] = None, api_prefix: str = "/api/v1"):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.interval = interval
        self.max_backoff = max_backoff
        self.timeout = timeout
        self.follow_issued = follow_issued
        self.api_prefix = api_prefix
        self._client = client
        self.last: Optional[dict] = None

    @classmethod
    def from_settings(cls, settings, base_url: str, token: str, **kwargs) -> "BadgeWatcher":
        return cls(base_url, token, interval=settings.BADGE_POLL_SECONDS,
                   max_backoff=settings.BADGE_POLL_MAX_BACKOFF,
                   timeout=settings.HTTP_TIMEOUT_SECONDS, **kwargs)

    def _url(self) -> str:
        return f"{self.base_url}{self.api_prefix}/badges/{self.token}"

    async def fetch(self, client: httpx.AsyncClient) -> dict:
        response = await client.get(self._url())
        response.raise_for_status()
        return response.json()

    async def watch(self, on_change: Callback, on_error: Optional[Callback] = None) -> Optional[dict]:
        """Poll until ISSUED (or cancelled). Returns the last payload seen."""
        owns_client = self._client is None
        client = self._client or httpx.AsyncClient(timeout=self.timeout)
        backoff = self.interval
        try:
            while True:
                try:
                    payload = await self.fetch(client)
                except (httpx.HTTPError, ValueError) as e:
                    logger.warning(f"⚠️  Badge poll failed for {self.token[:12]}…: {e}. Retry in {backoff}s")
                    if on_error is not None:
                        await _maybe_await(on_error({"token": self.token, "error": str(e)}))
                    await asyncio.sleep(backoff)
                    backoff = min(backoff * 2, self.max_backoff)
                    continue

                backoff = self.interval  # reset on success
                if self.last is None or _fingerprint(payload) != _fingerprint(self.last):
                    self.last = payload
                    await _maybe_await(on_change(payload))

                if payload.get("redirect_required") and payload.get("replacement_token"):
                    logger.info(f"🔁 Token replaced — following {payload['replacement_token'][:12]}…")
                    self.token = payload["replacement_token"]
                    continue

                if payload.get("status") == "ISSUED" and not self.follow_issued:
                    return payload

                await asyncio.sleep(payload.get("poll_after_seconds") or self.interval)
        except asyncio.CancelledError:
            logger.debug(f"Badge watcher for {self.token[:12]}… cancelled")
            raise
        finally:
            if owns_client:
                await client.aclose()
