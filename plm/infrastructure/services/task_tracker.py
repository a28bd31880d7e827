"""External task tracker adapters: HTTP (httpx) and log-only."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from plm.core.config import Settings
from plm.shared.telemetry.logging import get_logger
from plm.shared.utils.generators import generate_cuid

logger = get_logger(__name__)


class TaskTrackerError(Exception):
    """Tracker call failed or returned a non-zero code (retried by the outbox)."""


class HttpTaskTracker:
    """IExternalTaskTracker over the tracker's REST API.

    POST {base}/tasks creates a task with the assignee as member;
    POST {base}/tasks/{id}/complete completes it. Any response whose
    "code" is not 0 is an error.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_token: str | None = None,
        timeout_seconds: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_token = api_token
        self._timeout = timeout_seconds
        self._shared_http = http_client

    @classmethod
    def from_settings(
        cls, settings: Settings, http_client: httpx.AsyncClient | None = None
    ) -> HttpTaskTracker:
        return cls(
            settings.tracker_base_url,
            api_token=(
                settings.tracker_api_token.get_secret_value()
                if settings.tracker_api_token
                else None
            ),
            timeout_seconds=settings.tracker_timeout_seconds,
            http_client=http_client,
        )

    @asynccontextmanager
    async def _http_cm(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield shared HTTP client or a short-lived one (connection reuse when shared)."""
        if self._shared_http is not None:
            yield self._shared_http
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    async def _post(self, path: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        async with self._http_cm() as client:
            try:
                response = await client.post(
                    f"{self._base_url}{path}",
                    json=body or {},
                    headers=self._headers(),
                    timeout=self._timeout,
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise TaskTrackerError(f"tracker request {path} failed: {e}") from e
        try:
            payload = response.json()
        except ValueError as e:
            raise TaskTrackerError(f"tracker returned non-JSON body for {path}") from e
        code = payload.get("code", 0)
        if code != 0:
            raise TaskTrackerError(
                f"tracker error {code} for {path}: {payload.get('msg', 'unknown')}"
            )
        return payload

    async def create_task(
        self, summary: str, description: str | None, assignee_ref: str | None
    ) -> str:
        body: dict[str, Any] = {"summary": summary, "description": description or ""}
        if assignee_ref:
            body["members"] = [{"id": assignee_ref, "role": "assignee"}]
        payload = await self._post("/tasks", body)
        try:
            external_id = payload["data"]["task"]["guid"]
        except (KeyError, TypeError) as e:
            raise TaskTrackerError("tracker response missing data.task.guid") from e
        logger.info("Tracker task %s created (%r)", external_id, summary[:80])
        return external_id

    async def complete_task(self, external_id: str) -> None:
        await self._post(f"/tasks/{external_id}/complete")
        logger.info("Tracker task %s completed", external_id)


class LogOnlyTaskTracker:
    """IExternalTaskTracker that logs instead of calling a tracker.

    Use when TRACKER_BASE_URL is not configured; returns a local id so the
    task still records a link.
    """

    async def create_task(
        self, summary: str, description: str | None, assignee_ref: str | None
    ) -> str:
        external_id = f"local-{generate_cuid()}"
        logger.info(
            "Tracker (log-only): would create %r for %s as %s",
            (summary or "")[:80],
            assignee_ref,
            external_id,
        )
        return external_id

    async def complete_task(self, external_id: str) -> None:
        logger.info("Tracker (log-only): would complete %s", external_id)
