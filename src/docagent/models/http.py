"""Shared HTTP plumbing for provider adapters."""

from __future__ import annotations

import json
import threading
import time
from typing import Any

import httpx

from docagent.models.base import BaseProvider, ProviderCancelled, TransportError
from docagent.util.logging import get_logger, redact


logger = get_logger(__name__)


class HttpProvider(BaseProvider):
    """Provider that POSTs JSON and retries on 429 and 5xx responses."""

    max_attempts = 3

    def __init__(
        self,
        timeout_seconds: float = 60,
        max_response_bytes: int = 5_000_000,
        transport: httpx.BaseTransport | None = None,
        backoff_seconds: float = 1.0,
        unstable: bool = False,
    ) -> None:
        super().__init__(unstable=unstable)
        self.timeout_seconds = timeout_seconds
        self.max_response_bytes = max_response_bytes
        self.transport = transport
        self.backoff_seconds = backoff_seconds

    def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        cancel: threading.Event | None = None,
    ) -> dict[str, Any]:
        timeout = httpx.Timeout(self.timeout_seconds)
        last_error: Exception | None = None
        for attempt in range(self.max_attempts):
            self._check_cancelled(cancel)
            try:
                with httpx.Client(timeout=timeout, transport=self.transport) as client:
                    response = client.post(url, headers=headers or {}, json=payload)
                if response.status_code in {429} or response.status_code >= 500:
                    raise TransportError(
                        f"Retryable error {response.status_code}: {response.text[:200]}"
                    )
                if response.status_code != 200:
                    raise TransportError(
                        f"{self.name} API returned status {response.status_code}"
                    )
                if len(response.content) > self.max_response_bytes:
                    raise TransportError("Response too large")
                try:
                    data = response.json()
                except json.JSONDecodeError as exc:
                    raise TransportError("Malformed JSON response") from exc
                if not isinstance(data, dict):
                    raise TransportError("Unexpected response payload")
                self._check_cancelled(cancel)
                return data
            except ProviderCancelled:
                raise
            except (httpx.HTTPError, TransportError) as exc:
                last_error = exc
                if not _is_retryable(exc) or attempt == self.max_attempts - 1:
                    break
                delay = self.backoff_seconds * 2**attempt
                logger.info(
                    "%s request failed (%s), retrying in %ss",
                    self.name,
                    redact(str(exc)),
                    delay,
                )
                if cancel is None:
                    time.sleep(delay)
                elif cancel.wait(delay):
                    raise ProviderCancelled(f"{self.name} request cancelled") from exc
        raise TransportError(f"{self.name} request failed: {redact(str(last_error))}")


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPError):
        return True
    return str(exc).startswith("Retryable error")
