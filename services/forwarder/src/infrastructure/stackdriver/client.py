"""Stackdriver custom metrics gateway client (API v1)."""

from __future__ import annotations

import requests
from src.core.config import STACKDRIVER_GATEWAY_URL
from src.core.logger import get_logger
from src.services.batch import GatewayMessage

logger = get_logger("forwarder.gateway")

API_KEY_HEADER = "x-stackdriver-apikey"


class SubmissionError(RuntimeError):
    """The gateway did not accept a batch."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GatewayClient:
    """One HTTP session per flush; use as a context manager.

    The session is closed on exit whether or not ``send`` succeeded.
    """

    def __init__(
        self,
        api_key: str,
        url: str = STACKDRIVER_GATEWAY_URL,
        timeout: float = 10.0,
    ):
        self.url = url
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(
            {API_KEY_HEADER: api_key, "Content-Type": "application/json"}
        )

    def __enter__(self) -> "GatewayClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    def send(self, message: GatewayMessage) -> None:
        try:
            resp = self._session.post(
                self.url, json=message.to_payload(), timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise SubmissionError(f"gateway request failed: {exc}") from exc

        if not resp.ok:
            raise SubmissionError(
                f"gateway rejected batch: {resp.status_code} {resp.text[:200]}",
                status_code=resp.status_code,
            )
        logger.debug(
            "gateway_accepted",
            extra={"status": resp.status_code, "batch_size": len(message)},
        )
