"""
HTTP transport for pushing pending records to the remote endpoint.

One sync is one round trip: POST a JSON list of records, receive
{"syncedIds": [...]}. Any transport error, timeout, non-2xx status or
malformed body becomes SyncTransportFailure. Retries are not attempted
here; the sync reconciler tracks backoff and callers decide when to
try again.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from sitediary.domain.errors import SyncTransportFailure

logger = logging.getLogger(__name__)

ACK_FIELD = "syncedIds"


class RemoteSyncClient:
    """
    Synchronous httpx client for the sync endpoint.

    Args:
        timeout: Default request timeout in seconds
        transport: Optional httpx transport (httpx.MockTransport in tests)
        headers: Extra headers sent with every push (e.g. authorization)

    Example:
        client = RemoteSyncClient(timeout=30)
        acked = client.push("https://example.com/sync", [record.to_dict()])
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.timeout = timeout
        self.transport = transport
        self.headers = dict(headers or {})

    def push(
        self,
        endpoint: str,
        records: list[dict[str, Any]],
        timeout: float | None = None,
    ) -> list[str]:
        """
        POST records and return the acknowledged ids.

        Args:
            endpoint: Target URL
            records: JSON-serializable record dicts
            timeout: Overrides the default timeout for this request

        Returns:
            Acknowledged ids in response order

        Raises:
            SyncTransportFailure: On any transport or protocol failure
        """
        effective_timeout = self.timeout if timeout is None else timeout
        try:
            with httpx.Client(
                timeout=httpx.Timeout(effective_timeout),
                transport=self.transport,
                headers=self.headers,
            ) as client:
                response = client.post(endpoint, json=records)
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise SyncTransportFailure(
                f"Sync request to {endpoint} timed out after {effective_timeout:g}s"
            ) from e
        except httpx.HTTPStatusError as e:
            raise SyncTransportFailure(
                f"Sync endpoint returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise SyncTransportFailure(f"Sync request to {endpoint} failed: {e}") from e

        return self._parse_acknowledgment(response)

    @staticmethod
    def _parse_acknowledgment(response: httpx.Response) -> list[str]:
        try:
            body = response.json()
        except ValueError as e:
            raise SyncTransportFailure(
                "Sync response is not valid JSON", status_code=response.status_code
            ) from e

        if not isinstance(body, dict) or ACK_FIELD not in body:
            raise SyncTransportFailure(
                f"Sync response has no '{ACK_FIELD}' field", status_code=response.status_code
            )

        acked = body[ACK_FIELD]
        if not isinstance(acked, list) or not all(isinstance(i, str) for i in acked):
            raise SyncTransportFailure(
                f"'{ACK_FIELD}' must be a list of strings", status_code=response.status_code
            )

        logger.debug("Endpoint acknowledged %d records", len(acked))
        return acked
