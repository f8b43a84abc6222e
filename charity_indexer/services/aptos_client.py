"""
Aptos indexer GraphQL client.

Queries the append-only ``events`` table of the Aptos indexer by event kind
and transaction version. The client never retries: a failed page is
reported as ``EventSourceError`` and the next sync pass asks again from the
same checkpoint.
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from charity_indexer.core.config import AptosConfig
from charity_indexer.core.exceptions import ConfigurationError, EventSourceError
from charity_indexer.indexer.core.events import EventKind, RawEvent


logger = structlog.get_logger(__name__)


EVENTS_QUERY = """
query GetEvents($where: events_bool_exp, $limit: Int, $order_by: [events_order_by!]) {
  events(where: $where, limit: $limit, order_by: $order_by) {
    account_address
    creation_number
    sequence_number
    data
    type
    transaction_version
    transaction_block_height
    indexed_type
  }
}
"""


class AptosEventClient:
    """
    Async client for the Aptos indexer ``events`` query.

    Features:
    - Exact type-tag filtering on ``indexed_type`` (``#[event]`` structs) or
      ``type`` (legacy event handles)
    - Ascending ``transaction_version`` pages of a fixed size
    - Optional bearer API key
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[int] = None,
        page_size: Optional[int] = None,
        filter_field: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        config = AptosConfig.get_client_config()
        self.endpoint = endpoint or config["endpoint"]
        self.api_key = api_key if api_key is not None else config["api_key"]
        self.timeout = timeout or config["timeout"]
        self.page_size = page_size or config["page_size"]
        self.filter_field = filter_field or config["filter_field"]
        self.logger = logger.bind(service="aptos_event_client")

        if not self.endpoint:
            raise ConfigurationError(
                "Aptos indexer endpoint is not configured",
                {"setting": "APTOS_INDEXER_URL"},
            )
        if self.page_size <= 0:
            raise ConfigurationError(
                f"Page size must be positive, got {self.page_size}",
                {"setting": "INDEXER_PAGE_SIZE"},
            )

        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"Content-Type": "application/json"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    def build_variables(self, kind: EventKind, start_version: int, limit: int) -> Dict[str, Any]:
        """GraphQL variables for one page of ``kind`` at or after ``start_version``."""
        return {
            "where": {
                self.filter_field: {"_eq": AptosConfig.event_type_tag(kind.value)},
                "transaction_version": {"_gte": str(start_version)},
            },
            "limit": limit,
            "order_by": [{"transaction_version": "asc"}],
        }

    async def fetch_events(
        self,
        kind: EventKind,
        start_version: int,
        limit: Optional[int] = None,
    ) -> List[RawEvent]:
        """
        Fetch one page of events of ``kind`` with version >= ``start_version``.

        Args:
            kind: Event kind to query
            start_version: Inclusive lower bound on transaction_version
            limit: Page size, defaults to the configured page size

        Returns:
            Events ordered ascending by transaction_version

        Raises:
            EventSourceError: On transport, HTTP, GraphQL or decoding errors
        """
        limit = limit or self.page_size
        payload = {
            "query": EVENTS_QUERY,
            "variables": self.build_variables(kind, start_version, limit),
        }
        details = {"kind": kind.value, "start_version": start_version}

        try:
            async with self._get_session().post(self.endpoint, json=payload) as response:
                if response.status != 200:
                    body = await response.text()
                    raise EventSourceError(
                        f"HTTP error {response.status} fetching {kind.value}",
                        {**details, "status": response.status, "body": body[:500]},
                    )
                result = await response.json(content_type=None)
        except EventSourceError:
            raise
        except asyncio.TimeoutError as e:
            raise EventSourceError(f"Timeout fetching {kind.value}", details) from e
        except aiohttp.ClientError as e:
            raise EventSourceError(f"Transport error fetching {kind.value}: {e}", details) from e
        except ValueError as e:
            raise EventSourceError(f"Malformed response for {kind.value}: {e}", details) from e

        return self._parse_response(kind, result, details)

    def _parse_response(self, kind: EventKind, result: Any, details: Dict[str, Any]) -> List[RawEvent]:
        if not isinstance(result, dict):
            raise EventSourceError(f"Malformed response for {kind.value}", details)

        if result.get("errors"):
            raise EventSourceError(
                f"GraphQL errors for {kind.value}",
                {**details, "errors": result["errors"]},
            )

        rows = (result.get("data") or {}).get("events")
        if rows is None:
            raise EventSourceError(f"Response for {kind.value} has no events field", details)

        expected_tag = AptosConfig.event_type_tag(kind.value)
        events: List[RawEvent] = []
        for row in rows:
            try:
                event = RawEvent.from_row(row)
            except (KeyError, TypeError, ValueError) as e:
                raise EventSourceError(
                    f"Malformed event row for {kind.value}: {e}",
                    {**details, "row": row},
                ) from e

            tag = event.indexed_type if self.filter_field == "indexed_type" else event.type
            if tag != expected_tag:
                self.logger.warning(
                    "Discarding event of unexpected type",
                    kind=kind.value,
                    type_tag=tag,
                    version=event.transaction_version,
                )
                continue
            events.append(event)

        events.sort(key=lambda e: e.transaction_version)

        self.logger.debug(
            "Fetched events",
            kind=kind.value,
            start_version=details["start_version"],
            count=len(events),
        )
        return events


# Global client instance
_client: Optional[AptosEventClient] = None


async def get_aptos_client() -> AptosEventClient:
    """Get or create a global Aptos event client instance."""
    global _client
    if _client is None:
        _client = AptosEventClient()
    return _client


async def close_aptos_client():
    """Close the global Aptos event client instance."""
    global _client
    if _client:
        await _client.close()
        _client = None
