"""Scryfall collection client with request rate limiting."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import httpx

from .config import ScryfallConfig
from .models import (
    Batch,
    CanonicalRecord,
    LocalRecord,
    LookupFailedError,
    MalformedResponseError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)

COLLECTION_ENDPOINT = "/cards/collection"


class LookupService(Protocol):
    """Anything that can resolve a batch of local records to canonical cards."""

    async def fetch_collection(self, batch: Batch) -> List[CanonicalRecord]:
        ...


def build_identifier(record: LocalRecord) -> Dict[str, str]:
    """Build a Scryfall card identifier for one local record.

    Scryfall accepts set + collector_number, name + set, or name alone,
    so the most specific combination available is used.
    """
    set_code = record.set_code.strip().lower()
    if set_code and record.collector_number:
        return {"set": set_code, "collector_number": record.collector_number}
    if set_code:
        return {"name": record.name, "set": set_code}
    return {"name": record.name}


@dataclass
class ScryfallClient:
    """Async client for the Scryfall /cards/collection endpoint.

    The client does not retry; callers decide what to do with a
    RateLimitedError.
    """
    config: ScryfallConfig = field(default_factory=ScryfallConfig)
    _last_request_time: float = field(default=0.0, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    async def _rate_limit(self) -> None:
        """Enforce a minimum interval between requests."""
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request_time
            min_interval = 1.0 / self.config.rate_limit_per_second
            if elapsed < min_interval:
                await asyncio.sleep(min_interval - elapsed)
            self._last_request_time = time.monotonic()

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST a JSON payload and return the decoded body.

        Raises:
            RateLimitedError: On HTTP 429
            LookupFailedError: On any other HTTP error or transport failure
            MalformedResponseError: If the body is not a JSON object
        """
        await self._rate_limit()

        url = f"{self.config.base_url}{endpoint}"
        headers = {
            "Accept": "application/json",
            "User-Agent": self.config.user_agent,
        }

        try:
            async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                response = await client.request("POST", url, headers=headers, json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code if e.response is not None else 0
            if status_code == 429:
                raise RateLimitedError(f"Rate limited by {url}") from e
            raise LookupFailedError(f"HTTP {status_code} from {url}") from e
        except httpx.HTTPError as e:
            raise LookupFailedError(f"Request to {url} failed: {e!r}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Response from {url} is not JSON") from e

        if not isinstance(data, dict):
            raise MalformedResponseError(f"Response from {url} is not a JSON object")
        return data

    async def fetch_collection(self, batch: Batch) -> List[CanonicalRecord]:
        """Resolve every record in a batch with one collection request.

        POST /cards/collection

        Args:
            batch: Up to 75 local records

        Returns:
            Canonical records in the order Scryfall returned them. Records
            Scryfall could not find are absent.
        """
        identifiers = [build_identifier(record) for record in batch.records]
        data = await self._post(COLLECTION_ENDPOINT, {"identifiers": identifiers})

        cards = data.get("data")
        if not isinstance(cards, list):
            raise MalformedResponseError(
                f"Batch {batch.index}: response has no card list. Keys: {list(data.keys())}"
            )

        not_found = data.get("not_found") or []
        if not_found:
            logger.info(f"Batch {batch.index}: {len(not_found)} identifiers not found")

        return [CanonicalRecord.from_scryfall(card) for card in cards if isinstance(card, dict)]


def create_client(config: Optional[ScryfallConfig] = None) -> ScryfallClient:
    """Create a client from explicit config or SCRYFALL_* environment variables."""
    return ScryfallClient(config=config or ScryfallConfig.from_env())
