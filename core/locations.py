import asyncio
import json
import logging
from dataclasses import dataclass

import httpx

from config import settings
from core.errors import DecodeError, NotFoundError, TransportError, UpstreamStatusError

log = logging.getLogger(__name__)


@dataclass
class LocationMatch:
    code: int
    name: str


def parse_location_payload(payload: object) -> LocationMatch:
    """
    Turn a place-lookup response into a single match.

    The payload maps type-prefixed ids (e.g. ``"_7856"``) to display names.
    The first entry iterated is returned; when several places match, which
    one that is follows the upstream response and is not a stable contract.
    """
    if not isinstance(payload, dict):
        raise DecodeError("expected a JSON object")

    for key, value in payload.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise DecodeError("expected a mapping of strings")

        code_text = key[1:].strip()
        if not code_text.isascii() or not code_text.isdigit():
            raise DecodeError(f"could not get city id from {key!r}")

        return LocationMatch(code=int(code_text), name=value)

    raise NotFoundError("could not find city")


class LocationResolver:
    def __init__(self, client: httpx.AsyncClient | None = None, logger: logging.Logger | None = None):
        self._client = client
        self._lock = asyncio.Lock()
        self.log = logger or log

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client:
            return self._client

        async with self._lock:
            if not self._client:
                self._client = httpx.AsyncClient(timeout=settings.location_timeout_seconds)
            return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def resolve(self, place_text: str) -> LocationMatch:
        self.log.debug(f"finding city id for {place_text!r}")
        city = place_text.strip()

        client = await self._get_client()
        try:
            resp = await client.get(
                settings.location_url,
                params={"query": city},
                headers={
                    "User-Agent": settings.user_agent,
                    "Accept": "*/*",
                    "Accept-Language": settings.accept_language,
                },
                timeout=settings.location_timeout_seconds,
            )
        except httpx.HTTPError as e:
            self.log.error(f"could not send location request: {e}")
            raise TransportError("could not send request") from e

        if resp.status_code != 200:
            self.log.error(f"received a wrong status code: {resp.status_code}")
            if resp.status_code == 403:
                self.log.error("ip address might be blocked by kleinanzeigen")
            raise UpstreamStatusError(resp.status_code)

        try:
            payload = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError("could not parse JSON") from e

        match = parse_location_payload(payload)
        self.log.debug(f"found city {match.code}: {match.name}")
        return match


location_resolver = LocationResolver()
