import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from config import settings
from core.document import DocumentParser, SoupDocumentParser
from core.filter import SkippedEntry, SkipReason, check_price
from core.parser import AdSummary, build_ad

log = logging.getLogger(__name__)


@dataclass
class SearchSpec:
    term: str
    city_code: int
    radius_km: int
    max_price: int | None = None
    min_price: int | None = None
    page: int = 1


@dataclass
class ExtractionResult:
    ads: list[AdSummary] = field(default_factory=list)
    skipped: list[SkippedEntry] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"ExtractionResult({len(self.ads)} ads, {len(self.skipped)} skipped)"


def build_listing_url(spec: SearchSpec, template: str | None = None) -> str:
    template = template or settings.listing_url_template
    return template.format(
        page=spec.page,
        term=spec.term.replace(" ", "-"),
        city=spec.city_code,
        radius=spec.radius_km,
    )


def extract_ads(
    document: Any,
    spec: SearchSpec,
    parser: DocumentParser,
    base_url: str | None = None,
    logger: logging.Logger | None = None,
) -> ExtractionResult:
    """
    Walk a parsed result page and collect the ads matching the search.

    Entries are emitted in document order. Promoted entries, entries outside
    the price bounds and entries without an ad id are recorded in
    ``skipped`` instead of raising.
    """
    logger = logger or log
    base_url = base_url or settings.base_url
    result = ExtractionResult()

    container = parser.container(document)
    if container is None:
        logger.warning(f"no result list found for {spec.term!r} on page {spec.page}")
        return result

    for item in parser.items(container):
        if parser.is_promoted(item):
            result.skipped.append(SkippedEntry(SkipReason.PROMOTED))
            continue

        href, title = parser.anchor(item)
        price_text = parser.price_text(item).strip()
        location_text = parser.location_text(item)

        skipped = check_price(price_text, spec.max_price, spec.min_price, logger=logger)
        if skipped:
            result.skipped.append(skipped)
            continue

        ad_id = parser.ad_id(item)
        if not ad_id:
            logger.debug(f"skipping ad without id: {title.strip()!r}")
            result.skipped.append(SkippedEntry(SkipReason.MISSING_ID, title.strip()))
            continue

        result.ads.append(build_ad(base_url, href, title, price_text, location_text, ad_id))

    return result


class AdScanner:
    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        parser: DocumentParser | None = None,
        logger: logging.Logger | None = None,
    ):
        self._client = client
        self._lock = asyncio.Lock()
        self.parser = parser or SoupDocumentParser()
        self.log = logger or log

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client:
            return self._client

        async with self._lock:
            if not self._client:
                self._client = httpx.AsyncClient(
                    timeout=settings.listing_timeout_seconds,
                    follow_redirects=True,
                )
            return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def scan(self, spec: SearchSpec) -> ExtractionResult:
        self.log.debug("scraping for ads")
        url = build_listing_url(spec)

        try:
            client = await self._get_client()
            resp = await client.get(url, headers={"User-Agent": settings.user_agent})
            resp.raise_for_status()
            document = self.parser.parse(resp.text)
            result = extract_ads(document, spec, self.parser, logger=self.log)
        except httpx.HTTPError as e:
            self.log.error(
                f"error while scraping for ads (term={spec.term!r}, radius={spec.radius_km}): {e}"
            )
            return ExtractionResult()
        except Exception as e:
            self.log.error(f"could not parse result page {url}: {e}", exc_info=True)
            return ExtractionResult()

        self.log.debug(f"scraped {len(result.ads)} ads for query {spec.term!r}")
        return result

    async def fetch_ads(self, spec: SearchSpec) -> list[AdSummary]:
        """Fetch one result page; failures degrade to an empty list."""
        result = await self.scan(spec)
        return result.ads


ad_scanner = AdScanner()
