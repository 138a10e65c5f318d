import logging

from config import settings
from core.parser import AdSummary
from core.scanner import AdScanner, ad_scanner
from db.models import Query
from db.store import Store, store

log = logging.getLogger(__name__)


class QueryRunner:
    """Runs one ingestion cycle for a stored query and records the new ads."""

    def __init__(
        self,
        store: Store = store,
        scanner: AdScanner = ad_scanner,
        pages: int | None = None,
        logger: logging.Logger | None = None,
    ):
        self.store = store
        self.scanner = scanner
        self.pages = pages or settings.pages_per_scan
        self.log = logger or log

    async def run(self, query: Query) -> list[AdSummary]:
        if query.id is None:
            raise ValueError("query must be stored before it can be run")

        self.log.info(f"Running query #{query.id}: {query.term!r} in {query.city_name}")
        known = await self.store.get_known_ad_ids(query.id)

        fetched = 0
        new_ads: list[AdSummary] = []
        for page in range(1, self.pages + 1):
            result = await self.scanner.scan(query.to_search_spec(page=page))
            # a page whose entries were all filtered out is not the end of the results
            if not result.ads and not result.skipped:
                break
            fetched += len(result.ads)

            for ad in result.ads:
                if ad.external_id in known:
                    continue
                known.add(ad.external_id)
                await self.store.add_ad(query.id, ad.external_id, ad.location_text)
                new_ads.append(ad)

        self.log.info(f"Query #{query.id}: {fetched} found, {len(new_ads)} new")
        return new_ads
