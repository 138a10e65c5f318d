import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx
import pytest

from core.ingest import QueryRunner
from core.logging_setup import setup_logging
from core.parser import AdSummary
from core.scanner import AdScanner, ExtractionResult, SearchSpec
from db.store import Store


def run_with_store(tmp_path: Path, scenario):
    async def run():
        store = Store(tmp_path / "test.db")
        await store.connect()
        try:
            return await scenario(store)
        finally:
            await store.close()

    return asyncio.run(run())


def make_ad(external_id: str, location: str = "10115 Berlin") -> AdSummary:
    return AdSummary(
        title=f"Ad {external_id}",
        detail_url=f"https://www.kleinanzeigen.de/s-anzeige/ad/{external_id}",
        price_text="10 €",
        location_text=location,
        external_id=external_id,
    )


class FakeScanner:
    def __init__(self, pages: dict[int, list[AdSummary]]):
        self.pages = pages
        self.specs: list[SearchSpec] = []

    async def scan(self, spec: SearchSpec) -> ExtractionResult:
        self.specs.append(spec)
        return ExtractionResult(ads=list(self.pages.get(spec.page, [])))


def listing_page(ad_id: str, title: str, price: str) -> str:
    return f"""
    <html><body><ul id="srchrslt-adtable">
      <li class="ad-listitem">
        <article class="aditem" data-adid="{ad_id}">
          <div class="aditem-main--top"><div class="aditem-main--top--left">10115 Berlin</div></div>
          <a class="ellipsis" href="/s-anzeige/{ad_id}">{title}</a>
          <p class="aditem-main--middle--price-shipping--price">{price}</p>
        </article>
      </li>
    </ul></body></html>
    """


class TestQueries:
    def test_add_and_get_query(self, tmp_path):
        async def scenario(store: Store):
            query_id = await store.add_query(
                chat_id=42, term="rennrad", radius=10, city=3331, city_name="Berlin", max_price=500
            )
            return await store.get_query(query_id)

        query = run_with_store(tmp_path, scenario)

        assert query.chat_id == 42
        assert query.term == "rennrad"
        assert query.city_name == "Berlin"
        assert query.max_price == 500
        assert query.min_price is None

    def test_query_builds_search_spec(self, tmp_path):
        async def scenario(store: Store):
            query_id = await store.add_query(42, "rennrad", 10, 3331, "Berlin", 500, 100)
            return await store.get_query(query_id)

        spec = run_with_store(tmp_path, scenario).to_search_spec(page=2)

        assert spec == SearchSpec("rennrad", 3331, 10, max_price=500, min_price=100, page=2)

    def test_get_queries_per_chat(self, tmp_path):
        async def scenario(store: Store):
            await store.add_query(1, "rennrad", 10, 3331, "Berlin")
            await store.add_query(2, "sofa", 5, 6411, "Hamburg")
            await store.add_query(1, "lampe", 5, 3331, "Berlin")
            return await store.get_queries(chat_id=1), await store.get_queries()

        mine, everything = run_with_store(tmp_path, scenario)

        assert [q.term for q in mine] == ["rennrad", "lampe"]
        assert len(everything) == 3

    def test_delete_query_removes_its_ads(self, tmp_path):
        async def scenario(store: Store):
            doomed = await store.add_query(1, "rennrad", 10, 3331, "Berlin")
            kept = await store.add_query(1, "sofa", 5, 3331, "Berlin")
            for external_id in ("1", "2", "3"):
                await store.add_ad(doomed, external_id)
            await store.add_ad(kept, "1")

            deleted = await store.delete_query(doomed)
            return (
                deleted,
                await store.get_query(doomed),
                await store.count_ads(doomed),
                await store.count_ads(kept),
            )

        deleted, query, doomed_ads, kept_ads = run_with_store(tmp_path, scenario)

        assert deleted is True
        assert query is None
        assert doomed_ads == 0
        assert kept_ads == 1

    def test_delete_query_without_connection(self, tmp_path):
        store = Store(tmp_path / "test.db")

        with pytest.raises(RuntimeError, match="not connected") as exc_info:
            asyncio.run(store.delete_query(1))

        assert exc_info.value.__context__ is None

    def test_delete_unknown_query(self, tmp_path):
        async def scenario(store: Store):
            return await store.delete_query(999)

        assert run_with_store(tmp_path, scenario) is False


class TestAds:
    def test_add_ad_is_idempotent_per_query(self, tmp_path):
        async def scenario(store: Store):
            query_id = await store.add_query(1, "rennrad", 10, 3331, "Berlin")
            first = await store.add_ad(query_id, "2871", "10115 Berlin")
            second = await store.add_ad(query_id, "2871", "10115 Berlin")
            return first, second, await store.get_ads(query_id), await store.is_ad_known(query_id, "2871")

        first, second, ads, known = run_with_store(tmp_path, scenario)

        assert first is True
        assert second is False
        assert [ad.external_id for ad in ads] == ["2871"]
        assert ads[0].location == "10115 Berlin"
        assert known is True

    def test_same_ad_for_different_queries(self, tmp_path):
        async def scenario(store: Store):
            a = await store.add_query(1, "rennrad", 10, 3331, "Berlin")
            b = await store.add_query(1, "fahrrad", 10, 3331, "Berlin")
            await store.add_ad(a, "2871")
            await store.add_ad(b, "2871")
            return await store.count_ads()

        assert run_with_store(tmp_path, scenario) == 2

    def test_requires_connection(self, tmp_path):
        with pytest.raises(RuntimeError):
            Store(tmp_path / "test.db").conn


class TestQueryRunner:
    def test_reports_only_new_ads(self, tmp_path):
        scanner = FakeScanner({1: [make_ad("1"), make_ad("2"), make_ad("3")]})

        async def scenario(store: Store):
            query_id = await store.add_query(1, "rennrad", 10, 3331, "Berlin", 500)
            await store.add_ad(query_id, "2")
            query = await store.get_query(query_id)

            runner = QueryRunner(store=store, scanner=scanner, pages=1)
            first = await runner.run(query)
            second = await runner.run(query)
            return first, second, await store.get_known_ad_ids(query_id)

        first, second, known = run_with_store(tmp_path, scenario)

        assert [ad.external_id for ad in first] == ["1", "3"]
        assert second == []
        assert known == {"1", "2", "3"}
        assert scanner.specs[0].max_price == 500

    def test_walks_pages_until_empty(self, tmp_path):
        scanner = FakeScanner({1: [make_ad("1")], 2: [make_ad("2"), make_ad("1")]})

        async def scenario(store: Store):
            query_id = await store.add_query(1, "rennrad", 10, 3331, "Berlin")
            runner = QueryRunner(store=store, scanner=scanner, pages=5)
            return await runner.run(await store.get_query(query_id))

        new_ads = run_with_store(tmp_path, scenario)

        assert [ad.external_id for ad in new_ads] == ["1", "2"]
        assert [spec.page for spec in scanner.specs] == [1, 2, 3]

    def test_filtered_out_page_does_not_end_walk(self, tmp_path):
        pages = {
            1: listing_page("1", "Pricey", "9.999 €"),
            2: listing_page("2", "Cheap", "10 €"),
        }
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            page = int(request.url.path.split("/")[1].split(":")[1])
            requested.append(page)
            return httpx.Response(200, text=pages.get(page, "<html><body></body></html>"))

        async def scenario(store: Store):
            scanner = AdScanner(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
            try:
                query_id = await store.add_query(1, "rennrad", 10, 3331, "Berlin", max_price=100)
                runner = QueryRunner(store=store, scanner=scanner, pages=2)
                return await runner.run(await store.get_query(query_id))
            finally:
                await scanner.close()

        new_ads = run_with_store(tmp_path, scenario)

        assert [ad.external_id for ad in new_ads] == ["2"]
        assert requested == [1, 2]


class TestLoggingSetup:
    def test_writes_log_file(self, tmp_path):
        handler = setup_logging(tmp_path / "logs", "debug")
        try:
            logging.getLogger("tests.logging").warning("hello from the watcher")
            handler.flush()
            content = (tmp_path / "logs" / "kleinanzeigen-watcher.log").read_text(encoding="utf-8")
        finally:
            logging.getLogger().removeHandler(handler)
            handler.close()

        assert "hello from the watcher" in content
        assert "[WARNING] tests.logging" in content
