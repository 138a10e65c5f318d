from abc import ABC, abstractmethod
from typing import Any

from bs4 import BeautifulSoup, Tag

PROMOTED_MARKER = "is-topad"


class DocumentParser(ABC):
    """
    Locates the structural parts of a search result page.

    Implementations only differ in how nodes are found; the extraction
    algorithm in core.scanner works on whatever node type they return.
    """

    @abstractmethod
    def parse(self, markup: str) -> Any:
        """Parse raw markup into a document handle."""

    @abstractmethod
    def container(self, document: Any) -> Any | None:
        """Return the results container, or None if the page has none."""

    @abstractmethod
    def items(self, container: Any) -> list[Any]:
        """Return the list-item entries of the container in document order."""

    @abstractmethod
    def is_promoted(self, item: Any) -> bool:
        """Return True if the entry is marked as a paid placement."""

    @abstractmethod
    def anchor(self, item: Any) -> tuple[str | None, str]:
        """Return the (href, text) of the entry's title link."""

    @abstractmethod
    def price_text(self, item: Any) -> str:
        """Return the raw text of the entry's price block, or "" if it has none."""

    @abstractmethod
    def location_text(self, item: Any) -> str:
        """Return the raw text of the entry's last location block, or "" if it has none."""

    @abstractmethod
    def ad_id(self, item: Any) -> str | None:
        """Return the source-assigned identifier of the entry, if present."""


class SoupDocumentParser(DocumentParser):
    CONTAINER = "#srchrslt-adtable"
    ITEM = ".ad-listitem"
    ANCHOR = "a.ellipsis"
    PRICE = "p.aditem-main--middle--price-shipping--price"
    LOCATION = "div .aditem-main--top--left"
    ARTICLE = "article.aditem"
    AD_ID_ATTR = "data-adid"

    def __init__(self, features: str = "html.parser"):
        self.features = features

    def parse(self, markup: str) -> BeautifulSoup:
        return BeautifulSoup(markup, self.features)

    def container(self, document: BeautifulSoup) -> Tag | None:
        return document.select_one(self.CONTAINER)

    def items(self, container: Tag) -> list[Tag]:
        return container.select(self.ITEM)

    def is_promoted(self, item: Tag) -> bool:
        if PROMOTED_MARKER in _classes(item):
            return True
        first_child = item.find(True, recursive=False)
        return first_child is not None and PROMOTED_MARKER in _classes(first_child)

    def anchor(self, item: Tag) -> tuple[str | None, str]:
        link = item.select_one(self.ANCHOR)
        if link is None:
            return None, ""
        href = link.get("href")
        return (href if isinstance(href, str) else None), link.get_text()

    def price_text(self, item: Tag) -> str:
        price = item.select_one(self.PRICE)
        return price.get_text() if price else ""

    def location_text(self, item: Tag) -> str:
        blocks = item.select(self.LOCATION)
        return blocks[-1].get_text() if blocks else ""

    def ad_id(self, item: Tag) -> str | None:
        article = item.select_one(self.ARTICLE)
        if article is None:
            return None
        value = article.get(self.AD_ID_ATTR)
        return value if isinstance(value, str) and value else None


def _classes(tag: Tag) -> list[str]:
    value = tag.get("class") or []
    if isinstance(value, str):
        return value.split()
    return list(value)
