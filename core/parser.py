import re
from dataclasses import dataclass
from urllib.parse import urljoin

_WHITESPACE = re.compile(r"\s+")


@dataclass
class AdSummary:
    title: str
    detail_url: str
    price_text: str
    location_text: str
    external_id: str


def normalize_location(text: str) -> str:
    return _WHITESPACE.sub(" ", text.strip())


def build_ad(
    base_url: str,
    href: str | None,
    title: str,
    price_text: str,
    location_text: str,
    external_id: str,
) -> AdSummary:
    return AdSummary(
        title=title.strip(),
        detail_url=urljoin(base_url, href or ""),
        price_text=price_text.strip(),
        location_text=normalize_location(location_text),
        external_id=external_id,
    )
