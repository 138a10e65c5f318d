import logging
from dataclasses import dataclass
from enum import Enum

log = logging.getLogger(__name__)

FREE_PRICE = "zu verschenken"
# "â‚¬" is how the euro sign shows up when the page is decoded as latin-1
PRICE_NOISE = ("VB", "€", "â‚¬", ".")


class SkipReason(Enum):
    PROMOTED = "promoted"
    UNPRICED = "unpriced"
    BAD_PRICE = "bad_price"
    ABOVE_MAX_PRICE = "above_max_price"
    BELOW_MIN_PRICE = "below_min_price"
    MISSING_ID = "missing_id"


@dataclass
class SkippedEntry:
    reason: SkipReason
    detail: str = ""


def clean_price(price_text: str) -> str:
    cleaned = price_text.strip()
    for noise in PRICE_NOISE:
        cleaned = cleaned.replace(noise, "")
    return cleaned.strip()


def is_free(price_text: str) -> bool:
    return price_text.strip().lower() == FREE_PRICE


def check_price(
    price_text: str,
    max_price: int | None,
    min_price: int | None = None,
    logger: logging.Logger | None = None,
) -> SkippedEntry | None:
    """
    Apply the price bounds of a search to a raw price text.

    Returns None when the entry passes, otherwise the reason it was dropped.
    Bounds are only applied when max_price is set; free items always pass.
    """
    logger = logger or log

    if max_price is None or is_free(price_text):
        return None

    cleaned = clean_price(price_text)
    if not cleaned:
        return SkippedEntry(SkipReason.UNPRICED, price_text)

    if not cleaned.isascii() or not cleaned.isdigit():
        logger.warning(f"could not parse price from ad: {cleaned!r}")
        return SkippedEntry(SkipReason.BAD_PRICE, cleaned)

    price = int(cleaned)
    if price >= max_price:
        logger.debug(f"price {price} is bigger than requested")
        return SkippedEntry(SkipReason.ABOVE_MAX_PRICE, cleaned)
    if min_price is not None and price < min_price:
        logger.debug(f"price {price} is lower than requested")
        return SkippedEntry(SkipReason.BELOW_MIN_PRICE, cleaned)

    return None
