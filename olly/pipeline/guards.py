"""
Guards around the answer pipeline:
  - per-caller fixed-window rate limiter
  - hard stop for hotel-specific questions with no verified data
  - post-generation price/currency filter
"""
import logging
import re
import time
from typing import Callable, Dict, Optional, Sequence, Tuple

from olly.config import settings
from olly.knowledge.records import HotelRecord
from olly.knowledge.text import normalize, starts_any_word

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed window per caller identity.

    The `max_requests`-th request inside one `window_seconds` window is the
    first one refused, so a limit of 12 serves eleven requests per window.
    """

    PRUNE_THRESHOLD = 10_000

    def __init__(
        self,
        window_seconds: float = None,
        max_requests: int = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS
        self.max_requests = max_requests or settings.RATE_LIMIT_MAX_REQUESTS
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}

    def hit(self, identity: str) -> bool:
        """Count one request for `identity`; False once it reaches `max_requests`."""
        now = self._clock()
        started, count = self._windows.get(identity, (now, 0))
        if now - started >= self.window_seconds:
            started, count = now, 0
        count += 1
        self._windows[identity] = (started, count)

        if len(self._windows) > self.PRUNE_THRESHOLD:
            self._prune(now)
        return count < self.max_requests

    def _prune(self, now: float) -> None:
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for key in expired:
            del self._windows[key]


# ── Hard stop ────────────────────────────────────────────────────────────
HOTEL_SPECIFIC_KEYWORDS = (
    "room", "soba", "sobe", "sobu", "suite", "apartman", "price", "prices", "cost", "cijen",
    "breakfast", "doručak", "dorucak", "parking", "parkir", "check in", "check out",
    "checkin", "checkout", "prijav", "odjav", "wifi", "wi fi", "internet", "pool", "bazen",
    "spa", "wellness", "gym", "fitness", "reception", "recepcij", "book", "booking",
    "reserv", "rezerv", "minibar", "pets", "ljubimc", "cancel", "otkaz", "amenit", "oprem",
    "towel", "ručni", "rucni", "air condition", "klima", "laundry", "pranje rublja",
    "transfer", "your hotel", "the hotel", "vaš hotel", "vas hotel", "hotelu", "smoking",
)

CITY_KEYWORDS = (
    "split", "diocletian", "dioklecijan", "palace", "palač", "palac", "peristyle", "peristil",
    "cathedral", "katedral", "unesco", "riva", "marjan", "beach", "plaž", "plaz", "museum",
    "muzej", "old town", "stari grad", "ferry", "trajekt", "island", "otok", "trogir", "hvar",
    "brač", "brac", "sightseeing", "znamenitost", "attraction", "weather", "vrijeme u",
    "city", "grad", "game of thrones", "nightlife", "market", "tržnic", "trznic",
)


def is_hotel_specific(question: str) -> bool:
    return bool(starts_any_word(normalize(question), HOTEL_SPECIFIC_KEYWORDS))


def is_city_question(question: str) -> bool:
    return bool(starts_any_word(normalize(question), CITY_KEYWORDS))


def should_hard_stop(question: str, hotel: Optional[HotelRecord], retrieved: Sequence) -> bool:
    """A hotel-specific question with no hotel record and nothing retrieved must not reach the model."""
    if hotel is not None or retrieved:
        return False
    return is_hotel_specific(question) and not is_city_question(question)


# ── Price guard ──────────────────────────────────────────────────────────
PRICE_PATTERN = re.compile(
    r"(€|\$|£|\bEUR\b|\bUSD\b|\bGBP\b|\bHRK\b|\bkn\b|\bkuna\b|\beuros?\b|"
    r"per\s+night\b|/\s*night\b|\ba\s+night\b|po\s+no[cć]i\b|/\s*no[cć]\b|no[cć]enje\s+od)",
    flags=re.IGNORECASE,
)


def mentions_price(text: str) -> bool:
    return bool(text and PRICE_PATTERN.search(text))


def violates_price_guard(answer: str, context_text: str) -> bool:
    """
    True when `answer` quotes a price or currency that appears nowhere in
    the context the answer was generated from.
    """
    if not mentions_price(answer):
        return False
    if mentions_price(context_text):
        return False
    logger.warning(f"Price guard replaced an unsupported price mention: {answer[:120]!r}")
    return True
