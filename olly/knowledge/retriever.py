"""
Knowledge Retriever
Reads hotel, service, room, intent and output-rule rows through the
cache, applies the active / hotel-ownership / web-visibility rules, and
assembles the record set a question is answered from.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Union

from olly.config import settings
from olly.knowledge.cache import KnowledgeCache
from olly.knowledge.records import (
    HotelRecord,
    IntentPattern,
    OutputRule,
    RoomRecord,
    ServiceRecord,
    is_web_visible,
)
from olly.knowledge.sources import KnowledgeSource
from olly.knowledge.text import token_set

logger = logging.getLogger(__name__)

Record = Union[ServiceRecord, RoomRecord]

FALLBACK_LIMIT = 3
DIRECT_LINK_LIMIT = 10


@dataclass
class Knowledge:
    hotel: Optional[HotelRecord]
    services: List[ServiceRecord] = field(default_factory=list)
    rooms: List[RoomRecord] = field(default_factory=list)
    matched: List[Record] = field(default_factory=list)
    fallback: List[Record] = field(default_factory=list)

    @property
    def all(self) -> List[Record]:
        return [*self.services, *self.rooms]

    @property
    def retrieved(self) -> List[Record]:
        """Records selected for this question: intent matches first, else lexical fallback."""
        return self.matched or self.fallback


def belongs_to_hotel(record: Record, slug: str) -> bool:
    return slug in record.hotel_slugs


def lexical_score(question_tokens: Iterable[str], text: str) -> int:
    return len(set(question_tokens) & token_set(text))


def score_records(question: str, records: Sequence[Record], limit: int = FALLBACK_LIMIT) -> List[Record]:
    """Top `limit` records by token overlap with the question; zero scores are dropped."""
    tokens = token_set(question)
    if not tokens:
        return []
    scored = [(lexical_score(tokens, r.search_text()), i, r) for i, r in enumerate(records)]
    scored = [s for s in scored if s[0] > 0]
    scored.sort(key=lambda s: (-s[0], s[1]))
    return [r for _, _, r in scored[:limit]]


class KnowledgeRetriever:
    def __init__(
        self,
        source: KnowledgeSource,
        cache: KnowledgeCache = None,
        web_channel: str = None,
    ):
        self.source = source
        self.cache = cache or KnowledgeCache()
        self.web_channel = web_channel or settings.WEB_CHANNEL

    def _visible(self, record: Any) -> bool:
        return record.active and is_web_visible(record.channels, self.web_channel)

    async def get_hotel(self, slug: str) -> Optional[HotelRecord]:
        async def fetch() -> Optional[HotelRecord]:
            rows = await self.source.list_records(settings.HOTELS_TABLE, equals=("Slug", slug))
            for row in rows:
                hotel = HotelRecord.from_row(row)
                if hotel.active and hotel.slug == slug:
                    return hotel
            logger.info(f"No active hotel record for slug '{slug}'")
            return None

        return await self.cache.get_or_fetch(("hotel", slug), fetch)

    async def get_services_for_hotel(self, slug: str) -> List[ServiceRecord]:
        async def fetch() -> List[ServiceRecord]:
            rows = await self.source.list_records(settings.SERVICES_TABLE)
            records = [ServiceRecord.from_row(r) for r in rows]
            return [r for r in records if self._visible(r) and belongs_to_hotel(r, slug)]

        return await self.cache.get_or_fetch(("services", slug), fetch)

    async def get_rooms_for_hotel(self, slug: str) -> List[RoomRecord]:
        async def fetch() -> List[RoomRecord]:
            rows = await self.source.list_records(settings.ROOMS_TABLE)
            records = [RoomRecord.from_row(r) for r in rows]
            return [r for r in records if self._visible(r) and belongs_to_hotel(r, slug)]

        return await self.cache.get_or_fetch(("rooms", slug), fetch)

    async def get_intent_patterns(self) -> List[IntentPattern]:
        async def fetch() -> List[IntentPattern]:
            rows = await self.source.list_records(settings.INTENTS_TABLE)
            patterns = [IntentPattern.from_row(r) for r in rows]
            return [p for p in patterns if p.intent and self._visible(p)]

        return await self.cache.get_or_fetch(("intents",), fetch)

    async def get_output_rules(self) -> List[OutputRule]:
        async def fetch() -> List[OutputRule]:
            rows = await self.source.list_records(settings.OUTPUT_RULES_TABLE)
            rules = [OutputRule.from_row(r) for r in rows]
            return [r for r in rules if self._visible(r)]

        return await self.cache.get_or_fetch(("output_rules",), fetch)

    async def fetch_by_ids(self, kind: str, ids: Iterable[str], limit: int = DIRECT_LINK_LIMIT) -> List[Record]:
        """
        Resolve explicit record ids (intent direct links). Ids are
        de-duplicated and capped at `limit`; an id that fails to load is
        dropped, not retried.
        """
        table, model = {
            "service": (settings.SERVICES_TABLE, ServiceRecord),
            "room": (settings.ROOMS_TABLE, RoomRecord),
        }[kind]
        unique_ids = list(dict.fromkeys(i for i in ids if i))[:limit]
        if not unique_ids:
            return []

        results = await asyncio.gather(
            *(self.source.get_record(table, i) for i in unique_ids),
            return_exceptions=True,
        )
        records: List[Record] = []
        for record_id, result in zip(unique_ids, results):
            if isinstance(result, Exception):
                logger.warning(f"Dropping linked {kind} {record_id}: {result}")
                continue
            if result is None:
                logger.debug(f"Linked {kind} {record_id} not found")
                continue
            records.append(model.from_row(result))
        return records

    async def fetch_knowledge(
        self,
        slug: str,
        intent: Optional[str],
        question: str,
        pattern: Optional[IntentPattern] = None,
    ) -> Knowledge:
        hotel, services, rooms = await asyncio.gather(
            self.get_hotel(slug),
            self.get_services_for_hotel(slug),
            self.get_rooms_for_hotel(slug),
        )
        knowledge = Knowledge(hotel=hotel, services=services, rooms=rooms)

        if intent:
            knowledge.matched = [r for r in knowledge.all if intent in r.intents]
            if pattern is not None:
                linked = await self._linked_records(slug, pattern)
                seen = {r.id for r in knowledge.matched}
                knowledge.matched.extend(r for r in linked if r.id not in seen)

        if not knowledge.matched:
            knowledge.fallback = score_records(question, knowledge.all)

        logger.debug(
            f"Knowledge for {slug}: {len(services)} services, {len(rooms)} rooms, "
            f"{len(knowledge.matched)} matched, {len(knowledge.fallback)} fallback"
        )
        return knowledge

    async def _linked_records(self, slug: str, pattern: IntentPattern) -> List[Record]:
        services, rooms = await asyncio.gather(
            self.fetch_by_ids("service", pattern.service_ids),
            self.fetch_by_ids("room", pattern.room_ids),
        )
        return [
            r
            for r in [*services, *rooms]
            if self._visible(r) and belongs_to_hotel(r, slug)
        ]
