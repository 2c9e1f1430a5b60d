import asyncio

import pytest

from olly.errors import KnowledgeSourceError
from olly.knowledge.cache import KnowledgeCache
from olly.knowledge.retriever import KnowledgeRetriever, score_records
from olly.knowledge.records import IntentPattern, RoomRecord

from conftest import HOTEL, FakeSource, room_row


def make_retriever(source, ttl=60):
    return KnowledgeRetriever(source, KnowledgeCache(ttl_seconds=ttl))


def test_get_hotel_filters_by_slug_equality(source):
    retriever = make_retriever(source)
    hotel = asyncio.run(retriever.get_hotel(HOTEL))
    assert hotel.name == "Hotel Olly Split"
    assert source.last_equals["Hotels"] == ("Slug", HOTEL)


def test_inactive_or_unknown_hotel_is_none(tables):
    tables["Hotels"][0]["fields"]["Active"] = False
    retriever = make_retriever(FakeSource(tables))
    assert asyncio.run(retriever.get_hotel(HOTEL)) is None
    assert asyncio.run(retriever.get_hotel("ghost-hotel")) is None


def test_rooms_respect_ownership_visibility_and_active(tables):
    tables["Rooms"] += [
        room_row("recWhatsapp", "Chat Room", "chat", "1", "", Channels=["whatsapp"]),
        room_row("recLegacy", "Legacy Room", "legacy", "1", "", Channels=[]),
        room_row("recInactive", "Old Room", "old", "1", "", Active=False),
        room_row("recOther", "Other Room", "other", "1", "", **{"Hotel Slug": ["hotel-elsewhere"]}),
    ]
    retriever = make_retriever(FakeSource(tables))
    rooms = asyncio.run(retriever.get_rooms_for_hotel(HOTEL))
    assert [r.id for r in rooms] == ["recDeluxe", "recSuperior", "recLegacy"]


def test_second_read_within_ttl_does_not_refetch(source):
    retriever = make_retriever(source)
    first = asyncio.run(retriever.get_rooms_for_hotel(HOTEL))
    second = asyncio.run(retriever.get_rooms_for_hotel(HOTEL))
    assert first == second
    assert source.list_calls["Rooms"] == 1


def test_fetch_knowledge_matches_by_intent(source):
    retriever = make_retriever(source)
    knowledge = asyncio.run(retriever.fetch_knowledge(HOTEL, "breakfast", "When is breakfast?"))
    assert [r.id for r in knowledge.matched] == ["recBreakfast"]
    assert knowledge.fallback == []
    assert knowledge.retrieved == knowledge.matched


def test_fetch_knowledge_merges_direct_links(source):
    retriever = make_retriever(source)
    pattern = IntentPattern(id="p", intent="parking", service_ids=("recGarage", "recParking", "recMissing"))
    knowledge = asyncio.run(retriever.fetch_knowledge(HOTEL, "parking", "parking?", pattern))
    assert [r.id for r in knowledge.matched] == ["recParking", "recGarage"]


def test_fallback_only_when_nothing_matched(source):
    retriever = make_retriever(source)
    knowledge = asyncio.run(retriever.fetch_knowledge(HOTEL, None, "Is there a minibar in the room?"))
    assert knowledge.matched == []
    assert 0 < len(knowledge.fallback) <= 3
    assert "recDeluxe" in [r.id for r in knowledge.fallback]


def test_fetch_by_ids_drops_failures_and_dedupes(tables):
    source = FakeSource(tables, broken_ids={"recBreakfast"})
    retriever = make_retriever(source)
    ids = ["recParking", "recParking", "recBreakfast", "recNope", "", "recGarage"]
    records = asyncio.run(retriever.fetch_by_ids("service", ids))
    assert [r.id for r in records] == ["recParking", "recGarage"]
    assert source.get_calls["Services"] == 4


def test_fetch_by_ids_respects_limit(source):
    retriever = make_retriever(source)
    records = asyncio.run(retriever.fetch_by_ids("service", ["recParking", "recGarage"], limit=1))
    assert [r.id for r in records] == ["recParking"]


def test_source_outage_propagates(tables):
    retriever = make_retriever(FakeSource(tables, fail=True))
    with pytest.raises(KnowledgeSourceError):
        asyncio.run(retriever.fetch_knowledge(HOTEL, None, "anything"))


def test_score_records_drops_zero_scores_and_keeps_order():
    rooms = [
        RoomRecord(id="a", name="Garden Room", view="Garden"),
        RoomRecord(id="b", name="Sea Room", view="Sea view"),
        RoomRecord(id="c", name="Attic"),
    ]
    assert [r.id for r in score_records("sea view room", rooms)] == ["b", "a"]
    assert score_records("", rooms) == []
