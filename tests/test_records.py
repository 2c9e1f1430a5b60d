from olly.knowledge.records import (
    HotelRecord,
    IntentPattern,
    OutputRule,
    RoomRecord,
    ServiceRecord,
    as_bool,
    as_list,
    is_web_visible,
)


def test_hotel_aliases_resolve_to_fixed_schema():
    hotel = HotelRecord.from_row({
        "id": "rec1",
        "fields": {"Hotel Slug": "olly", "Naziv": "Hotel Olly", "checkIn": "14:00",
                   "Odjava": "11:00", "Aktivno": "da"},
    })
    assert hotel.slug == "olly"
    assert hotel.name == "Hotel Olly"
    assert hotel.check_in == "14:00"
    assert hotel.check_out == "11:00"
    assert hotel.active is True


def test_core_fields_omit_empty_values():
    hotel = HotelRecord(id="rec1", slug="olly", name="Olly", phone="+385 1", active=True)
    assert hotel.core_fields() == {"name": "Olly", "phone": "+385 1"}


def test_as_list_flattens_mixed_shapes():
    assert as_list("a, b\nc") == ["a", "b", "c"]
    assert as_list([["a"], {"name": "b"}, None, "c, d"]) == ["a", "b", "c", "d"]
    assert as_list(None) == []


def test_as_bool():
    assert as_bool(True)
    assert as_bool("Yes")
    assert as_bool(1)
    assert not as_bool(None)
    assert not as_bool("no")


def test_web_visibility():
    assert is_web_visible(())
    assert is_web_visible(("whatsapp", "web"))
    assert not is_web_visible(("whatsapp",))


def test_room_record_numbers_and_lists():
    room = RoomRecord.from_row({
        "id": "recR",
        "fields": {"Unit": "Deluxe Room", "Area": "24,5 m2", "Max Guests": "3",
                   "Beds": "King bed, Sofa bed", "Channels": ["Web"], "Hotel": ["olly"]},
    })
    assert room.area == 24.5
    assert room.capacity == 3.0
    assert room.beds == ("King bed", "Sofa bed")
    assert room.channels == ("web",)
    assert room.active is False
    assert room.to_context()["capacity"] == "3"


def test_service_context_drops_empty_fields():
    service = ServiceRecord.from_row({"id": "s", "fields": {"Name": "Spa", "Hours": "9-21"}})
    assert service.to_context() == {"type": "service", "name": "Spa", "hours": "9-21"}


def test_intent_and_rule_defaults():
    pattern = IntentPattern.from_row({"id": "i", "fields": {"Intent": "wifi", "Rooms": "recA, recB"}})
    assert pattern.output_scope == "General"
    assert pattern.room_ids == ("recA", "recB")

    rule = OutputRule.from_row({"id": "o", "fields": {"Priority": "3"}})
    assert rule.scope == "General"
    assert rule.priority == 3.0
