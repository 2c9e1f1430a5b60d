"""Pytest configuration and in-memory fakes for the answer pipeline."""

import os
import sys
from collections import Counter
from pathlib import Path

import pytest

# Ensure project root is on PYTHONPATH
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Never pick up a developer's real keys or backend from the environment
os.environ["GEMINI_API_KEY"] = "test-key"
os.environ["KNOWLEDGE_BACKEND"] = "airtable"

from olly.errors import KnowledgeSourceError  # noqa: E402
from olly.knowledge.records import as_list  # noqa: E402

HOTEL = "hotel-olly-split"


class FakeSource:
    """Dict-backed knowledge source that counts every upstream read."""

    def __init__(self, tables, fail=False, broken_ids=()):
        self.tables = tables
        self.fail = fail
        self.broken_ids = set(broken_ids)
        self.list_calls = Counter()
        self.get_calls = Counter()
        self.last_equals = {}

    @property
    def total_calls(self):
        return sum(self.list_calls.values()) + sum(self.get_calls.values())

    async def list_records(self, table, equals=None):
        self.list_calls[table] += 1
        self.last_equals[table] = equals
        if self.fail:
            raise KnowledgeSourceError("knowledge source offline")
        rows = list(self.tables.get(table, []))
        if equals:
            field_name, value = equals
            rows = [r for r in rows if value in as_list(r["fields"].get(field_name))]
        return rows

    async def get_record(self, table, record_id):
        self.get_calls[table] += 1
        if self.fail or record_id in self.broken_ids:
            raise KnowledgeSourceError(f"lookup failed for {record_id}")
        for row in self.tables.get(table, []):
            if row["id"] == record_id:
                return row
        return None


class FakeLLM:
    """Language model stand-in with canned responses and call counters."""

    def __init__(self, text="", json_data=None, text_error=None, json_error=None):
        self.text = text
        self.json_data = json_data if json_data is not None else {}
        self.text_error = text_error
        self.json_error = json_error
        self.text_calls = 0
        self.json_calls = 0
        self.prompts = []

    @property
    def total_calls(self):
        return self.text_calls + self.json_calls

    async def generate_text(self, system_prompt, user_message, max_tokens=None):
        self.text_calls += 1
        self.prompts.append((system_prompt, user_message))
        if self.text_error:
            raise self.text_error
        return self.text

    async def generate_json(self, system_prompt, user_message, max_tokens=None):
        self.json_calls += 1
        self.prompts.append((system_prompt, user_message))
        if self.json_error:
            raise self.json_error
        return dict(self.json_data)


def hotel_row(**overrides):
    fields = {
        "Slug": HOTEL,
        "Name": "Hotel Olly Split",
        "Address": "Ulica kralja Zvonimira 14, Split",
        "Phone": "+385 21 555 010",
        "Email": "reception@hotel-olly.hr",
        "checkIn": "14:00",
        "checkOut": "11:00",
        "Active": True,
    }
    fields.update(overrides)
    return {"id": "recHotel", "fields": fields}


def room_row(record_id, name, slug, floor, view, **overrides):
    fields = {
        "Name": name,
        "Room Type": "Double",
        "Slug": slug,
        "Capacity": 2,
        "Floor": floor,
        "Size": 24,
        "View": view,
        "Bed Types": ["King bed"],
        "Amenities": ["Air conditioning", "Safe"],
        "Channels": ["web"],
        "Hotel Slug": [HOTEL],
        "Active": True,
    }
    fields.update(overrides)
    return {"id": record_id, "fields": fields}


def service_row(record_id, name, description, intents, **overrides):
    fields = {
        "Name": name,
        "Description": description,
        "Intents": intents,
        "Hotel Slug": HOTEL,
        "Active": True,
    }
    fields.update(overrides)
    return {"id": record_id, "fields": fields}


def intent_row(record_id, intent, phrases, **overrides):
    fields = {"Intent": intent, "Example Phrases": phrases, "Active": True}
    fields.update(overrides)
    return {"id": record_id, "fields": fields}


@pytest.fixture
def tables():
    return {
        "Hotels": [hotel_row()],
        "Rooms": [
            room_row("recDeluxe", "Deluxe Room", "deluxe", "4", "Sea view",
                     Amenities=["Air conditioning", "Safe", "Minibar"]),
            room_row("recSuperior", "Superior Room", "superior", "2", "City view"),
        ],
        "Services": [
            service_row("recBreakfast", "Breakfast", "Buffet breakfast in the lobby restaurant.",
                        ["breakfast"], Hours="07:00 - 10:30"),
            service_row("recParking", "Parking", "Public garage 200 m away.", ["parking"]),
            service_row("recGarage", "Garage shuttle", "Valet drop-off at the garage.", []),
        ],
        "Intents": [
            intent_row("recIntBreakfast", "breakfast",
                       "What time is breakfast? Is breakfast included?",
                       **{"Output Scope": "Services"}),
            intent_row("recIntParking", "parking",
                       "Do you have parking? Where can I park?",
                       Services=["recGarage"]),
            intent_row("recIntWifi", "wifi", "Is there wifi? What is the internet password?"),
        ],
        "Output Rules": [
            {"id": "recRuleGeneral", "fields": {"Scope": "General", "Style": "Warm.",
                                                "Priority": 1, "Active": True}},
            {"id": "recRuleServices", "fields": {"Scope": "Services", "Style": "Brief.",
                                                 "Formatting": "Lead with the service name.",
                                                 "Priority": 5, "Active": True}},
        ],
    }


@pytest.fixture
def source(tables):
    return FakeSource(tables)
