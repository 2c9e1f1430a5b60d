import asyncio

import httpx
import pytest

from olly.errors import KnowledgeSourceError
from olly.knowledge.sources import AirtableSource, equality_formula

API_URL = "https://api.airtable.test/v0"


def make_source(handler):
    return AirtableSource(
        base_id="appOlly",
        api_key="patSecret",
        api_url=API_URL,
        timeout=2,
        transport=httpx.MockTransport(handler),
    )


def run(source, coro_fn):
    async def main():
        try:
            return await coro_fn(source)
        finally:
            await source.aclose()

    return asyncio.run(main())


def test_equality_formula_escapes_quotes():
    assert equality_formula("Slug", "hotel-olly") == "{Slug} = 'hotel-olly'"
    assert equality_formula("Name", "O'Reilly") == "{Name} = 'O\\'Reilly'"


def test_list_records_follows_offset_pages():
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.params.get("offset") == "itr2":
            return httpx.Response(200, json={"records": [{"id": "rec3", "fields": {"Name": "C"}}]})
        return httpx.Response(200, json={
            "records": [{"id": "rec1", "fields": {"Name": "A"}}, {"id": "rec2"}],
            "offset": "itr2",
        })

    rows = run(make_source(handler), lambda s: s.list_records("Hotels", equals=("Slug", "olly")))

    assert rows == [
        {"id": "rec1", "fields": {"Name": "A"}},
        {"id": "rec2", "fields": {}},
        {"id": "rec3", "fields": {"Name": "C"}},
    ]
    assert len(seen) == 2
    first = seen[0]
    assert first.url.path == "/v0/appOlly/Hotels"
    assert first.url.params["pageSize"] == "100"
    assert first.url.params["filterByFormula"] == "{Slug} = 'olly'"
    assert first.headers["authorization"] == "Bearer patSecret"


def test_get_record_returns_none_on_404():
    def handler(request):
        return httpx.Response(404, json={"error": "NOT_FOUND"})

    assert run(make_source(handler), lambda s: s.get_record("Rooms", "recGone")) is None


def test_unknown_table_raises_knowledge_source_error():
    def handler(request):
        return httpx.Response(404, json={"error": "TABLE_NOT_FOUND"})

    with pytest.raises(KnowledgeSourceError, match="404"):
        run(make_source(handler), lambda s: s.list_records("Nope"))


def test_get_record_returns_row():
    def handler(request):
        assert request.url.path == "/v0/appOlly/Output Rules/recRule"
        return httpx.Response(200, json={"id": "recRule", "fields": {"Scope": "General"}})

    row = run(make_source(handler), lambda s: s.get_record("Output Rules", "recRule"))
    assert row == {"id": "recRule", "fields": {"Scope": "General"}}


def test_server_error_raises_knowledge_source_error():
    def handler(request):
        return httpx.Response(503, text="upstream down")

    with pytest.raises(KnowledgeSourceError):
        run(make_source(handler), lambda s: s.list_records("Rooms"))


def test_transport_error_raises_knowledge_source_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(KnowledgeSourceError):
        run(make_source(handler), lambda s: s.get_record("Rooms", "rec1"))
