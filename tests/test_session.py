"""Tests for the LLM request stores."""

from __future__ import annotations

import pytest

from quran_agent.session.store import MemoryRequestStore, SqlRequestStore


@pytest.fixture(params=["sql", "memory"])
async def store(request, tmp_path):
    if request.param == "sql":
        s = SqlRequestStore(url=f"sqlite+aiosqlite:///{tmp_path / 'requests.db'}", create_schema=True)
    else:
        s = MemoryRequestStore()
    await s.init()
    yield s
    await s.close()


class TestRequestStore:
    async def test_create_and_get(self, store):
        req = await store.create("ما هي آية الكرسي؟", "openai/gpt-4o", chat_id=7)
        assert req.id >= 1

        loaded = await store.get(req.id)
        assert loaded.prompt == "ما هي آية الكرسي؟"
        assert loaded.model == "openai/gpt-4o"
        assert loaded.chat_id == 7
        assert loaded.response is None

    async def test_ids_are_distinct(self, store):
        a = await store.create("a", "m")
        b = await store.create("b", "m")
        assert a.id != b.id

    async def test_exists(self, store):
        req = await store.create("p", "m")
        assert await store.exists(req.id)
        assert not await store.exists(req.id + 1000)

    async def test_save_response(self, store):
        req = await store.create("p", "m")
        assert await store.save_response(req.id, "الجواب الكامل")
        assert (await store.get(req.id)).response == "الجواب الكامل"

    async def test_save_response_unknown_request(self, store):
        assert await store.save_response(999, "x") is False

    async def test_to_dict(self, store):
        req = await store.create("p", "m")
        assert req.to_dict() == {
            "id": req.id, "chat_id": None, "prompt": "p", "response": None, "model": "m",
        }


def test_sql_store_requires_engine_or_url():
    with pytest.raises(ValueError):
        SqlRequestStore()
