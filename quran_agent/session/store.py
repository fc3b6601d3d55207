"""
Persistence for LLM requests (prompt in, final answer out).

``SqlRequestStore`` uses SQLAlchemy Core over an async engine, so the same
code serves PostgreSQL (``postgresql+asyncpg``) in production and SQLite
(``sqlite+aiosqlite``) locally and in tests.  ``MemoryRequestStore`` keeps
everything in a dict.
"""

from __future__ import annotations

import asyncio
import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    insert,
    select,
    update,
)
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

metadata = MetaData()

llm_requests = Table(
    "llm_requests",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("chat_id", Integer, nullable=True),
    Column("prompt", Text, nullable=False),
    Column("response", Text, nullable=True),
    Column("model", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LLMRequest:
    id: int
    prompt: str
    model: str
    response: str | None = None
    chat_id: int | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chat_id": self.chat_id,
            "prompt": self.prompt,
            "response": self.response,
            "model": self.model,
        }


class RequestStore(ABC):
    @abstractmethod
    async def init(self) -> None: ...

    @abstractmethod
    async def create(self, prompt: str, model: str, chat_id: int | None = None) -> LLMRequest: ...

    @abstractmethod
    async def get(self, request_id: int) -> LLMRequest | None: ...

    async def exists(self, request_id: int) -> bool:
        return await self.get(request_id) is not None

    @abstractmethod
    async def save_response(self, request_id: int, response: str) -> bool:
        """Store the final answer; returns False if the request is unknown."""
        ...

    async def close(self) -> None:
        return None


class SqlRequestStore(RequestStore):
    """
    Usage::

        store = SqlRequestStore(url="sqlite+aiosqlite:///:memory:", create_schema=True)
        await store.init()
        req = await store.create("ما هي آية الكرسي؟", "openai/gpt-4o")
        await store.save_response(req.id, "...")
        await store.close()
    """

    def __init__(
        self,
        engine: AsyncEngine | None = None,
        *,
        url: str | None = None,
        create_schema: bool = False,
    ) -> None:
        if engine is None:
            if not url:
                raise ValueError("SqlRequestStore needs an engine or a url")
            engine = create_async_engine(url)
            self._owns_engine = True
        else:
            self._owns_engine = False
        self._engine = engine
        self._create_schema = create_schema

    async def init(self) -> None:
        if self._create_schema:
            async with self._engine.begin() as conn:
                await conn.run_sync(metadata.create_all)

    async def close(self) -> None:
        if self._owns_engine:
            await self._engine.dispose()

    async def create(self, prompt: str, model: str, chat_id: int | None = None) -> LLMRequest:
        now = _utcnow()
        async with self._engine.begin() as conn:
            result = await conn.execute(
                insert(llm_requests)
                .values(chat_id=chat_id, prompt=prompt, model=model, created_at=now, updated_at=now)
                .returning(llm_requests.c.id)
            )
            request_id = result.scalar_one()
        return LLMRequest(id=request_id, prompt=prompt, model=model, chat_id=chat_id)

    async def get(self, request_id: int) -> LLMRequest | None:
        async with self._engine.connect() as conn:
            result = await conn.execute(
                select(llm_requests).where(llm_requests.c.id == request_id)
            )
            row = result.mappings().first()
        if row is None:
            return None
        return LLMRequest(
            id=row["id"],
            prompt=row["prompt"],
            model=row["model"],
            response=row["response"],
            chat_id=row["chat_id"],
        )

    async def save_response(self, request_id: int, response: str) -> bool:
        async with self._engine.begin() as conn:
            result = await conn.execute(
                update(llm_requests)
                .where(llm_requests.c.id == request_id)
                .values(response=response, updated_at=_utcnow())
            )
        return result.rowcount > 0


class MemoryRequestStore(RequestStore):
    def __init__(self) -> None:
        self._requests: dict[int, LLMRequest] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def init(self) -> None:
        return None

    async def create(self, prompt: str, model: str, chat_id: int | None = None) -> LLMRequest:
        async with self._lock:
            req = LLMRequest(id=next(self._ids), prompt=prompt, model=model, chat_id=chat_id)
            self._requests[req.id] = req
        return req

    async def get(self, request_id: int) -> LLMRequest | None:
        return self._requests.get(request_id)

    async def save_response(self, request_id: int, response: str) -> bool:
        req = self._requests.get(request_id)
        if req is None:
            return False
        req.response = response
        return True
