"""Tests for ToolExecutor: decoding, validation, timeouts and error mapping."""

from __future__ import annotations

import pytest

from quran_agent.backends.memory import MemoryQuranBackend
from quran_agent.errors import EmbeddingError, InvalidArguments, ToolBackendError, UnknownTool
from quran_agent.llm.embeddings import HashingEmbedder
from quran_agent.tools.executor import ToolExecutor
from quran_agent.tools.quran import build_quran_tools
from quran_agent.tools.registry import ToolRegistry
from tests.mock_tools import CrashingTool, EchoTool, FailingBackend, SlowTool


class BrokenEmbedder:
    async def embed(self, text):
        raise EmbeddingError("embedding API error: HTTP 500", status_code=500)


@pytest.fixture
def registry():
    reg = ToolRegistry()
    reg.register(EchoTool())
    reg.register(CrashingTool())
    reg.register(SlowTool(delay=5.0))
    return reg


@pytest.fixture
def executor(registry):
    return ToolExecutor(registry, timeout=0.2)


class TestExecute:
    async def test_dict_arguments(self, executor):
        assert await executor.execute("echo", {"text": "hi"}) == [{"text": "hi"}]

    async def test_json_string_arguments(self, executor):
        result = await executor.execute("echo", '{"text": "مرحبا", "repeat": 2}')
        assert result == [{"text": "مرحبا"}, {"text": "مرحبا"}]

    async def test_null_optionals_are_dropped(self, executor):
        assert await executor.execute("echo", {"text": "hi", "repeat": None}) == [{"text": "hi"}]

    async def test_empty_arguments_for_parameterless_tool(self, executor):
        with pytest.raises(ToolBackendError):
            await executor.execute("crash", "")

    async def test_unknown_tool(self, executor):
        with pytest.raises(UnknownTool):
            await executor.execute("missing", {})

    async def test_malformed_json(self, executor):
        with pytest.raises(InvalidArguments, match="not valid JSON"):
            await executor.execute("echo", '{"text": ')

    async def test_non_object_json(self, executor):
        with pytest.raises(InvalidArguments, match="JSON object"):
            await executor.execute("echo", "[1, 2]")

    async def test_schema_violation(self, executor):
        with pytest.raises(InvalidArguments, match="Invalid arguments for echo"):
            await executor.execute("echo", {"repeat": 2})

    async def test_timeout(self, executor):
        with pytest.raises(ToolBackendError, match="timed out") as exc_info:
            await executor.execute("slow", {})
        assert exc_info.value.code == "timeout"

    async def test_unexpected_exception_wrapped(self, executor):
        with pytest.raises(ToolBackendError, match="RuntimeError: boom") as exc_info:
            await executor.execute("crash", {})
        assert exc_info.value.code == "backend_error"
        assert isinstance(exc_info.value.cause, RuntimeError)


class TestBackendFailures:
    @pytest.fixture
    def quran_executor(self):
        reg = ToolRegistry()
        for tool in build_quran_tools(FailingBackend(), BrokenEmbedder()).values():
            reg.register(tool)
        return ToolExecutor(reg)

    async def test_backend_error_mapped(self, quran_executor):
        with pytest.raises(ToolBackendError, match="connection refused"):
            await quran_executor.execute("get_ayah_by_reference", {"ayah_key": "2:255"})

    async def test_embedding_error_mapped(self, quran_executor):
        with pytest.raises(ToolBackendError, match="HTTP 500"):
            await quran_executor.execute("search_quran_by_meaning", {"query": "الصبر"})

    async def test_out_of_range_surah_is_invalid(self, quran_executor):
        with pytest.raises(InvalidArguments):
            await quran_executor.execute("get_surah_info", {"surah_number": 200})


class TestBlankSearchQueries:
    @pytest.fixture
    def quran_executor(self):
        reg = ToolRegistry()
        for tool in build_quran_tools(MemoryQuranBackend(), HashingEmbedder()).values():
            reg.register(tool)
        return ToolExecutor(reg)

    @pytest.mark.parametrize("name", ["search_quran_by_keywords", "search_tafsir"])
    async def test_whitespace_query_fails_schema(self, quran_executor, name):
        with pytest.raises(InvalidArguments, match="query"):
            await quran_executor.execute(name, {"query": " "})

    @pytest.mark.parametrize("name", ["search_quran_by_keywords", "search_tafsir"])
    async def test_diacritics_only_query_is_invalid(self, quran_executor, name):
        with pytest.raises(InvalidArguments, match="no searchable text"):
            await quran_executor.execute(name, {"query": "\u064b"})


class TestCatalogue:
    def test_list_tools(self):
        reg = ToolRegistry()
        for tool in build_quran_tools(FailingBackend(), HashingEmbedder()).values():
            reg.register(tool)
        listed = ToolExecutor(reg).list_tools()
        assert len(listed) == 7
        assert {"name", "description", "parameters"} <= set(listed[0])
