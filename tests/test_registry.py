"""Tests for ToolRegistry."""

import pytest

from quran_agent.errors import UnknownTool
from quran_agent.tools.registry import ToolRegistry
from tests.mock_tools import CountingTool, CrashingTool, EchoTool


class TestToolRegistry:
    """Test suite for ToolRegistry."""

    def test_register_and_get(self):
        reg = ToolRegistry()
        tool = EchoTool()
        reg.register(tool)
        assert reg.get("echo") is tool

    def test_get_returns_none_for_unknown(self):
        reg = ToolRegistry()
        assert reg.get("nonexistent") is None

    def test_require_returns_tool(self):
        reg = ToolRegistry()
        tool = EchoTool()
        reg.register(tool)
        assert reg.require("echo") is tool

    def test_require_raises_unknown_tool(self):
        reg = ToolRegistry()
        with pytest.raises(UnknownTool, match="Unknown tool: nonexistent") as exc_info:
            reg.require("nonexistent")
        assert exc_info.value.tool_name == "nonexistent"
        assert exc_info.value.code == "unknown_tool"

    def test_duplicate_registration_raises_valueerror(self):
        reg = ToolRegistry()
        reg.register(EchoTool())
        with pytest.raises(ValueError, match="already registered"):
            reg.register(EchoTool())

    def test_duplicate_registration_with_overwrite(self):
        reg = ToolRegistry()
        reg.register(EchoTool())
        replacement = EchoTool()
        reg.register(replacement, overwrite=True)
        assert reg.get("echo") is replacement
        assert len(reg) == 1

    def test_list_is_sorted_by_name(self):
        reg = ToolRegistry()
        reg.register(EchoTool())
        reg.register(CrashingTool())
        reg.register(CountingTool(name="alpha"))
        assert reg.names() == ["alpha", "crash", "echo"]

    def test_contains(self):
        reg = ToolRegistry()
        reg.register(EchoTool())
        assert "echo" in reg
        assert "other" not in reg

    def test_to_openai_schema(self):
        reg = ToolRegistry()
        reg.register(EchoTool())
        schemas = reg.to_openai_schema()
        assert len(schemas) == 1
        schema = schemas[0]
        assert schema["type"] == "function"
        assert schema["function"]["name"] == "echo"
        assert schema["function"]["description"] == "Echo the input text."
        params = schema["function"]["parameters"]
        assert params["required"] == ["text"]
        assert params["additionalProperties"] is False

    def test_describe_normalizes_schema(self):
        tool = CountingTool()
        described = tool.describe()
        assert described["parameters"]["type"] == "object"
        assert described["parameters"]["additionalProperties"] is False
