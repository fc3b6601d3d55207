"""Tests for the layered configuration loader."""

from __future__ import annotations

import os

import pytest

from quran_agent.config import DEFAULT_OUTPUT_TOKEN_LIMITS, AgentSettings, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("DATABASE_URL", "NEXT_PUBLIC_APP_URL"):
        monkeypatch.delenv(var, raising=False)
    for var in list(os.environ):
        if var.startswith("QURAN_AGENT_"):
            monkeypatch.delenv(var, raising=False)


class TestDefaults:
    def test_defaults(self):
        cfg = load_config()
        assert isinstance(cfg, AgentSettings)
        assert cfg.llm.model == "openai/gpt-4o-mini"
        assert cfg.llm.api_key_env == "OPENROUTER_API_KEY"
        assert cfg.agent.max_iterations == 5
        assert cfg.agent.max_tool_results == 10
        assert cfg.llm.output_token_limits == DEFAULT_OUTPUT_TOKEN_LIMITS

    def test_to_dict_hides_overrides(self):
        d = load_config().to_dict()
        assert "_overrides" not in d
        assert d["server"]["port"] == 8000


class TestFile:
    def test_yaml_file(self, tmp_path):
        path = tmp_path / "quran_agent.yaml"
        path.write_text(
            "llm:\n  model: anthropic/claude-3-haiku\n  temperature: 0.2\n"
            "agent:\n  max_iterations: 3\n  unknown_key: ignored\n",
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.llm.model == "anthropic/claude-3-haiku"
        assert cfg.llm.temperature == 0.2
        assert cfg.agent.max_iterations == 3

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_config(tmp_path / "nope.yaml").agent.max_iterations == 5

    def test_file_limits_extend_builtin_table(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("llm:\n  output_token_limits:\n    my-model: 1234\n", encoding="utf-8")
        limits = load_config(path).llm.output_token_limits
        assert limits["my-model"] == 1234
        assert limits["gpt-4o"] == 16_384

    def test_profile_overlay(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text(
            "agent:\n  max_iterations: 5\n"
            "profiles:\n  quick:\n    agent:\n      max_iterations: 2\n",
            encoding="utf-8",
        )
        assert load_config(path, profile="quick").agent.max_iterations == 2
        assert load_config(path).agent.max_iterations == 5


class TestEnv:
    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "c.yaml"
        path.write_text("agent:\n  max_iterations: 3\n", encoding="utf-8")
        monkeypatch.setenv("QURAN_AGENT_AGENT_MAX_ITERATIONS", "7")
        monkeypatch.setenv("QURAN_AGENT_AGENT_PARALLEL_TOOLS", "true")
        monkeypatch.setenv("QURAN_AGENT_SERVER_CORS_ORIGINS", "https://a.example, https://b.example")
        cfg = load_config(path)
        assert cfg.agent.max_iterations == 7
        assert cfg.agent.parallel_tools is True
        assert cfg.server.cors_origins == ["https://a.example", "https://b.example"]

    def test_env_limits_merge(self, monkeypatch):
        monkeypatch.setenv("QURAN_AGENT_LLM_OUTPUT_LIMITS", "gpt-4o=1000, new-model=2000")
        limits = load_config().llm.output_token_limits
        assert limits["gpt-4o"] == 1000
        assert limits["new-model"] == 2000
        assert limits["claude-2"] == 4_096

    def test_compat_vars_lose_to_prefixed(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://db/compat")
        monkeypatch.setenv("NEXT_PUBLIC_APP_URL", "https://quran.example")
        cfg = load_config()
        assert cfg.database.url == "postgresql+asyncpg://db/compat"
        assert cfg.llm.app_url == "https://quran.example"

        monkeypatch.setenv("QURAN_AGENT_DATABASE_URL", "postgresql+asyncpg://db/primary")
        assert load_config().database.url == "postgresql+asyncpg://db/primary"


class TestOverrides:
    def test_cli_overrides_win(self, monkeypatch):
        monkeypatch.setenv("QURAN_AGENT_LLM_MODEL", "from-env")
        cfg = load_config(cli_overrides={"llm.model": "from-cli"})
        assert cfg.llm.model == "from-cli"

    def test_session_override(self):
        cfg = load_config()
        cfg.set_override("agent.max_iterations", 9)
        assert cfg.agent.max_iterations == 9
        assert cfg.get_override("agent.max_iterations") == 9
        assert cfg.get_override("llm.model") is None
