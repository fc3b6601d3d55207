"""
Typed configuration model with precedence-based loader.

Precedence (lowest to highest):
    defaults < config file (YAML) < env vars < CLI flags < per-session overrides
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any

import yaml


# Max completion length per model family, matched by substring of the model id.
DEFAULT_OUTPUT_TOKEN_LIMITS: dict[str, int] = {
    # OpenAI
    "gpt-4o": 16_384,
    "gpt-4o-mini": 16_384,
    "gpt-4-turbo": 4_096,
    "gpt-4": 8_192,
    "gpt-3.5-turbo": 4_096,
    # Anthropic
    "claude-3.5-sonnet": 8_192,
    "claude-3-opus": 4_096,
    "claude-3-sonnet": 4_096,
    "claude-3-haiku": 4_096,
    "claude-2": 4_096,
    # Google
    "gemini-pro": 8_192,
    "gemini-1.5-pro": 8_192,
    "gemini-1.5-flash": 8_192,
    # Meta
    "llama-3.1-405b": 4_096,
    "llama-3.1-70b": 4_096,
    "llama-3.1-8b": 4_096,
    "llama-3-70b": 4_096,
    "llama-3-8b": 4_096,
    # Mistral
    "mistral-large": 4_096,
    "mistral-medium": 4_096,
    "mistral-small": 4_096,
    "mixtral-8x7b": 4_096,
    "mixtral-8x22b": 4_096,
    # Cohere
    "command-r-plus": 4_096,
    "command-r": 4_096,
}


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LLMConfig:
    name: str = "openrouter"
    model: str = "openai/gpt-4o-mini"
    api_base: str = "https://openrouter.ai/api/v1"
    api_key_env: str = "OPENROUTER_API_KEY"
    app_url: str = "http://localhost:3000"
    app_title: str = "Quran Arabic Tech"
    temperature: float = 0.7
    timeout_seconds: int = 120
    max_retries: int = 0
    max_output_tokens: int = 4_096
    output_token_limits: dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_OUTPUT_TOKEN_LIMITS)
    )


@dataclass
class EmbeddingsConfig:
    api_base: str = "https://api.openai.com/v1"
    api_key_env: str = "OPENAI_API_KEY"
    model: str = "text-embedding-3-large"
    dimensions: int = 3_072
    timeout_seconds: int = 30


@dataclass
class DatabaseConfig:
    url: str = "postgresql+asyncpg://localhost/quran"
    pool_size: int = 5
    echo: bool = False


@dataclass
class AgentConfig:
    max_iterations: int = 5
    max_tool_results: int = 10
    tool_timeout_seconds: float = 30.0
    parallel_tools: bool = False
    max_prompt_tokens: int = 0
    default_text_type_id: int = 1


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class LoggingConfig:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

@dataclass
class AgentSettings:
    llm: LLMConfig = field(default_factory=LLMConfig)
    embeddings: EmbeddingsConfig = field(default_factory=EmbeddingsConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)

    # ----- per-session overrides (applied last) ----
    _overrides: dict[str, Any] = field(default_factory=dict, repr=False)

    def set_override(self, dotpath: str, value: Any) -> None:
        """Set a per-session override using dot notation (e.g. 'llm.model')."""
        self._overrides[dotpath] = value
        _apply_dotpath(self, dotpath, value)

    def get_override(self, dotpath: str) -> Any | None:
        return self._overrides.get(dotpath)

    def to_dict(self) -> dict:
        d = asdict(self)
        d.pop("_overrides", None)
        return d


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _apply_dotpath(obj: Any, dotpath: str, value: Any) -> None:
    parts = dotpath.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _deep_merge(base: dict, overlay: dict) -> dict:
    merged = dict(base)
    for k, v in overlay.items():
        if k in merged and isinstance(merged[k], dict) and isinstance(v, dict):
            merged[k] = _deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def _coerce(value: str, target_type: type) -> Any:
    """Coerce a string env value to the target type."""
    if target_type is bool:
        return value.lower() in ("1", "true", "yes", "on")
    if target_type is int:
        return int(value)
    if target_type is float:
        return float(value)
    if target_type is list:
        return [s.strip() for s in value.split(",") if s.strip()]
    if target_type is dict:
        # "gpt-4o=16384,claude-2=4096"
        out: dict[str, int] = {}
        for item in value.split(","):
            key, sep, num = item.partition("=")
            if sep and key.strip():
                out[key.strip()] = int(num)
        return out
    return value


def _build_section(cls: type, raw: dict) -> Any:
    """Build a dataclass section from a raw dict, ignoring unknown keys."""
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in raw.items() if k in valid_fields}
    return cls(**filtered)


# ---------------------------------------------------------------------------
# ENV var mapping
# ---------------------------------------------------------------------------

_ENV_MAP: dict[str, tuple[str, type]] = {
    "QURAN_AGENT_LLM_MODEL":             ("llm.model", str),
    "QURAN_AGENT_LLM_API_BASE":          ("llm.api_base", str),
    "QURAN_AGENT_LLM_API_KEY_ENV":       ("llm.api_key_env", str),
    "QURAN_AGENT_LLM_APP_URL":           ("llm.app_url", str),
    "QURAN_AGENT_LLM_TEMPERATURE":       ("llm.temperature", float),
    "QURAN_AGENT_LLM_TIMEOUT":           ("llm.timeout_seconds", int),
    "QURAN_AGENT_LLM_MAX_RETRIES":       ("llm.max_retries", int),
    "QURAN_AGENT_LLM_MAX_OUTPUT":        ("llm.max_output_tokens", int),
    "QURAN_AGENT_LLM_OUTPUT_LIMITS":     ("llm.output_token_limits", dict),
    "QURAN_AGENT_EMBEDDINGS_API_BASE":   ("embeddings.api_base", str),
    "QURAN_AGENT_EMBEDDINGS_MODEL":      ("embeddings.model", str),
    "QURAN_AGENT_EMBEDDINGS_DIMENSIONS": ("embeddings.dimensions", int),
    "QURAN_AGENT_DATABASE_URL":          ("database.url", str),
    "QURAN_AGENT_DATABASE_POOL_SIZE":    ("database.pool_size", int),
    "QURAN_AGENT_AGENT_MAX_ITERATIONS":  ("agent.max_iterations", int),
    "QURAN_AGENT_AGENT_MAX_RESULTS":     ("agent.max_tool_results", int),
    "QURAN_AGENT_AGENT_TOOL_TIMEOUT":    ("agent.tool_timeout_seconds", float),
    "QURAN_AGENT_AGENT_PARALLEL_TOOLS":  ("agent.parallel_tools", bool),
    "QURAN_AGENT_AGENT_MAX_PROMPT":      ("agent.max_prompt_tokens", int),
    "QURAN_AGENT_SERVER_HOST":           ("server.host", str),
    "QURAN_AGENT_SERVER_PORT":           ("server.port", int),
    "QURAN_AGENT_SERVER_CORS_ORIGINS":   ("server.cors_origins", list),
    "QURAN_AGENT_LOGGING_LEVEL":         ("logging.level", str),
}

# Variables shared with the web frontend deployment.
_COMPAT_ENV_MAP: dict[str, tuple[str, type]] = {
    "NEXT_PUBLIC_APP_URL": ("llm.app_url", str),
    "DATABASE_URL":        ("database.url", str),
}


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AgentSettings:
    """
    Build AgentSettings by layering sources in precedence order:

        defaults  <  config file  <  env vars  <  CLI flags  <  per-session overrides

    Parameters
    ----------
    config_path : path to YAML config file (optional)
    profile : name of a profile to apply from the config file
    cli_overrides : dict of dotpath -> value CLI flag overrides
    """
    raw: dict[str, Any] = {}

    # --- 1. Config file ---
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.is_file():
            with p.open("r", encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
            raw = _deep_merge(raw, file_data)

    # --- 2. Profile overlay ---
    if profile:
        profile_data = raw.get("profiles", {}).get(profile, {})
        if profile_data:
            raw = _deep_merge(raw, profile_data)

    llm_raw = dict(raw.get("llm", {}))
    if "output_token_limits" in llm_raw:
        # A file table extends the built-in one rather than replacing it.
        llm_raw["output_token_limits"] = {
            **DEFAULT_OUTPUT_TOKEN_LIMITS,
            **(llm_raw["output_token_limits"] or {}),
        }

    cfg = AgentSettings(
        llm=_build_section(LLMConfig, llm_raw),
        embeddings=_build_section(EmbeddingsConfig, raw.get("embeddings", {})),
        database=_build_section(DatabaseConfig, raw.get("database", {})),
        agent=_build_section(AgentConfig, raw.get("agent", {})),
        server=_build_section(ServerConfig, raw.get("server", {})),
        logging=_build_section(LoggingConfig, raw.get("logging", {})),
        profiles=raw.get("profiles", {}),
    )

    # --- 3. Env var overrides ---
    for env_map in (_COMPAT_ENV_MAP, _ENV_MAP):
        for env_var, (dotpath, target_type) in env_map.items():
            val = os.environ.get(env_var)
            if val is None:
                continue
            if target_type is dict:
                merged = dict(cfg.llm.output_token_limits)
                merged.update(_coerce(val, dict))
                _apply_dotpath(cfg, dotpath, merged)
            else:
                _apply_dotpath(cfg, dotpath, _coerce(val, target_type))

    # --- 4. CLI flag overrides ---
    if cli_overrides:
        for dotpath, value in cli_overrides.items():
            _apply_dotpath(cfg, dotpath, value)

    return cfg
