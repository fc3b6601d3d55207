"""
Main CLI application for the Quran research agent.

Usage:
    quran-agent ask QUESTION [--model ID] [--demo]
    quran-agent chat [--model ID] [--demo]
    quran-agent serve [--host H] [--port P] [--demo]
    quran-agent models [--popular]
    quran-agent tools list|info
    quran-agent config show|validate
    quran-agent version
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from quran_agent import __version__
from quran_agent.config import AgentSettings, load_config

app = typer.Typer(name="quran-agent", help="Quran research agent")
tools_app = typer.Typer(help="Tool catalogue")
config_app = typer.Typer(help="Configuration management")

app.add_typer(tools_app, name="tools")
app.add_typer(config_app, name="config")

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_config_path() -> Path | None:
    """Find config file in standard locations."""
    candidates = [
        Path.cwd() / "quran_agent.yaml",
        Path.cwd() / "quran_agent.yml",
        Path.home() / ".config" / "quran-agent" / "config.yaml",
    ]
    for p in candidates:
        if p.is_file():
            return p
    return None


def _load(
    profile: str | None = None,
    model: str | None = None,
    verbose: bool = False,
) -> AgentSettings:
    overrides = {"llm.model": model} if model else None
    cfg = load_config(_get_config_path(), profile=profile, cli_overrides=overrides)
    level = logging.DEBUG if verbose else getattr(logging, cfg.logging.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    return cfg


def _catalogue():
    """Tool registry built over the in-memory backend (no network needed)."""
    from quran_agent.backends.memory import MemoryQuranBackend
    from quran_agent.llm.embeddings import HashingEmbedder
    from quran_agent.tools.quran import build_quran_tools
    from quran_agent.tools.registry import ToolRegistry

    registry = ToolRegistry()
    for tool in build_quran_tools(MemoryQuranBackend(), HashingEmbedder()).values():
        registry.register(tool)
    return registry


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to research"),
    model: Optional[str] = typer.Option(None, help="Model id, e.g. openai/gpt-4o"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    demo: bool = typer.Option(False, "--demo", help="Use the built-in sample data"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Answer one question and exit."""
    from quran_agent.bootstrap import build_stack
    from quran_agent.cli.chat import ChatHandler
    from quran_agent.cli.output import OutputFormatter

    cfg = _load(profile, model, verbose)

    async def _run() -> bool:
        stack = await build_stack(cfg, demo=demo)
        try:
            handler = ChatHandler(stack.orchestrator, console=console, model=model)
            answer = await handler.handle_input(question)
            OutputFormatter(console).format_usage(handler.usage)
            return answer is not None
        finally:
            await stack.aclose()

    if not asyncio.run(_run()):
        raise typer.Exit(1)


@app.command()
def chat(
    model: Optional[str] = typer.Option(None, help="Model id"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    demo: bool = typer.Option(False, "--demo", help="Use the built-in sample data"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Start an interactive chat session."""
    from quran_agent.bootstrap import build_stack
    from quran_agent.cli.chat import ChatHandler

    cfg = _load(profile, model, verbose)

    async def _run():
        stack = await build_stack(cfg, demo=demo)
        try:
            await ChatHandler(stack.orchestrator, console=console, model=model).run_loop()
        finally:
            await stack.aclose()

    asyncio.run(_run())


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Port"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    demo: bool = typer.Option(False, "--demo", help="Use the built-in sample data"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Serve the HTTP/SSE API."""
    import uvicorn

    from quran_agent.server.app import create_app

    cfg = _load(profile, None, verbose)
    uvicorn.run(
        create_app(cfg, demo=demo),
        host=host or cfg.server.host,
        port=port or cfg.server.port,
        log_level="debug" if verbose else cfg.logging.level.lower(),
    )


@app.command()
def models(
    popular: bool = typer.Option(False, "--popular", help="Only the recommended models"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """List the models the completion endpoint offers."""
    from quran_agent.bootstrap import build_provider
    from quran_agent.cli.output import OutputFormatter
    from quran_agent.errors import CompletionError
    from quran_agent.llm.client import ChatCompletionClient

    cfg = _load(profile, None, verbose)

    async def _run() -> list[dict]:
        client = ChatCompletionClient(build_provider(cfg), default_model=cfg.llm.model)
        try:
            return await client.list_models(popular=popular)
        finally:
            await client.aclose()

    try:
        found = asyncio.run(_run())
    except CompletionError as e:
        console.print(f"[red]Failed to fetch models:[/red] {escape(e.message)}")
        raise typer.Exit(1)

    OutputFormatter(console).format_model_list(found)


@tools_app.command("list")
def tools_list():
    """List registered tools."""
    from quran_agent.cli.output import OutputFormatter

    OutputFormatter(console).format_tool_list(_catalogue().list())


@tools_app.command("info")
def tools_info(tool_name: str = typer.Argument(..., help="Tool name")):
    """Show tool details and schema."""
    from quran_agent.cli.output import OutputFormatter

    tool = _catalogue().get(tool_name)
    if not tool:
        console.print(f"[red]Tool not found:[/red] {tool_name}")
        raise typer.Exit(1)

    OutputFormatter(console).format_tool_info(tool)


@config_app.command("show")
def config_show(profile: Optional[str] = typer.Option(None, help="Config profile name")):
    """Show effective config."""
    from quran_agent.cli.output import OutputFormatter

    cfg = load_config(_get_config_path(), profile=profile)
    OutputFormatter(console).format_config(cfg.to_dict())


@config_app.command("validate")
def config_validate(profile: Optional[str] = typer.Option(None, help="Config profile name")):
    """Validate config and summarise the effective settings."""
    config_path = _get_config_path()
    try:
        cfg = load_config(config_path, profile=profile)
    except Exception as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)

    problems = []
    if cfg.agent.max_iterations < 1:
        problems.append("agent.max_iterations must be at least 1")
    if cfg.agent.max_tool_results < 1:
        problems.append("agent.max_tool_results must be at least 1")
    if not 0 <= cfg.llm.temperature <= 2:
        problems.append("llm.temperature must be within [0, 2]")
    if problems:
        for p in problems:
            console.print(f"[red]✗[/red] {p}")
        raise typer.Exit(1)

    console.print("[green]Config is valid.[/green]")
    if config_path:
        console.print(f"  Loaded from: {config_path}")
    else:
        console.print("  [dim]No config file found, using defaults.[/dim]")
    console.print(f"  LLM: {cfg.llm.name} ({cfg.llm.model})")
    console.print(f"  Max iterations: {cfg.agent.max_iterations}")
    console.print(f"  Output-token table entries: {len(cfg.llm.output_token_limits)}")


@app.command()
def version():
    """Show version."""
    console.print(f"quran-research-agent v{__version__}")


def main():
    app()


if __name__ == "__main__":
    main()
