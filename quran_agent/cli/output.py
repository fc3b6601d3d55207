"""Output formatting utilities for the CLI."""

from __future__ import annotations

import json

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from quran_agent.orchestrator.events import ToolCallEvent
from quran_agent.tools.base import Tool
from quran_agent.types import Usage


class OutputFormatter:
    """Rich-based output formatting for the quran-agent CLI."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def format_tool_list(self, tools: list[Tool]) -> None:
        table = Table(title="Registered Tools", show_lines=True)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Required", no_wrap=True)
        table.add_column("Description")

        for t in tools:
            required = ", ".join(t.parameters.get("required", []))
            table.add_row(t.name, required, t.description)

        self.console.print(table)

    def format_model_list(self, models: list[dict]) -> None:
        table = Table(title="Available Models")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name")
        table.add_column("Context", justify="right")

        for m in models:
            context = m.get("context_length")
            table.add_row(
                escape(str(m.get("id", ""))),
                escape(str(m.get("name", ""))),
                f"{context:,}" if isinstance(context, int) else "-",
            )

        self.console.print(table)

    def format_tool_info(self, tool: Tool) -> None:
        self.console.print(Panel(
            f"[bold]{tool.name}[/bold]\n\n"
            f"[dim]Progress label:[/dim] {tool.label}\n\n"
            f"{tool.description}",
            title=f"Tool: {tool.name}",
        ))
        schema_json = json.dumps(tool.parameters, indent=2, ensure_ascii=False)
        self.console.print(Syntax(schema_json, "json", theme="monokai"))

    def format_tool_call(self, event: ToolCallEvent) -> None:
        args = escape(json.dumps(event.arguments, ensure_ascii=False, default=str)[:80])
        if event.error is not None:
            self.console.print(f"  [red]✗ {event.tool}[/red]({args}) [dim]{escape(event.error)}[/dim]")
            return
        if isinstance(event.result, list):
            summary = f"{len(event.result)} result(s)"
        elif event.result is None:
            summary = "not found"
        else:
            summary = "1 result"
        self.console.print(f"  [green]✓ {event.tool}[/green]({args}) [dim]{summary}[/dim]")

    def format_usage(self, usage: Usage, iterations: int | None = None) -> None:
        parts = [
            f"prompt={usage.prompt_tokens}",
            f"completion={usage.completion_tokens}",
            f"total={usage.total_tokens}",
        ]
        if iterations is not None:
            parts.append(f"iterations={iterations}")
        self.console.print(f"[dim]usage: {' '.join(parts)}[/dim]")

    def format_config(self, config: dict) -> None:
        config_json = json.dumps(config, indent=2, default=str, ensure_ascii=False)
        self.console.print(Syntax(config_json, "json", theme="monokai"))
