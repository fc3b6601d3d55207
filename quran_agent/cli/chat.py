"""Interactive chat session handler."""

from __future__ import annotations

import asyncio

from rich.console import Console
from rich.markup import escape

from quran_agent.cli.output import OutputFormatter
from quran_agent.errors import CompletionError
from quran_agent.llm.types import Message
from quran_agent.orchestrator.core import Orchestrator
from quran_agent.orchestrator.events import ChunkEvent, DoneEvent, ErrorEvent, ToolCallEvent
from quran_agent.types import Usage


class ChatHandler:
    """
    Manages the interactive chat loop.

    Keeps the conversation history in memory and feeds it to every run, so
    follow-up questions see earlier answers.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        console: Console | None = None,
        model: str | None = None,
        show_tool_calls: bool = True,
    ) -> None:
        self.orchestrator = orchestrator
        self.console = console or Console()
        self.formatter = OutputFormatter(self.console)
        self.model = model
        self.show_tool_calls = show_tool_calls
        self.history: list[Message] = []
        self.usage = Usage()
        self._running = True

    async def handle_command(self, command: str) -> bool:
        """
        Handle inline commands. Returns True if the command was handled.
        """
        parts = command.strip().split(None, 1)
        cmd = parts[0].lower()
        arg = parts[1] if len(parts) > 1 else ""

        if cmd == "/quit":
            self._running = False
            self.console.print("[dim]Goodbye.[/dim]")
            return True

        if cmd == "/tools":
            self.formatter.format_tool_list(self.orchestrator.executor.registry.list())
            return True

        if cmd == "/usage":
            self.formatter.format_usage(self.usage)
            return True

        if cmd == "/reset":
            self.history.clear()
            self.console.print("[dim]Conversation cleared.[/dim]")
            return True

        if cmd == "/model":
            if arg:
                self.model = arg
            self.console.print(f"  Model: [bold]{self.model or self.orchestrator.client.default_model}[/bold]")
            return True

        if cmd == "/models":
            try:
                found = await self.orchestrator.client.list_models(popular=arg != "all")
            except CompletionError as e:
                self.console.print(f"[red]Failed to fetch models:[/red] {escape(e.message)}")
                return True
            self.formatter.format_model_list(found)
            return True

        if cmd == "/help":
            self.console.print(
                "  [bold]Commands:[/bold]\n"
                "  /quit        - Exit the chat\n"
                "  /tools       - List available tools\n"
                "  /usage       - Show token usage for this session\n"
                "  /model [id]  - Show or switch the model\n"
                "  /models [all] - List recommended (or all) models\n"
                "  /reset       - Forget the conversation so far\n"
                "  /help        - Show this help\n"
            )
            return True

        return False

    async def handle_input(self, user_input: str) -> str | None:
        """Run the agent on one message, printing output as it streams."""
        answer: str | None = None
        async for event in self.orchestrator.run(
            user_input, model=self.model, history=list(self.history)
        ):
            if isinstance(event, ChunkEvent):
                self.console.print(event.content, end="", markup=False, highlight=False)
            elif isinstance(event, ToolCallEvent):
                if self.show_tool_calls:
                    self.formatter.format_tool_call(event)
            elif isinstance(event, DoneEvent):
                self.usage.add(event.usage)
                answer = event.answer
            elif isinstance(event, ErrorEvent):
                self.console.print(f"\n[red]Error:[/red] {escape(event.error)}")

        self.console.print()
        if answer is not None:
            self.history.append(Message(role="user", content=user_input))
            self.history.append(Message(role="assistant", content=answer))
        return answer

    async def run_loop(self) -> None:
        """Main interactive loop."""
        self.console.print(
            "[bold]Quran Research Agent[/bold]\n"
            "[dim]Type /help for commands, /quit to exit.[/dim]\n"
        )

        while self._running:
            try:
                user_input = await asyncio.get_event_loop().run_in_executor(
                    None, lambda: input("you> ").strip()
                )
            except (EOFError, KeyboardInterrupt):
                self.console.print("\n[dim]Goodbye.[/dim]")
                break

            if not user_input:
                continue

            if user_input.startswith("/"):
                handled = await self.handle_command(user_input)
                if handled:
                    continue

            self.console.print("[dim]assistant>[/dim] ", end="")
            await self.handle_input(user_input)
